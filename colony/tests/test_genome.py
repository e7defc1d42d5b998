"""
Tests for Genome construction, crossover and mutation.

Verifies:
- Traits clamp to their domains on construction
- Crossover of extreme parents stays in bounds after mutation
- Average crossover and generation counter
- Mutation never edits the source genome
"""

import numpy as np

from colony.constants import LIFESPAN_MIN_TICKS, LIFESPAN_MAX_TICKS
from colony.genome import Genome, TRAIT_NAMES
from colony.rng import make_rng


def extreme_genome(value: float) -> Genome:
    traits = {name: value for name in TRAIT_NAMES}
    lifespan = LIFESPAN_MAX_TICKS if value >= 1.0 else LIFESPAN_MIN_TICKS
    return Genome(color=(value, value, value), base_lifespan=lifespan, **traits)


def assert_in_bounds(genome: Genome):
    for name in TRAIT_NAMES:
        value = getattr(genome, name)
        assert 0.0 <= value <= 1.0, f"{name}={value} out of [0, 1]"
    for channel in genome.color:
        assert 0.0 <= channel <= 1.0
    assert LIFESPAN_MIN_TICKS <= genome.base_lifespan <= LIFESPAN_MAX_TICKS


def test_construction_clamps():
    """Out-of-range and non-finite values are clamped"""
    genome = Genome(speed=2.0, size=-1.0, immunity=np.nan, base_lifespan=1.0,
                    color=(2.0, -1.0, 0.5), generation=-3)

    assert genome.speed == 1.0
    assert genome.size == 0.0
    assert genome.immunity == 0.5
    assert genome.base_lifespan == LIFESPAN_MIN_TICKS
    assert genome.color == (1.0, 0.0, 0.5)
    assert genome.generation == 0


def test_random_genome_in_bounds():
    rng = make_rng(1, "genome")
    for _ in range(100):
        assert_in_bounds(Genome.random(rng))


def test_crossover_of_extremes_stays_in_bounds():
    """Parents at 1.0 and 0.0 produce children within [0, 1] after mutation"""
    rng = make_rng(2, "genome")
    high = extreme_genome(1.0)
    low = extreme_genome(0.0)

    total_mutations = 0
    for mode in ("pick", "average"):
        for _ in range(300):
            child = Genome.crossover(high, low, rng, mode=mode)
            child, mutations = child.mutate(rng)
            total_mutations += mutations
            assert_in_bounds(child)

    # mutation_rate is inherited from either parent, so some children mutate
    assert total_mutations > 0
    print(f"[OK] 600 children in bounds ({total_mutations} mutations)")


def test_average_crossover_and_generation():
    rng = make_rng(3)
    a = Genome(speed=1.0, curiosity=0.2, generation=4)
    b = Genome(speed=0.0, curiosity=0.6, generation=7)

    child = Genome.crossover(a, b, rng, mode="average")

    assert np.isclose(child.speed, 0.5)
    assert np.isclose(child.curiosity, 0.4)
    assert child.generation == 8


def test_pick_crossover_takes_parent_values():
    rng = make_rng(4)
    a = extreme_genome(1.0)
    b = extreme_genome(0.0)
    child = Genome.crossover(a, b, rng, mode="pick")
    for name in TRAIT_NAMES:
        assert getattr(child, name) in (0.0, 1.0)


def test_mutate_returns_new_genome():
    """mutate() leaves the original untouched"""
    rng = make_rng(5)
    original = Genome(mutation_rate=1.0)
    before = original.to_dict()

    for _ in range(50):
        original.mutate(rng)

    assert original.to_dict() == before


def test_zero_mutation_rate_never_mutates():
    rng = make_rng(6)
    genome = Genome.random(rng)
    genome = Genome.from_dict(dict(genome.to_dict(), mutation_rate=0.0))

    for _ in range(100):
        mutated, count = genome.mutate(rng)
        assert count == 0
        assert mutated == genome


def test_derived_parameters():
    genome = Genome(speed=0.5, size=0.5, metabolism=0.5, fertility=0.5, curiosity=1.0,
                    base_lifespan=30000.0)

    assert np.isclose(genome.body_size, 20.0)
    assert np.isclose(genome.max_speed, 3.0)
    assert np.isclose(genome.lifespan, 30000.0)
    assert np.isclose(genome.energy_cost_factor, 1.0)
    assert genome.mating_cooldown(300) == 300
    assert np.isclose(genome.perception_radius(150.0), 180.0)


def test_dict_round_trip():
    genome = Genome.random(make_rng(8))
    assert Genome.from_dict(genome.to_dict()) == genome
