"""
Colony simulation kernel.

ColonySimulation owns the agent population, the agent spatial index,
the lifecycle model and the contagion model, and advances them in
synchronous ticks. Food, predators and obstacles are owned by the
caller and passed into tick().
"""

import numpy as np
import os
import time
from typing import Dict, List, Optional

from .agent import Agent, SimulationContext, spawn_agent
from .constants import (
    FOOD_BITE, INITIAL_ENERGY_DEFAULT, MAX_BODY_SIZE, RESOURCE_MAX, RESOURCE_MIN,
    TICK_TIME_WINDOW
)
from .data_types import Conditions, SimulationConfig
from .disease import DiseaseSystem
from .lifecycle import DeathCause, LifecycleModel
from .movement import move_agent
from .perception import analyze
from .policy import Decision, Action, compute_reward, select_state
from .reproduction import reproduce
from .spatial import distance_2d
from .spatial_index import SpatialIndex

# Largest perception radius multiplier a genome can produce (curiosity = 1)
MAX_PERCEPTION_FACTOR = 1.2


class ColonySimulation:
    """
    Main simulation class for the colony.

    Tick phases, in order (each runs to completion for every agent):
    1. Index refresh (agents) and transient food/predator indices
    2. Perception snapshot for every agent, then social interactions
    3. Decision and state selection
    4. Movement and sanitize pass, agent index updated
    5. Lifecycle, eating, reward feedback, death checks
    6. Reproduction (contact-based, capped by population limit)
    7. Contagion
    8. Final reap of agents killed by disease effects

    Dead agents are removed at the end of the phase that found them;
    offspring join the population after phase 6.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        initial_population: int = 0,
        verbose: bool = True
    ):
        """
        Initialize simulation.

        Args:
            config: Simulation configuration (defaults if None)
            initial_population: Number of random agents to seed
            verbose: Print initialization, warnings and disease events
        """
        self.config = config or SimulationConfig()
        self.verbose = verbose
        self.context = SimulationContext.from_config(self.config)

        # Simulation state
        self.agents: List[Agent] = []
        self.tick_count: int = 0

        world = self.config.world
        self.index = SpatialIndex(world.grid_cell_size, use_ckdtree=world.use_ckdtree)
        self.lifecycle = LifecycleModel(self.config.lifecycle)
        self.contagion = DiseaseSystem(self.config.disease, verbose=verbose)

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW
        self._phase_times: Dict[str, float] = {}

        # Telemetry
        self._stats: Dict = {
            'births': 0,
            'deaths': {cause.value: 0 for cause in DeathCause},
            'food_consumed': 0,
            'mutations': 0,
            'repairs': 0,
            'social_interactions': 0,
        }

        for _ in range(max(0, int(initial_population))):
            self.add_agent(self.spawn_agent())

        if self.verbose:
            print(f"[OK] Colony initialized: {len(self.agents)} agents, "
                  f"world={world.width:.0f}x{world.height:.0f}, seed={world.seed}, "
                  f"policy={self.config.policy.kind}")

    # ------------------------------------------------------------------
    # Population management
    # ------------------------------------------------------------------

    def spawn_agent(
        self,
        position=None,
        parent_genome=None,
        initial_energy: float = INITIAL_ENERGY_DEFAULT,
        **kwargs
    ) -> Agent:
        """
        Create an agent bound to this simulation's context.

        The agent is not added to the population; see add_agent().
        """
        return spawn_agent(self.context, position, parent_genome, initial_energy, **kwargs)

    def add_agent(self, agent: Agent) -> bool:
        """
        Add agent to the population and the spatial index.

        Returns:
            False if the population limit is reached
        """
        if len(self.agents) >= self.config.world.population_limit:
            if self.verbose:
                print(f"[WARN] Population limit {self.config.world.population_limit} reached, "
                      f"agent {agent.id} not added")
            return False
        self.agents.append(agent)
        self.index.insert(agent)
        return True

    def _remove_agents(self, dead: List[Agent]):
        """Remove dead agents from population, index and contagion model."""
        if not dead:
            return
        dead_ids = set()
        for agent in dead:
            self.index.remove(agent)
            self.contagion.forget_agent(agent.id)
            self._stats['deaths'][agent.death_cause] = self._stats['deaths'].get(agent.death_cause, 0) + 1
            dead_ids.add(agent.id)

        self.agents = [a for a in self.agents if a.id not in dead_ids]

        alive_ids = [a.id for a in self.agents]
        for agent in self.agents:
            agent.relationships.prune(alive_ids)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, food=None, predators=None, obstacles=None, dt: float = 1.0) -> List[Agent]:
        """
        Advance simulation by one time step.

        Every agent perceives the world as it was at the start of the tick;
        nothing perceived in phase 2 reflects another agent's update.

        Args:
            food: Food list (exhausted items are removed from it in place)
            predators: Predator list (read-only)
            obstacles: RectObstacle list (read-only)
            dt: Time step in ticks

        Returns:
            Offspring born this tick (already added to the population)
        """
        start_time = time.perf_counter()
        if food is None:
            food = []
        predators = list(predators or [])
        obstacles = list(obstacles or [])
        if not np.isfinite(dt) or dt <= 0:
            dt = 1.0

        ctx = self.context
        ctx.tick = self.tick_count
        rng = ctx.rng
        cfg = self.config

        # Sort agents by id for determinism
        self.agents.sort(key=lambda a: a.id)

        # ============================================================
        # PHASE 1: INDEX REFRESH
        # ============================================================
        phase_start = time.perf_counter()
        for agent in self.agents:
            self.index.update(agent)

        food_index = SpatialIndex(cfg.world.grid_cell_size, use_ckdtree=cfg.world.use_ckdtree)
        food_index.rebuild(f for f in food if f.nutrition > 0)
        predator_index = SpatialIndex(cfg.world.grid_cell_size, use_ckdtree=cfg.world.use_ckdtree)
        predator_index.rebuild(predators)
        self._phase_times['index'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 2: PERCEPTION (snapshot of tick-start world)
        # ============================================================
        phase_start = time.perf_counter()
        query_radius = cfg.perception.radius * MAX_PERCEPTION_FACTOR
        snapshot: Dict[int, Conditions] = {}
        for agent in self.agents:
            snapshot[agent.id] = analyze(
                agent,
                food=food_index.query_radius(agent.position, query_radius),
                predators=predator_index.query_radius(agent.position, query_radius),
                obstacles=obstacles,
                peers=self.index.query_radius(agent.position, query_radius),
                tick=ctx.tick,
                config=cfg.perception
            )

        for agent in self.agents:
            kind = agent.relationships.process_interactions(
                agent, snapshot[agent.id].nearby_peers, rng, ctx.tick
            )
            if kind is not None:
                self._stats['social_interactions'] += 1
        self._phase_times['perception'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 3: DECISION
        # ============================================================
        phase_start = time.perf_counter()
        for agent in self.agents:
            conditions = snapshot[agent.id]
            if agent.policy is not None:
                decision = agent.policy.decide(agent, conditions, rng)
            else:
                decision = Decision(action=Action.EXPLORE)
            agent.state = select_state(
                decision.action, conditions, agent, cfg.policy.max_resting_ticks
            )
            agent.last_decision = decision
            agent.last_conditions = conditions
        self._phase_times['decision'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 4: MOVEMENT + SANITIZE
        # ============================================================
        phase_start = time.perf_counter()
        repairs = 0
        for agent in self.agents:
            repairs += move_agent(agent, agent.last_decision, agent.last_conditions, ctx, obstacles, dt)
            self.index.update(agent)
        self._stats['repairs'] += repairs
        if repairs and self.verbose:
            print(f"[WARN] Tick {self.tick_count}: repaired {repairs} invalid agent values")
        self._phase_times['movement'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 5: LIFECYCLE, EATING, REWARD, DEATH
        # ============================================================
        phase_start = time.perf_counter()
        dead: List[Agent] = []
        for agent in self.agents:
            self.lifecycle.tick(agent, dt)
            self._try_eat(agent, food_index)

            if agent.policy is not None:
                reward = compute_reward(
                    agent, agent.last_decision.action, agent.last_conditions,
                    cfg.lifecycle.starvation_ticks
                )
                agent.policy.learn(agent, agent.last_conditions, reward)

            if self.lifecycle.check_death(agent, rng) is not None:
                dead.append(agent)

        self._remove_agents(dead)
        food[:] = [f for f in food if f.nutrition > 0]
        self._phase_times['lifecycle'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 6: REPRODUCTION
        # ============================================================
        phase_start = time.perf_counter()
        offspring = self._reproduce()
        for child in offspring:
            self.add_agent(child)
        self._phase_times['reproduction'] = time.perf_counter() - phase_start

        # ============================================================
        # PHASE 7: CONTAGION
        # ============================================================
        phase_start = time.perf_counter()
        self.contagion.update(self.agents, self.index, rng, tick=ctx.tick, dt=dt)

        # PHASE 8: agents drained to zero health by disease effects
        # (mortality was already rolled in phase 5)
        dead = [a for a in self.agents
                if self.lifecycle.check_death(a, rng, roll_disease=False) is not None]
        self._remove_agents(dead)
        self._phase_times['contagion'] = time.perf_counter() - phase_start

        # Increment tick count
        self.tick_count += 1

        # Record timing
        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

        # Debug invariant check (zero perf impact when env var not set)
        if os.getenv('COLONY_DEBUG_INVARIANTS') == '1':
            for agent in self.agents:
                assert RESOURCE_MIN <= agent.health <= RESOURCE_MAX, f"agent {agent.id} health {agent.health}"
                assert RESOURCE_MIN <= agent.energy <= RESOURCE_MAX, f"agent {agent.id} energy {agent.energy}"
                assert agent.age < agent.lifespan, f"agent {agent.id} outlived lifespan"
            assert len(self.index) == len(self.agents), \
                f"index size ({len(self.index)}) != population ({len(self.agents)})"

        return offspring

    def _try_eat(self, agent: Agent, food_index: SpatialIndex) -> bool:
        """Eat the first overlapping food item; each meal takes one bite."""
        reach = agent.size / 2.0 + 7.5  # 7.5 = largest food radius
        for item in food_index.query_radius(agent.position, reach):
            if item.nutrition <= 0:
                continue
            if distance_2d(agent.position, item.position) >= agent.size / 2.0 + item.size / 2.0:
                continue
            lifecycle = self.config.lifecycle
            if agent.eat(item, lifecycle.food_health_fraction, lifecycle.eat_reward):
                item.nutrition -= FOOD_BITE
                if item.nutrition <= 0:
                    item.nutrition = 0.0
                    food_index.remove(item)
                    self._stats['food_consumed'] += 1
                return True
        return False

    def _reproduce(self) -> List[Agent]:
        """Mate every touching compatible pair once, up to the population limit."""
        offspring: List[Agent] = []
        limit = self.config.world.population_limit

        for agent in self.agents:
            if len(self.agents) + len(offspring) >= limit:
                break
            if agent.mate_cooldown > 0 or not agent.can_reproduce:
                continue
            # Widest contact distance is against the largest possible partner
            reach = agent.size / 2.0 + MAX_BODY_SIZE / 2.0
            for partner in self.index.query_radius(agent.position, reach):
                if partner.id <= agent.id:
                    continue
                contact = (agent.size + partner.size) / 2.0
                if distance_2d(agent.position, partner.position) > contact:
                    continue
                child = reproduce(agent, partner, self.context)
                if child is not None:
                    offspring.append(child)
                    self._stats['births'] += 1
                    self._stats['mutations'] += child.mutation_count
                    break
        return offspring

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _record_tick_time(self, elapsed: float):
        """
        Record tick timing for rolling average.

        Args:
            elapsed: Tick time in seconds
        """
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

    def get_stats(self) -> dict:
        """
        Get population, lifecycle, contagion and timing statistics.

        Returns:
            Dict with tick_count, population, births, deaths (by cause),
            food_consumed, mutations, mean_energy, mean_health,
            avg_tick_time_ms and disease (ContagionModel statistics)
        """
        population = len(self.agents)
        avg_time = self._tick_time_sum / len(self._tick_times) if self._tick_times else 0.0

        return {
            'tick_count': self.tick_count,
            'population': population,
            'births': self._stats['births'],
            'deaths': dict(self._stats['deaths']),
            'food_consumed': self._stats['food_consumed'],
            'mutations': self._stats['mutations'],
            'repairs': self._stats['repairs'],
            'social_interactions': self._stats['social_interactions'],
            'mean_energy': float(np.mean([a.energy for a in self.agents])) if population else 0.0,
            'mean_health': float(np.mean([a.health for a in self.agents])) if population else 0.0,
            'avg_tick_time_ms': avg_time * 1000.0,
            'disease': self.contagion.get_statistics(population),
        }

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot.

        Returns:
            Dict with tick_count, agents, active diseases and disease history
        """
        return {
            'tick_count': self.tick_count,
            'agent_count': len(self.agents),
            'agents': [a.to_dict() for a in self.agents],
            'diseases': [d.to_dict() for d in self.contagion.diseases],
            'disease_history': [r.to_dict() for r in self.contagion.history],
        }

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_stats()
        deaths = sum(stats['deaths'].values())
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Agents: {stats['population']} | "
              f"Births: {stats['births']} Deaths: {deaths} | "
              f"Energy: {stats['mean_energy']:5.1f} | "
              f"Diseases: {stats['disease']['active_diseases']} "
              f"({stats['disease']['total_infected']} infected)")

    def print_perf_breakdown(self):
        """Print the duration of each phase of the last tick"""
        print(f"\n[Perf Breakdown] Tick {self.tick_count} ({len(self.agents)} agents)")
        for phase, seconds in self._phase_times.items():
            print(f"  {phase:<13s} {seconds * 1000.0:6.3f} ms")
