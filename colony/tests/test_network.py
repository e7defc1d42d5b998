"""
Tests for the feed-forward network used by the neural policy.
"""

import numpy as np

from colony.network import FeedForwardNetwork
from colony.rng import make_rng


def make_network(seed=0):
    return FeedForwardNetwork(13, 12, 4, 5, make_rng(seed, "network"), learning_rate=0.1)


def test_predict_shapes_and_ranges():
    net = make_network()
    logits, params = net.predict(np.linspace(0.0, 1.0, 13))

    assert logits.shape == (4,)
    assert params.shape == (5,)
    assert np.all((params > 0.0) & (params < 1.0))


def test_predict_tolerates_bad_input():
    """NaN values and wrong lengths are coerced, never raised"""
    net = make_network()
    logits, params = net.predict([np.nan, 1.0, np.inf])
    assert np.all(np.isfinite(logits))
    assert np.all(np.isfinite(params))

    logits, _ = net.predict(np.ones(40))
    assert logits.shape == (4,)


def test_reinforce_sign_contract():
    """reward >= 0 never lowers the taken logit, reward < 0 never raises it"""
    rng = make_rng(1, "contract")
    net = make_network(1)

    for _ in range(200):
        inputs = rng.random(13)
        action = int(rng.integers(4))
        reward = float(rng.uniform(-2.0, 2.0))

        before, _ = net.predict(inputs)
        net.reinforce(inputs, action, reward)
        after, _ = net.predict(inputs)

        if reward >= 0:
            assert after[action] >= before[action] - 1e-12
        else:
            assert after[action] <= before[action] + 1e-12


def test_reinforce_only_touches_taken_action():
    net = make_network(2)
    inputs = np.full(13, 0.5)
    before, params_before = net.predict(inputs)

    net.reinforce(inputs, 2, 1.0)
    after, params_after = net.predict(inputs)

    for i in (0, 1, 3):
        assert np.isclose(after[i], before[i])
    assert np.allclose(params_after, params_before)


def test_reinforce_ignores_invalid_arguments():
    net = make_network(3)
    w2 = net.w2.copy()
    net.reinforce(np.ones(13), 9, 1.0)
    net.reinforce(np.ones(13), 0, np.nan)
    assert np.array_equal(net.w2, w2)


def test_train_params_moves_toward_target():
    net = make_network(4)
    inputs = np.full(13, 0.7)
    target = np.array([0.9, 0.1, 0.5, 0.2, 0.8])

    _, start = net.predict(inputs)
    for _ in range(300):
        net.train_params(inputs, target, weight=1.0)
    _, end = net.predict(inputs)

    assert np.linalg.norm(end - target) < np.linalg.norm(start - target)


def test_train_params_skips_non_positive_weight():
    net = make_network(5)
    w2 = net.w2.copy()
    net.train_params(np.ones(13), np.zeros(5), weight=0.0)
    net.train_params(np.ones(13), np.zeros(5), weight=-1.0)
    assert np.array_equal(net.w2, w2)


def test_crossover_and_mutate():
    rng = make_rng(6)
    a = make_network(6)
    b = make_network(7)

    child = a.crossover(b, rng)
    from_a = child.w1 == a.w1
    from_b = child.w1 == b.w1
    assert np.all(from_a | from_b)

    snapshot = child.w2.copy()
    assert child.mutate(rng, rate=0.0) == 0
    assert np.array_equal(child.w2, snapshot)
    assert child.mutate(rng, rate=1.0) > 0

    other_shape = FeedForwardNetwork(13, 6, 4, 5, rng)
    assert a.crossover(other_shape, rng) is None
