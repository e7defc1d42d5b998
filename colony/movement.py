"""
Agent steering and integration.

Each behavioral state picks a desired velocity:
- Fleeing: away from the nearest predator
- SeekingFood / SeekingMate: toward the target (with probability target_weight)
- Exploring: random walk driven by wander/noise strength
- Resting: drift, velocity damped every tick

A seek state without a target falls back to the random walk. After
integration, positions are kept inside the world rectangle (velocity
reflected at walls), pushed out of obstacles, and finally repaired by
sanitize_agent(), the single invariant-repair pass of a tick.
"""

import numpy as np
from typing import List, Optional

from .constants import (
    STATE_SPEED_MULTIPLIERS, REST_DRIFT_DAMPING, FLEE_LOOKAHEAD, STEERING_GAIN,
    RESOURCE_MAX, RESOURCE_MIN
)
from .data_types import Conditions, MovementParams
from .policy import BehaviorState, Decision
from .spatial import clamp_speed, heading_vector, normalize, reflect_velocity, is_finite_point


def _seek(position: np.ndarray, target: np.ndarray, speed: float) -> np.ndarray:
    direction, _ = normalize(target - position)
    return direction * speed


def _random_walk(agent, params: MovementParams, speed: float, rng: np.random.Generator) -> np.ndarray:
    """Desired velocity for exploratory movement."""
    _, current_speed = normalize(agent.velocity)
    if current_speed > 1e-6:
        angle = float(np.arctan2(agent.velocity[1], agent.velocity[0]))
    else:
        angle = params.heading
    angle += rng.normal(0.0, max(params.wander_strength, 0.0))
    angle += rng.uniform(-1.0, 1.0) * max(params.noise_strength, 0.0)
    return heading_vector(angle) * speed


def desired_velocity(
    agent,
    decision: Optional[Decision],
    conditions: Optional[Conditions],
    rng: np.random.Generator
) -> np.ndarray:
    """
    Velocity the agent's current state steers toward.

    Args:
        agent: Agent with state already selected for this tick
        decision: Policy output (default MovementParams if None)
        conditions: Perception snapshot for this tick
        rng: Generator handle

    Returns:
        Desired velocity [vx, vy]
    """
    params = decision.params if decision is not None else MovementParams()
    c = conditions if conditions is not None else Conditions()
    state = agent.state
    speed = agent.max_speed * STATE_SPEED_MULTIPLIERS.get(state.value, 1.0)

    if state == BehaviorState.RESTING:
        return agent.velocity * REST_DRIFT_DAMPING

    if state == BehaviorState.FLEEING and c.predator_target is not None:
        away, _ = normalize(agent.position - c.predator_target.position)
        escape_point = agent.position + away * FLEE_LOOKAHEAD
        return _seek(agent.position, escape_point, speed)

    target = None
    if state == BehaviorState.SEEKING_FOOD and c.food_target is not None:
        target = c.food_target
    elif state == BehaviorState.SEEKING_MATE and c.mate_target is not None:
        target = c.mate_target

    if target is not None and rng.random() < params.target_weight:
        return _seek(agent.position, target.position, speed)

    # No target for this state: random walk (speed param scales exploration)
    return _random_walk(agent, params, speed * max(params.speed, 0.2), rng)


def keep_in_bounds(agent, width: float, height: float):
    """Clamp position to the world rectangle and reflect velocity at walls."""
    radius = agent.size / 2.0
    walls = (
        (0, radius, np.array([1.0, 0.0])),
        (0, width - radius, np.array([-1.0, 0.0])),
        (1, radius, np.array([0.0, 1.0])),
        (1, height - radius, np.array([0.0, -1.0])),
    )
    for axis, limit, normal in walls:
        outside = agent.position[axis] < limit if normal[axis] > 0 else agent.position[axis] > limit
        if outside:
            agent.position[axis] = limit
            agent.velocity = reflect_velocity(agent.velocity, normal)


def push_out_of_obstacles(agent, obstacles: List):
    """Move agent to the surface of any obstacle it overlaps."""
    radius = agent.size / 2.0
    for obstacle in obstacles or []:
        if not obstacle.collides_with(agent.position, radius):
            continue
        closest = obstacle.closest_point(agent.position)
        normal, dist = normalize(agent.position - closest)
        if dist < 1e-9:
            # Center inside the rectangle: leave through the nearest edge
            edges = (
                (agent.position[0] - obstacle.x, np.array([-1.0, 0.0])),
                (obstacle.x + obstacle.w - agent.position[0], np.array([1.0, 0.0])),
                (agent.position[1] - obstacle.y, np.array([0.0, -1.0])),
                (obstacle.y + obstacle.h - agent.position[1], np.array([0.0, 1.0])),
            )
            depth, normal = min(edges, key=lambda e: e[0])
            agent.position = agent.position + normal * (depth + radius)
        else:
            agent.position = closest + normal * radius
        agent.velocity = reflect_velocity(agent.velocity, normal)


def sanitize_agent(agent, width: float, height: float) -> int:
    """
    Repair invariant violations in place.

    Non-finite position -> world center; non-finite velocity -> zero;
    health/energy clamped to [0, 100] (non-finite -> 0).

    Returns:
        Number of repairs made
    """
    repairs = 0

    if not is_finite_point(agent.position):
        agent.position = np.array([width / 2.0, height / 2.0], dtype=np.float64)
        repairs += 1
    if not is_finite_point(agent.velocity):
        agent.velocity = np.zeros(2, dtype=np.float64)
        repairs += 1

    for attr in ('health', 'energy'):
        value = getattr(agent, attr)
        if not np.isfinite(value):
            setattr(agent, attr, RESOURCE_MIN)
            repairs += 1
        elif value < RESOURCE_MIN or value > RESOURCE_MAX:
            setattr(agent, attr, float(min(max(value, RESOURCE_MIN), RESOURCE_MAX)))
            repairs += 1

    if not np.isfinite(agent.max_speed) or agent.max_speed < 0:
        agent.max_speed = agent.base_max_speed
        repairs += 1

    return repairs


def move_agent(
    agent,
    decision: Optional[Decision],
    conditions: Optional[Conditions],
    context,
    obstacles: Optional[List] = None,
    dt: float = 1.0
) -> int:
    """
    Steer, integrate and constrain one agent.

    Args:
        agent: Agent to move (state already selected)
        decision: Policy output for this tick
        conditions: Perception snapshot
        context: SimulationContext (bounds, rng)
        obstacles: Rectangular obstacles
        dt: Time step in ticks

    Returns:
        Number of invariant repairs made by the sanitize pass
    """
    desired = desired_velocity(agent, decision, conditions, context.rng)

    if agent.state == BehaviorState.RESTING:
        agent.velocity = desired
    else:
        agent.velocity = agent.velocity + (desired - agent.velocity) * STEERING_GAIN
        multiplier = STATE_SPEED_MULTIPLIERS.get(agent.state.value, 1.0)
        agent.velocity = clamp_speed(agent.velocity, agent.max_speed * max(multiplier, 1.0))

    agent.position = agent.position + agent.velocity * dt

    if is_finite_point(agent.position):
        keep_in_bounds(agent, context.width, context.height)
        push_out_of_obstacles(agent, obstacles)

    return sanitize_agent(agent, context.width, context.height)
