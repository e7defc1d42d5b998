"""
Colony Simulation

A headless agent-based simulator of organisms in a 2D world. Agents
perceive food, mates, predators and peers, learn their behavior online,
age, reproduce genetically and catch contagious diseases.

Architecture: the colony core is the source of truth. Rendering, UI and
the real-time loop are consumers that call ColonySimulation.tick().
"""

__version__ = "0.1.0"
