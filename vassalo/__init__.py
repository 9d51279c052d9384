"""DAG event primitives, validator weights, event ordering and gossip leecher helpers."""

__version__ = "0.1.0"