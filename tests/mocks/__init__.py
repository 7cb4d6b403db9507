"""Test mocks for rollout-cli.

Provides fake implementations for testing:
- MemoryStore: In-memory object store standing in for a cluster
- FakeClock: Clock and sleep pair that advances only when slept on
- make_*: Builders for nodes, Applications and other cluster objects
"""

from .clock import FakeClock
from .memory_store import MemoryStore, merge_patch
from .objects import (
    make_app,
    make_infrastructure,
    make_machineset,
    make_node,
    make_server_deployment,
)

__all__ = [
    "FakeClock",
    "MemoryStore",
    "merge_patch",
    "make_app",
    "make_infrastructure",
    "make_machineset",
    "make_node",
    "make_server_deployment",
]
