"""Cluster object store abstraction."""

from .base import (
    KIND_APPLICATION,
    KIND_APPLICATIONSET,
    KIND_CLUSTER_AUTOSCALER,
    KIND_CSV,
    KIND_DEPLOYMENT,
    KIND_INFRASTRUCTURE,
    KIND_MACHINE,
    KIND_MACHINE_AUTOSCALER,
    KIND_MACHINE_CONFIG_POOL,
    KIND_MACHINESET,
    KIND_NAMESPACE,
    KIND_NODE,
    KIND_POD,
    KIND_ROUTE,
    KIND_SECRET,
    ObjectStore,
    kind_key,
    matches_selector,
    parse_selector,
)
from .oc import OcStore

__all__ = [
    "ObjectStore",
    "OcStore",
    "kind_key",
    "matches_selector",
    "parse_selector",
    "KIND_APPLICATION",
    "KIND_APPLICATIONSET",
    "KIND_CLUSTER_AUTOSCALER",
    "KIND_CSV",
    "KIND_DEPLOYMENT",
    "KIND_INFRASTRUCTURE",
    "KIND_MACHINE",
    "KIND_MACHINE_AUTOSCALER",
    "KIND_MACHINE_CONFIG_POOL",
    "KIND_MACHINESET",
    "KIND_NAMESPACE",
    "KIND_NODE",
    "KIND_POD",
    "KIND_ROUTE",
    "KIND_SECRET",
]
