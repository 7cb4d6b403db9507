"""Master node dedication."""

from __future__ import annotations

from dataclasses import dataclass, field

import click

from ..errors import HardFailure
from ..formatters import print_node_table
from ..shared.logging import get_logger
from ..store import KIND_NODE, ObjectStore
from ..store.status import node_ready, object_name
from .manifests import remove_label_patch

logger = get_logger(__name__)

WORKER_ROLE_LABEL = "node-role.kubernetes.io/worker"
MASTER_ROLE_LABEL = "node-role.kubernetes.io/master"
DEDICATED_WORKER_SELECTOR = f"{WORKER_ROLE_LABEL},!{MASTER_ROLE_LABEL}"


@dataclass
class DedicationResult:
    ready_workers: int = 0
    masters: list[str] = field(default_factory=list)


def count_ready_workers(store: ObjectStore) -> int:
    """Count Ready nodes that are workers but not masters."""
    return len([n for n in store.list(KIND_NODE, None, DEDICATED_WORKER_SELECTOR) if node_ready(n)])


class MasterDedicationGuard:
    """Remove the worker role from masters once real workers are Ready."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def dedicate(self) -> DedicationResult:
        """Remove the worker role label from every master node.

        Raises:
            HardFailure: If no dedicated worker is Ready. Nothing is mutated.
        """
        click.echo("  Checking for Ready worker nodes...")
        workers = count_ready_workers(self.store)
        if workers == 0:
            raise HardFailure(
                "No dedicated worker nodes are Ready. "
                "Create workers first with 'rollout gpu' or 'rollout cpu'"
            )
        click.echo(f"  Found {workers} Ready worker node(s)")

        result = DedicationResult(ready_workers=workers)
        click.echo("  Removing worker role from master nodes...")
        for node in self.store.list(KIND_NODE, None, MASTER_ROLE_LABEL):
            name = object_name(node)
            self.store.patch(KIND_NODE, None, name, remove_label_patch(WORKER_ROLE_LABEL))
            result.masters.append(name)
            logger.info("master_dedicated", node=name)

        click.echo("  ✓ Master nodes are now dedicated")
        click.echo("    (no longer schedulable for regular workloads)")
        print_node_table(self.store.list(KIND_NODE))
        return result
