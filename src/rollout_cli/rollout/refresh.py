"""Nightly image refresh.

Restarts the catalog pod so it pulls the latest index image, then restarts
the operator so it reconciles against the refreshed catalog. Every step is
best-effort.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import click

from ..errors import StoreError
from ..shared.logging import get_logger
from ..store import KIND_POD, ObjectStore
from ..store.status import pod_ready
from .poller import ReadinessPoller

logger = get_logger(__name__)

CATALOG_NAMESPACE = "openshift-marketplace"
CATALOG_SELECTOR = "olm.catalogSource=rhoai-catalog-nightly"
OPERATOR_NAMESPACE = "redhat-ods-operator"
OPERATOR_SELECTOR = "name=rhods-operator"

CATALOG_READY_TIMEOUT = 120
CATALOG_READY_INTERVAL = 5.0


@dataclass
class RefreshResult:
    catalog_deleted: int = 0
    catalog_ready: bool = False
    operator_deleted: int = 0


class ImageRefreshTrigger:
    """Force the catalog and operator pods to restart."""

    def __init__(
        self,
        store: ObjectStore,
        ready_timeout: float = CATALOG_READY_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.ready_timeout = ready_timeout
        self.poller = ReadinessPoller(CATALOG_READY_INTERVAL, clock=clock, sleep=sleep)

    def _delete(self, namespace: str, selector: str) -> int:
        try:
            return self.store.delete(KIND_POD, namespace, selector=selector)
        except StoreError as e:
            logger.warning(
                "pod_delete_failed", namespace=namespace, selector=selector, error=e.message
            )
            return 0

    def _catalog_ready(self) -> bool:
        pods = self.store.list(KIND_POD, CATALOG_NAMESPACE, CATALOG_SELECTOR)
        return any(pod_ready(p) for p in pods)

    def refresh(self) -> RefreshResult:
        result = RefreshResult()

        click.echo("  Restarting catalog pod...")
        result.catalog_deleted = self._delete(CATALOG_NAMESPACE, CATALOG_SELECTOR)

        click.echo("  Waiting for catalog pod to restart...")
        poll = self.poller.wait(self._catalog_ready, self.ready_timeout)
        result.catalog_ready = poll.ready
        if poll.ready:
            click.echo("  ✓ Catalog pod Ready")
        else:
            logger.warning("catalog_ready_timeout", elapsed=poll.elapsed_seconds)
            click.echo("  ⚠ Catalog pod not Ready yet, continuing...")

        click.echo("  Restarting RHOAI operator...")
        result.operator_deleted = self._delete(OPERATOR_NAMESPACE, OPERATOR_SELECTOR)

        click.echo("\n  ✓ Refresh initiated! Operator will reconcile with latest images.")
        click.echo(f"  Monitor with: oc get pods -n {OPERATOR_NAMESPACE} -w")
        return result
