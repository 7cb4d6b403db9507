"""Staged Argo CD sync and bulk sync-policy toggling."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import click

from ..errors import StoreError
from ..formatters import print_app_table
from ..shared.logging import get_logger
from ..store import KIND_APPLICATION, ObjectStore
from ..store.status import app_converged, app_health_status, app_sync_status, object_name
from .manifests import GITOPS_NAMESPACE, refresh_patch, sync_policy_patch
from .poller import ReadinessPoller

logger = get_logger(__name__)

# Operators first, then their instances. List position is the only
# dependency signal.
SYNC_ORDER = [
    # Phase 1: Foundation
    "nfd",
    "instance-nfd",
    "nvidia-operator",
    "instance-nvidia",
    # Phase 2: Dependent operators
    "openshift-service-mesh",
    "kueue-operator",
    "leader-worker-set",
    "instance-lws",
    "jobset-operator",
    "instance-jobset",
    "connectivity-link",
    "instance-kuadrant",
    # Phase 3: RHOAI
    "rhoai-operator",
    "instance-rhoai",
]

DEFAULT_HEALTH_TIMEOUT = 300
HEALTH_POLL_INTERVAL = 10.0


class AppOutcome(Enum):
    """Per-application result of a staged sync."""

    HEALTHY = "healthy"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class AppSyncResult:
    name: str
    outcome: AppOutcome
    sync: str = "Unknown"
    health: str = "Unknown"
    elapsed_seconds: float = 0.0


@dataclass
class SyncReport:
    """Per-application results in sync order."""

    results: list[AppSyncResult] = field(default_factory=list)

    def _count(self, *outcomes: AppOutcome) -> int:
        return len([r for r in self.results if r.outcome in outcomes])

    @property
    def processed(self) -> int:
        return self._count(AppOutcome.HEALTHY, AppOutcome.TIMED_OUT, AppOutcome.ERROR)

    @property
    def skipped(self) -> int:
        return self._count(AppOutcome.SKIPPED)

    @property
    def timed_out(self) -> int:
        return self._count(AppOutcome.TIMED_OUT)

    def outcome_of(self, name: str) -> AppOutcome | None:
        for result in self.results:
            if result.name == name:
                return result.outcome
        return None


class StagedSyncOrchestrator:
    """Sync Applications one at a time, in order, gated on health.

    A missing Application is skipped and an Application that does not
    converge within the per-app timeout is reported; neither stops the loop
    and the run as a whole always succeeds.
    """

    def __init__(
        self,
        store: ObjectStore,
        sync_order: list[str] | None = None,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        interval_seconds: float = HEALTH_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize orchestrator.

        Args:
            store: Cluster object store.
            sync_order: Application names in dependency order.
            health_timeout: Seconds each app may take to become Synced+Healthy.
            interval_seconds: Seconds between status polls.
            clock: Monotonic clock, injectable for tests.
            sleep: Sleep function, injectable for tests.
        """
        self.store = store
        self.sync_order = list(SYNC_ORDER if sync_order is None else sync_order)
        self.health_timeout = health_timeout
        self.poller = ReadinessPoller(interval_seconds, clock=clock, sleep=sleep)

    def _get(self, name: str) -> dict | None:
        return self.store.get(KIND_APPLICATION, GITOPS_NAMESPACE, name)

    def sync_app(self, name: str) -> AppSyncResult:
        try:
            exists = self._get(name) is not None
        except StoreError as e:
            logger.warning("app_lookup_failed", app=name, error=e.message)
            exists = False
        if not exists:
            logger.warning("app_not_found", app=name)
            click.echo(f"  ⚠ App '{name}' not found, skipping")
            return AppSyncResult(name, AppOutcome.SKIPPED)

        click.echo(f"  Syncing: {name}")
        try:
            self.store.patch(KIND_APPLICATION, GITOPS_NAMESPACE, name, sync_policy_patch(True))
            self.store.patch(KIND_APPLICATION, GITOPS_NAMESPACE, name, refresh_patch())
        except StoreError as e:
            logger.warning("app_patch_failed", app=name, error=e.message)
            click.echo(f"  ⚠ {name}: {e.message}")
            return AppSyncResult(name, AppOutcome.ERROR)

        click.echo(f"  Waiting for {name} to be Healthy (timeout: {self.health_timeout:.0f}s)...")
        last: dict = {}

        def _converged() -> bool:
            app = self._get(name)
            last["app"] = app
            return app_converged(app)

        def _progress(attempt: int, elapsed: float, error: str | None) -> None:
            app = last.get("app")
            click.echo(
                f"    {name}: sync={app_sync_status(app)} "
                f"health={app_health_status(app)} ({elapsed:.0f}s)"
            )

        poll = self.poller.wait(_converged, self.health_timeout, on_attempt=_progress)
        app = last.get("app")
        result = AppSyncResult(
            name,
            AppOutcome.HEALTHY if poll.ready else AppOutcome.TIMED_OUT,
            sync=app_sync_status(app),
            health=app_health_status(app),
            elapsed_seconds=poll.elapsed_seconds,
        )

        if poll.ready:
            click.echo(f"  ✓ {name}: Synced + Healthy")
        else:
            logger.warning("app_health_timeout", app=name, sync=result.sync, health=result.health)
            click.echo(
                f"  ⚠ {name}: Timeout after {self.health_timeout:.0f}s "
                f"(health={result.health}, sync={result.sync})"
            )
            click.echo("  ⚠ Continuing to next app...")
        return result

    def run(self) -> SyncReport:
        report = SyncReport()
        click.echo(f"  Starting staged sync of {len(self.sync_order)} apps...")
        click.echo(f"  Each app will wait up to {self.health_timeout:.0f}s to become healthy\n")

        for name in self.sync_order:
            report.results.append(self.sync_app(name))
            click.echo("")

        click.echo(
            f"  Sync complete: {report.processed} processed, "
            f"{report.skipped} skipped, {report.timed_out} timed out"
        )

        click.echo("\nFinal status:")
        try:
            print_app_table(self.store.list(KIND_APPLICATION, GITOPS_NAMESPACE))
        except StoreError as e:
            click.echo(f"  ⚠ Could not list applications: {e.message}")
        return report


@dataclass
class ToggleResult:
    patched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class SyncPolicyToggler:
    """Enable or disable automated sync on every Application."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def set_automated(self, enabled: bool) -> ToggleResult:
        result = ToggleResult()
        patch = sync_policy_patch(enabled)

        for app in self.store.list(KIND_APPLICATION, GITOPS_NAMESPACE):
            name = object_name(app)
            try:
                self.store.patch(KIND_APPLICATION, GITOPS_NAMESPACE, name, patch)
            except StoreError as e:
                # Deleted or malformed apps must not abort the bulk operation
                logger.warning("sync_policy_patch_failed", app=name, error=e.message)
                result.failed.append(name)
                continue
            result.patched.append(name)

        logger.info(
            "sync_policy_toggled",
            enabled=enabled,
            patched=len(result.patched),
            failed=len(result.failed),
        )
        return result
