"""Root Application deployment.

Applies the root Argo CD Application and waits for the ApplicationSets it
owns to generate the expected child Applications.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import click

from ..errors import HardFailure, ReadinessTimeoutError
from ..shared.logging import get_logger
from ..store import KIND_APPLICATION, KIND_DEPLOYMENT, ObjectStore
from .installer import BOOTSTRAP_DIR, GITOPS_SERVER_DEPLOYMENT, server_available
from .manifests import GITOPS_NAMESPACE
from .poller import ReadinessPoller

logger = get_logger(__name__)

ROOT_APP_FILE = BOOTSTRAP_DIR / "cluster-config-app.yaml"

SERVER_TIMEOUT = 120
SERVER_INTERVAL = 5.0
APP_WAIT_TIMEOUT = 120
APP_WAIT_INTERVAL = 3.0


@dataclass
class DeployResult:
    """Applications observed while waiting."""

    found: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class RootDeployer:
    """Deploy the root Application and wait for its children.

    All expected children share a single deadline, measured from before the
    first existence check. A slow early child leaves later ones a smaller
    (possibly zero) budget; this is kept as-is, see DESIGN.md.
    """

    def __init__(
        self,
        store: ObjectStore,
        root_app_path: Path,
        expected_apps: list[str],
        app_timeout: float = APP_WAIT_TIMEOUT,
        server_timeout: float = SERVER_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.root_app_path = root_app_path
        self.expected_apps = expected_apps
        self.app_timeout = app_timeout
        self.server_timeout = server_timeout
        self.clock = clock
        self.sleep = sleep

    def ensure_server_ready(self) -> None:
        """Hard precondition: the Argo CD server deployment is Available."""
        if self.store.get(KIND_DEPLOYMENT, GITOPS_NAMESPACE, GITOPS_SERVER_DEPLOYMENT) is None:
            raise HardFailure("Argo CD not installed. Run 'rollout bootstrap' first.")

        if server_available(self.store):
            click.echo("  ✓ Argo CD is ready")
            return

        click.echo("  ⚠ Argo CD server not fully available, waiting...")
        poller = ReadinessPoller(SERVER_INTERVAL, clock=self.clock, sleep=self.sleep)
        result = poller.wait(lambda: server_available(self.store), self.server_timeout)
        if not result.ready:
            raise ReadinessTimeoutError("Argo CD server not ready")
        click.echo("  ✓ Argo CD is ready")

    def deploy(self) -> DeployResult:
        self.ensure_server_ready()

        click.echo("  Applying root Application...")
        self.store.apply_path(self.root_app_path)
        click.echo("  ✓ Root application deployed")

        return self.wait_for_apps()

    def wait_for_apps(self) -> DeployResult:
        """Wait for every expected Application under one shared deadline."""
        result = DeployResult()
        poller = ReadinessPoller(APP_WAIT_INTERVAL, clock=self.clock, sleep=self.sleep)
        started_at = self.clock()

        click.echo(f"  Waiting for ApplicationSets to create {len(self.expected_apps)} apps...")
        for app in self.expected_apps:

            def _exists(name: str = app) -> bool:
                return self.store.get(KIND_APPLICATION, GITOPS_NAMESPACE, name) is not None

            def _progress(attempt: int, elapsed: float, error: str | None, name: str = app) -> None:
                click.echo(f"  Waiting for app: {name} ({elapsed:.0f}s)...")

            outcome = poller.wait(
                _exists, self.app_timeout, started_at=started_at, on_attempt=_progress
            )
            if not outcome.ready:
                logger.error("app_creation_timeout", app=app, found=result.found)
                raise ReadinessTimeoutError(f"Timeout waiting for app '{app}' to be created")
            result.found.append(app)

        result.elapsed_seconds = self.clock() - started_at
        click.echo(f"  ✓ All {len(self.expected_apps)} apps created!")
        return result
