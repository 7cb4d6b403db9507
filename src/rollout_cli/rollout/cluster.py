"""Pre-GitOps cluster preparation: pull secret, image mirrors, scaling."""

from __future__ import annotations

import base64
import json
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import click

from ..errors import HardFailure
from ..shared.logging import get_logger
from ..store import (
    KIND_MACHINE_AUTOSCALER,
    KIND_MACHINE_CONFIG_POOL,
    KIND_MACHINESET,
    KIND_SECRET,
    ObjectStore,
)
from ..store.status import condition_status
from .manifests import MACHINE_API_NAMESPACE
from .poller import ReadinessPoller

logger = get_logger(__name__)

PULL_SECRET_NAMESPACE = "openshift-config"
PULL_SECRET_NAME = "pull-secret"
PULL_SECRET_KEY = ".dockerconfigjson"
RHOAI_REGISTRY = "quay.io/rhoai"

ICSP_DIR = Path("bootstrap") / "icsp"
MCP_POOL = "worker"
MCP_START_TIMEOUT = 120
MCP_UPDATE_TIMEOUT = 1800
MCP_INTERVAL = 15.0


def _encode_auth(user: str, token: str) -> str:
    return base64.b64encode(f"{user}:{token}".encode()).decode()


class PullSecretUpdater:
    """Merge registry credentials into the cluster-wide pull secret."""

    def __init__(self, store: ObjectStore, registry: str = RHOAI_REGISTRY):
        self.store = store
        self.registry = registry

    def update(self, user: str | None, token: str | None) -> bool:
        """Add or refresh the registry entry.

        Returns:
            True if the secret was changed, False if it already matched.

        Raises:
            HardFailure: If credentials are missing or the secret does not exist.
        """
        if not user or not token:
            raise HardFailure(
                "QUAY_USER and QUAY_TOKEN must be set (in the environment or the env file)"
            )

        secret = self.store.get(KIND_SECRET, PULL_SECRET_NAMESPACE, PULL_SECRET_NAME)
        if secret is None:
            raise HardFailure(f"Secret {PULL_SECRET_NAMESPACE}/{PULL_SECRET_NAME} not found")

        raw = (secret.get("data") or {}).get(PULL_SECRET_KEY, "")
        config = json.loads(base64.b64decode(raw)) if raw else {}
        auths = config.setdefault("auths", {})

        entry = {"auth": _encode_auth(user, token), "email": ""}
        if auths.get(self.registry) == entry:
            click.echo(f"  ✓ Credentials for {self.registry} already present")
            return False

        auths[self.registry] = entry
        encoded = base64.b64encode(json.dumps(config).encode()).decode()
        self.store.patch(
            KIND_SECRET,
            PULL_SECRET_NAMESPACE,
            PULL_SECRET_NAME,
            {"data": {PULL_SECRET_KEY: encoded}},
        )
        logger.info("pull_secret_updated", registry=self.registry)
        click.echo(f"  ✓ Added credentials for {self.registry}")
        return True


@dataclass
class MirrorResult:
    rollout_started: bool = False
    pool_updated: bool = False


class ImageMirrorInstaller:
    """Apply the ImageContentSourcePolicy and wait for nodes to roll."""

    def __init__(
        self,
        store: ObjectStore,
        manifest_path: Path,
        update_timeout: float = MCP_UPDATE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.manifest_path = manifest_path
        self.update_timeout = update_timeout
        self.poller = ReadinessPoller(MCP_INTERVAL, clock=clock, sleep=sleep)

    def _pool_condition(self, condition: str) -> bool:
        pool = self.store.get(KIND_MACHINE_CONFIG_POOL, None, MCP_POOL)
        return condition_status(pool, condition) == "True"

    def install(self) -> MirrorResult:
        if not self.manifest_path.exists():
            raise HardFailure(f"ICSP manifest not found: {self.manifest_path}")

        result = MirrorResult()
        self.store.apply_path(self.manifest_path)
        click.echo("  ✓ ImageContentSourcePolicy applied")

        click.echo(f"  Waiting for MachineConfigPool '{MCP_POOL}' to start updating...")
        started = self.poller.wait(lambda: self._pool_condition("Updating"), MCP_START_TIMEOUT)
        result.rollout_started = started.ready
        if not started.ready:
            # Unchanged policy: the pool has nothing to roll
            click.echo("  ⚠ No node update observed, continuing...")

        click.echo("  Waiting for MachineConfigPool update (this may take 10-15 minutes)...")

        def _progress(attempt: int, elapsed: float, error: str | None) -> None:
            click.echo(f"  MachineConfigPool '{MCP_POOL}' still updating ({elapsed:.0f}s)")

        updated = self.poller.wait(
            lambda: self._pool_condition("Updated"), self.update_timeout, on_attempt=_progress
        )
        result.pool_updated = updated.ready
        if updated.ready:
            click.echo(f"  ✓ MachineConfigPool '{MCP_POOL}' updated")
        else:
            logger.warning("mcp_update_timeout", pool=MCP_POOL, elapsed=updated.elapsed_seconds)
            click.echo(f"  ⚠ MachineConfigPool '{MCP_POOL}' not updated yet, continuing...")
        return result


_REPLICAS_RE = re.compile(r"^([+-]?)(\d+)$")


def resolve_replicas(current: int, requested: str) -> int:
    """Resolve N, +N or -N against the current replica count.

    Raises:
        HardFailure: On malformed input or a negative result.
    """
    match = _REPLICAS_RE.match(requested.strip())
    if not match:
        raise HardFailure(f"Invalid replicas value: {requested!r} (expected N, +N or -N)")

    sign, amount = match.group(1), int(match.group(2))
    if sign == "+":
        target = current + amount
    elif sign == "-":
        target = current - amount
    else:
        target = amount

    if target < 0:
        raise HardFailure(f"Cannot scale below 0 (current={current}, requested={requested})")
    return target


class MachineSetScaler:
    """Change a MachineSet's replica count."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def scale(self, name: str, requested: str) -> tuple[int, int]:
        """Scale a MachineSet.

        Returns:
            Tuple of (previous replicas, new replicas).
        """
        machineset = self.store.get(KIND_MACHINESET, MACHINE_API_NAMESPACE, name)
        if machineset is None:
            raise HardFailure(f"MachineSet '{name}' not found in {MACHINE_API_NAMESPACE}")

        current = int(machineset.get("spec", {}).get("replicas") or 0)
        target = resolve_replicas(current, requested)

        if target != current:
            self.store.patch(
                KIND_MACHINESET, MACHINE_API_NAMESPACE, name, {"spec": {"replicas": target}}
            )
        logger.info("machineset_scaled", name=name, previous=current, replicas=target)

        if self.store.get(KIND_MACHINE_AUTOSCALER, MACHINE_API_NAMESPACE, name) is not None:
            click.echo(f"  ⚠ MachineAutoscaler '{name}' may override the replica count")
        return current, target
