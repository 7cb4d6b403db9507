"""Worker pool provisioning.

Creates a MachineSet for a dedicated worker role by copying placement,
network and image attributes from an existing reference MachineSet, then
blocks until a node carrying the role label reports Ready.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from ..errors import (
    ReadinessTimeoutError,
    ReferenceNotFoundError,
    StoreError,
    UnsupportedPlatformError,
)
from ..shared.logging import get_logger
from ..store import (
    KIND_CLUSTER_AUTOSCALER,
    KIND_INFRASTRUCTURE,
    KIND_MACHINE,
    KIND_MACHINESET,
    KIND_NODE,
    ObjectStore,
)
from ..store.status import UNKNOWN, condition_status, machine_phase, node_ready, object_name
from .manifests import (
    CLUSTER_AUTOSCALER_NAME,
    MACHINE_API_NAMESPACE,
    build_cluster_autoscaler,
    build_machine_autoscaler,
    dump_manifest,
    render_template,
)
from .poller import ReadinessPoller

logger = get_logger(__name__)

SUPPORTED_PLATFORM = "AWS"

# MachineSets whose name contains one of these are already specialized
EXCLUDED_REFERENCE_PATTERNS = ("gpu", "infra", "cpu-worker")

NODE_READY_TIMEOUT = 1200  # 20 minutes
NODE_READY_INTERVAL = 15.0

MACHINESET_LABEL = "machine.openshift.io/cluster-api-machineset"


@dataclass
class PoolConfig:
    """Requested worker pool."""

    role: str
    instance_type: str
    replicas: int = 1
    az: str | None = None
    volume_size: int = 120
    min_replicas: int = 1
    max_replicas: int = 3
    autoscaling: bool = True
    dry_run: bool = False

    @property
    def worker_role(self) -> str:
        return f"{self.role}-worker"

    @property
    def node_role_label(self) -> str:
        return f"node-role.kubernetes.io/{self.worker_role}"


@dataclass
class ReferenceAttributes:
    """Attributes copied verbatim from the reference MachineSet."""

    machineset: str
    region: str
    zone: str
    ami: str
    subnet: str
    iam_profile: str
    security_group: str


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    name: str
    manifest: dict[str, Any]
    dry_run: bool = False
    node: str | None = None


def machineset_name(infra_id: str, worker_role: str, zone: str) -> str:
    """Deterministic MachineSet name: infra id, role and zone suffix."""
    return f"{infra_id}-{worker_role}-{zone.rsplit('-', 1)[-1]}"


def is_reference_candidate(name: str) -> bool:
    return not any(pattern in name for pattern in EXCLUDED_REFERENCE_PATTERNS)


def _first_filter_value(entry: dict[str, Any] | None) -> str:
    filters = (entry or {}).get("filters") or [{}]
    values = filters[0].get("values") or [""]
    return str(values[0])


def extract_reference(machineset: dict[str, Any]) -> ReferenceAttributes:
    """Read placement/network/image attributes from a MachineSet."""
    provider = (
        machineset.get("spec", {})
        .get("template", {})
        .get("spec", {})
        .get("providerSpec", {})
        .get("value", {})
    )
    placement = provider.get("placement", {})
    security_groups = provider.get("securityGroups") or [{}]

    return ReferenceAttributes(
        machineset=object_name(machineset),
        region=placement.get("region", ""),
        zone=placement.get("availabilityZone", ""),
        ami=provider.get("ami", {}).get("id", ""),
        subnet=_first_filter_value(provider.get("subnet")),
        iam_profile=provider.get("iamInstanceProfile", {}).get("id", ""),
        security_group=_first_filter_value(security_groups[0]),
    )


class MachineSetProvisioner:
    """Provision a dedicated worker MachineSet."""

    def __init__(
        self,
        store: ObjectStore,
        repo_root: Path,
        poller: ReadinessPoller | None = None,
        ready_timeout: float = NODE_READY_TIMEOUT,
    ):
        """Initialize provisioner.

        Args:
            store: Cluster object store.
            repo_root: Repository root holding bootstrap/ templates.
            poller: Poller for the node readiness gate.
            ready_timeout: Seconds to wait for a Ready node.
        """
        self.store = store
        self.repo_root = repo_root
        self.poller = poller or ReadinessPoller(interval_seconds=NODE_READY_INTERVAL)
        self.ready_timeout = ready_timeout

    def template_path(self, role: str) -> Path:
        directory = self.repo_root / "bootstrap" / f"{role}-machineset"
        return directory / f"{role}-machineset-template.yaml"

    def discover_infra_id(self) -> str:
        """Verify the platform and return the infrastructure id."""
        infra = self.store.get(KIND_INFRASTRUCTURE, None, "cluster") or {}
        status = infra.get("status", {})
        platform = status.get("platform") or "unknown"
        if platform != SUPPORTED_PLATFORM:
            raise UnsupportedPlatformError(
                f"Only {SUPPORTED_PLATFORM} is supported. Detected platform: {platform}"
            )
        return status.get("infrastructureName", "")

    def find_reference(self) -> dict[str, Any]:
        """Return the first non-specialized MachineSet."""
        machinesets = self.store.list(KIND_MACHINESET, MACHINE_API_NAMESPACE)
        for machineset in sorted(machinesets, key=object_name):
            if is_reference_candidate(object_name(machineset)):
                return machineset
        raise ReferenceNotFoundError()

    def build(self, config: PoolConfig) -> tuple[str, dict[str, Any]]:
        """Discover cluster values and render the MachineSet.

        Returns:
            Tuple of (MachineSet name, rendered manifest).
        """
        infra_id = self.discover_infra_id()
        reference = extract_reference(self.find_reference())
        zone = config.az or reference.zone
        replicas = config.min_replicas if config.autoscaling else config.replicas
        name = machineset_name(infra_id, config.worker_role, zone)

        click.echo(f"  Infrastructure ID: {infra_id}")
        click.echo(f"  Reference MachineSet: {reference.machineset}")
        click.echo(f"  Region: {reference.region}")
        click.echo(f"  Availability Zone: {zone}")
        click.echo(f"  AMI: {reference.ami}")
        click.echo(f"  Instance Type: {config.instance_type}")
        click.echo(f"  Replicas: {replicas}")
        click.echo(f"  Volume Size: {config.volume_size}GB")
        if config.autoscaling:
            click.echo(
                f"  Autoscaling: enabled (min={config.min_replicas}, max={config.max_replicas})"
            )

        manifest = render_template(
            self.template_path(config.role),
            {
                "MS_NAME": name,
                "INFRA_ID": infra_id,
                "REPLICAS": replicas,
                "AMI": reference.ami,
                "INSTANCE_TYPE": config.instance_type,
                "AZ": zone,
                "REGION": reference.region,
                "SUBNET": reference.subnet,
                "IAM_PROFILE": reference.iam_profile,
                "SG": reference.security_group,
                "VOLUME_SIZE": config.volume_size,
            },
        )
        return name, manifest

    def provision(self, config: PoolConfig) -> ProvisionResult:
        """Create or update the pool and wait for a Ready node.

        Raises:
            UnsupportedPlatformError, ReferenceNotFoundError,
            TemplateNotFoundError: Before anything is applied.
            ReadinessTimeoutError: If no node becomes Ready in time. The
                MachineSet and autoscalers stay applied.
        """
        name, manifest = self.build(config)

        if config.dry_run:
            click.echo("\n[DRY-RUN] Would apply:")
            click.echo(dump_manifest(manifest))
            self.store.apply(manifest, dry_run=True)
            click.echo("[DRY-RUN] Complete - no changes made")
            return ProvisionResult(name=name, manifest=manifest, dry_run=True)

        self.store.apply(manifest)
        logger.info("machineset_applied", name=name, role=config.worker_role)
        click.echo(f"  ✓ MachineSet applied: {name}")

        if config.autoscaling:
            self.ensure_autoscaling(name, config)

        node = self.wait_for_node(name, config)
        return ProvisionResult(name=name, manifest=manifest, node=node)

    def ensure_autoscaling(self, name: str, config: PoolConfig) -> None:
        if self.store.get(KIND_CLUSTER_AUTOSCALER, None, CLUSTER_AUTOSCALER_NAME) is None:
            self.store.apply(build_cluster_autoscaler())
            click.echo("  ✓ ClusterAutoscaler created")
        else:
            click.echo("  ✓ ClusterAutoscaler already exists")

        self.store.apply(build_machine_autoscaler(name, config.min_replicas, config.max_replicas))
        click.echo(
            f"  ✓ MachineAutoscaler applied: {name} "
            f"(min={config.min_replicas}, max={config.max_replicas})"
        )

    def wait_for_node(self, name: str, config: PoolConfig) -> str:
        """Block until a node with the pool's role label is Ready."""
        click.echo(
            f"  Waiting for {config.worker_role} node to be Ready (this may take 5-15 minutes)..."
        )
        ready_nodes: list[str] = []

        def _ready() -> bool:
            nodes = self.store.list(KIND_NODE, None, config.node_role_label)
            ready_nodes[:] = [object_name(n) for n in nodes if node_ready(n)]
            return bool(ready_nodes)

        def _progress(attempt: int, elapsed: float, error: str | None) -> None:
            try:
                machines = self.store.list(
                    KIND_MACHINE, MACHINE_API_NAMESPACE, f"{MACHINESET_LABEL}={name}"
                )
                nodes = self.store.list(KIND_NODE, None, config.node_role_label)
            except StoreError as e:
                click.echo(f"  Waiting for {config.worker_role} node... ({e.message})")
                return

            phase = machine_phase(machines[0]) if machines else UNKNOWN
            if nodes:
                ready = condition_status(nodes[0], "Ready")
                click.echo(
                    f"  {config.worker_role} node exists but not Ready yet "
                    f"(Machine: {phase}, Node Ready: {ready}) ({elapsed:.0f}s)"
                )
            else:
                click.echo(
                    f"  Waiting for {config.worker_role} node... "
                    f"(Machine phase: {phase}) ({elapsed:.0f}s)"
                )

        result = self.poller.wait(_ready, self.ready_timeout, on_attempt=_progress)
        if not result.ready:
            logger.error("node_ready_timeout", machineset=name, elapsed=result.elapsed_seconds)
            raise ReadinessTimeoutError(
                f"Timeout waiting for {config.worker_role} node after "
                f"{self.ready_timeout:.0f} seconds. Check machines: "
                f"oc get machines -n {MACHINE_API_NAMESPACE} | grep {config.worker_role}"
            )

        click.echo(f"  ✓ {config.worker_role} node is Ready: {ready_nodes[0]}")
        return ready_nodes[0]
