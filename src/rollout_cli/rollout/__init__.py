"""Rollout package: provisioning, GitOps bootstrap and staged sync.

This package provides the steps behind the `rollout` commands:
1. Prepares the cluster (pull secret, image mirrors, worker pools)
2. Installs the GitOps control plane
3. Deploys the root Application
4. Syncs child Applications one at a time in dependency order
"""

from .cluster import ImageMirrorInstaller, MachineSetScaler, PullSecretUpdater, resolve_replicas
from .deployer import DeployResult, RootDeployer
from .installer import ControlPlaneInstaller, InstallResult
from .nodes import MasterDedicationGuard
from .poller import PollOutcome, PollResult, ReadinessPoller, wait
from .provisioner import MachineSetProvisioner, PoolConfig, ProvisionResult, machineset_name
from .refresh import ImageRefreshTrigger
from .repo import configure_repo
from .sequencer import SequenceResult, Step, StepSequencer
from .sync import (
    SYNC_ORDER,
    AppOutcome,
    StagedSyncOrchestrator,
    SyncPolicyToggler,
    SyncReport,
)
from .validate import ClusterValidator, ValidationReport

__all__ = [
    # Polling
    "ReadinessPoller",
    "PollOutcome",
    "PollResult",
    "wait",
    # Sequencing
    "Step",
    "StepSequencer",
    "SequenceResult",
    # Cluster preparation
    "PullSecretUpdater",
    "ImageMirrorInstaller",
    "MachineSetScaler",
    "resolve_replicas",
    "MachineSetProvisioner",
    "PoolConfig",
    "ProvisionResult",
    "machineset_name",
    "MasterDedicationGuard",
    # GitOps
    "ControlPlaneInstaller",
    "InstallResult",
    "RootDeployer",
    "DeployResult",
    "SYNC_ORDER",
    "AppOutcome",
    "StagedSyncOrchestrator",
    "SyncPolicyToggler",
    "SyncReport",
    "ImageRefreshTrigger",
    "configure_repo",
    # Validation
    "ClusterValidator",
    "ValidationReport",
]
