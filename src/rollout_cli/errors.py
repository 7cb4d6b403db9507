"""Error types for rollout-cli.

Two families of failure exist:

- HardFailure and its subclasses abort the current step and the whole
  pipeline; the CLI maps them to exit code 1.
- StoreError reports a failed object-store command. It is not a hard
  failure by itself; callers decide whether to retry, swallow or escalate.
"""

from dataclasses import dataclass


@dataclass
class RolloutError(Exception):
    """Base error class for rollout errors."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class HardFailure(RolloutError):
    """Pipeline-terminating failure."""

    message: str = "Hard failure"


@dataclass
class NotAuthenticatedError(HardFailure):
    """No logged-in cluster session."""

    message: str = "Not logged into OpenShift cluster"


@dataclass
class UnsupportedPlatformError(HardFailure):
    """Cluster platform is not the supported cloud."""

    message: str = "Unsupported platform"


@dataclass
class ReferenceNotFoundError(HardFailure):
    """No reference MachineSet to copy placement from."""

    message: str = "No existing worker MachineSet found to use as reference"


@dataclass
class TemplateNotFoundError(HardFailure):
    """Provisioning template file is missing."""

    message: str = "Template file not found"


@dataclass
class ReadinessTimeoutError(HardFailure):
    """A hard readiness gate did not open before its deadline."""

    message: str = "Timed out waiting for readiness"


@dataclass
class StoreError(RolloutError):
    """An object-store command failed."""

    message: str = "Object store command failed"
    stderr: str = ""
