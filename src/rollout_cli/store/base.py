"""Object store contract shared by every rollout component.

The cluster is treated as a key/value store of JSON objects identified by
kind, namespace and name. Components receive a store instance explicitly so
that tests can substitute an in-memory fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Resource kinds, as accepted by `oc get <kind>`
KIND_APPLICATION = "application.argoproj.io"
KIND_APPLICATIONSET = "applicationset.argoproj.io"
KIND_CLUSTER_AUTOSCALER = "clusterautoscaler"
KIND_CSV = "clusterserviceversion"
KIND_DEPLOYMENT = "deployment"
KIND_INFRASTRUCTURE = "infrastructure"
KIND_MACHINE = "machine"
KIND_MACHINE_AUTOSCALER = "machineautoscaler"
KIND_MACHINE_CONFIG_POOL = "machineconfigpool"
KIND_MACHINESET = "machineset"
KIND_NAMESPACE = "namespace"
KIND_NODE = "node"
KIND_POD = "pod"
KIND_ROUTE = "route"
KIND_SECRET = "secret"


def kind_key(kind: str) -> str:
    """Normalize a kind (``Application`` or ``application.argoproj.io``)."""
    return kind.split(".", 1)[0].lower()


@dataclass
class SelectorTerm:
    """One term of a label selector."""

    key: str
    value: str | None = None
    negated: bool = False

    def matches(self, labels: dict[str, str]) -> bool:
        if self.negated:
            return self.key not in labels
        if self.value is None:
            return self.key in labels
        return labels.get(self.key) == self.value


def parse_selector(selector: str | None) -> list[SelectorTerm]:
    """Parse a label selector supporting ``k``, ``!k`` and ``k=v`` terms."""
    terms: list[SelectorTerm] = []
    if not selector:
        return terms

    for part in selector.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("!"):
            terms.append(SelectorTerm(key=part[1:], negated=True))
        elif "=" in part:
            key, value = part.split("=", 1)
            terms.append(SelectorTerm(key=key.rstrip("="), value=value))
        else:
            terms.append(SelectorTerm(key=part))
    return terms


def matches_selector(obj: dict[str, Any], selector: str | None) -> bool:
    """Check whether an object's labels satisfy a selector."""
    labels = obj.get("metadata", {}).get("labels") or {}
    return all(term.matches(labels) for term in parse_selector(selector))


class ObjectStore(ABC):
    """Abstract cluster object store."""

    @abstractmethod
    def whoami(self) -> str:
        """Return the API server URL.

        Raises:
            NotAuthenticatedError: If there is no logged-in session.
        """

    @abstractmethod
    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any] | None:
        """Fetch one object, or None when it does not exist."""

    @abstractmethod
    def apply(self, spec: dict[str, Any], dry_run: bool = False) -> dict[str, Any]:
        """Create or update an object (upsert)."""

    @abstractmethod
    def apply_path(self, path: Path, dry_run: bool = False) -> None:
        """Apply a manifest file or a kustomize directory."""

    @abstractmethod
    def patch(
        self,
        kind: str,
        namespace: str | None,
        name: str,
        merge_patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to an existing object."""

    @abstractmethod
    def delete(
        self,
        kind: str,
        namespace: str | None,
        name: str | None = None,
        selector: str | None = None,
    ) -> int:
        """Delete objects by name, by selector, or all of a kind.

        Returns:
            Number of objects deleted.
        """

    @abstractmethod
    def list(
        self,
        kind: str,
        namespace: str | None = None,
        selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List objects of a kind, optionally filtered by label selector."""
