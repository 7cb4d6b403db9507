"""Whole-cluster validation checks."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import NotAuthenticatedError, StoreError
from ..store import KIND_APPLICATION, ObjectStore
from ..store.status import app_converged, object_name
from .installer import server_available
from .manifests import GITOPS_NAMESPACE
from .nodes import count_ready_workers


@dataclass
class ValidationReport:
    """List of (check name, passed, detail)."""

    checks: list[tuple[str, bool, str]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(ok for _, ok, _ in self.checks)

    def add(self, name: str, ok: bool, detail: str = "") -> None:
        self.checks.append((name, ok, detail))


class ClusterValidator:
    """Run read-only checks against the cluster."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def validate(self) -> ValidationReport:
        report = ValidationReport()

        try:
            server = self.store.whoami()
        except NotAuthenticatedError as e:
            report.add("Cluster login", False, e.message)
            return report
        report.add("Cluster login", True, server)

        try:
            workers = count_ready_workers(self.store)
            report.add("Ready worker nodes", workers > 0, str(workers))
        except StoreError as e:
            report.add("Ready worker nodes", False, e.message)

        try:
            report.add("Argo CD server available", server_available(self.store))
        except StoreError as e:
            report.add("Argo CD server available", False, e.message)

        try:
            apps = self.store.list(KIND_APPLICATION, GITOPS_NAMESPACE)
        except StoreError as e:
            report.add("Applications Synced + Healthy", False, e.message)
            return report

        unhealthy = [object_name(a) for a in apps if not app_converged(a)]
        if not apps:
            report.add("Applications Synced + Healthy", False, "no applications found")
        elif unhealthy:
            report.add("Applications Synced + Healthy", False, ", ".join(unhealthy))
        else:
            report.add("Applications Synced + Healthy", True, f"{len(apps)} apps")
        return report
