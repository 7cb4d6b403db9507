"""Status field accessors for cluster objects.

Missing fields read as "Unknown", mirroring what a jsonpath query against a
half-initialized object returns.
"""

from __future__ import annotations

from typing import Any

UNKNOWN = "Unknown"

SYNC_SYNCED = "Synced"
HEALTH_HEALTHY = "Healthy"


def condition_status(obj: dict[str, Any] | None, condition_type: str) -> str:
    """Return the status ("True"/"False"/...) of a named status condition."""
    if not obj:
        return UNKNOWN
    for condition in obj.get("status", {}).get("conditions") or []:
        if condition.get("type") == condition_type:
            return str(condition.get("status", UNKNOWN))
    return UNKNOWN


def node_ready(node: dict[str, Any] | None) -> bool:
    return condition_status(node, "Ready") == "True"


def pod_ready(pod: dict[str, Any] | None) -> bool:
    return condition_status(pod, "Ready") == "True"


def deployment_available(deployment: dict[str, Any] | None) -> bool:
    return condition_status(deployment, "Available") == "True"


def machine_phase(machine: dict[str, Any] | None) -> str:
    if not machine:
        return UNKNOWN
    return machine.get("status", {}).get("phase") or UNKNOWN


def csv_phase(csv: dict[str, Any] | None) -> str:
    if not csv:
        return UNKNOWN
    return csv.get("status", {}).get("phase") or UNKNOWN


def app_sync_status(app: dict[str, Any] | None) -> str:
    if not app:
        return UNKNOWN
    return app.get("status", {}).get("sync", {}).get("status") or UNKNOWN


def app_health_status(app: dict[str, Any] | None) -> str:
    if not app:
        return UNKNOWN
    return app.get("status", {}).get("health", {}).get("status") or UNKNOWN


def app_converged(app: dict[str, Any] | None) -> bool:
    """Synced and Healthy."""
    return app_sync_status(app) == SYNC_SYNCED and app_health_status(app) == HEALTH_HEALTHY


def object_name(obj: dict[str, Any]) -> str:
    return obj.get("metadata", {}).get("name", "")
