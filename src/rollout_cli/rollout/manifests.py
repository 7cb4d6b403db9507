"""Manifest and patch builders.

Objects the rollout creates itself are built here as plain dicts; the
MachineSet comes from a repository template rendered with envsubst-style
``${VAR}`` substitution.
"""

from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Any

import yaml

from ..errors import HardFailure, TemplateNotFoundError

MACHINE_API_NAMESPACE = "openshift-machine-api"
GITOPS_NAMESPACE = "openshift-gitops"

CLUSTER_AUTOSCALER_NAME = "default"
REFRESH_ANNOTATION = "argocd.argoproj.io/refresh"

AUTOMATED_SYNC = {"prune": True, "selfHeal": True}


def render_template(path: Path, values: dict[str, Any]) -> dict[str, Any]:
    """Render a ``${VAR}`` YAML template into an object.

    Unknown variables render as empty strings and a ``$`` that does not start a
    variable is left as written, as envsubst does.

    Raises:
        TemplateNotFoundError: If the template file does not exist.
        HardFailure: If the rendered text is not valid YAML or not a mapping.
    """
    if not path.is_file():
        raise TemplateNotFoundError(f"Template file not found: {path}")

    class _Empty(dict):
        def __missing__(self, key: str) -> str:
            return ""

    text = Template(path.read_text(encoding="utf-8")).safe_substitute(
        _Empty({k: str(v) for k, v in values.items()})
    )
    try:
        rendered = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise HardFailure(f"Template did not render to valid YAML: {path}: {e}") from e
    if not isinstance(rendered, dict):
        raise HardFailure(f"Template did not render to a single object: {path}")
    return rendered


def dump_manifest(manifest: dict[str, Any]) -> str:
    """Serialize a manifest to YAML."""
    return yaml.dump(manifest, default_flow_style=False, sort_keys=False)


def build_cluster_autoscaler() -> dict[str, Any]:
    """Build the cluster-wide autoscaler singleton."""
    return {
        "apiVersion": "autoscaling.openshift.io/v1",
        "kind": "ClusterAutoscaler",
        "metadata": {"name": CLUSTER_AUTOSCALER_NAME},
        "spec": {
            "podPriorityThreshold": -10,
            "scaleDown": {
                "delayAfterAdd": "20m",
                "delayAfterDelete": "5m",
                "delayAfterFailure": "30s",
                "enabled": True,
                "unneededTime": "5m",
            },
        },
    }


def build_machine_autoscaler(
    machineset: str, min_replicas: int, max_replicas: int
) -> dict[str, Any]:
    """Build a MachineAutoscaler bound to one MachineSet by name."""
    return {
        "apiVersion": "autoscaling.openshift.io/v1beta1",
        "kind": "MachineAutoscaler",
        "metadata": {"name": machineset, "namespace": MACHINE_API_NAMESPACE},
        "spec": {
            "minReplicas": min_replicas,
            "maxReplicas": max_replicas,
            "scaleTargetRef": {
                "apiVersion": "machine.openshift.io/v1beta1",
                "kind": "MachineSet",
                "name": machineset,
            },
        },
    }


def sync_policy_patch(enabled: bool) -> dict[str, Any]:
    """Merge patch toggling an Application's automated sync."""
    automated = dict(AUTOMATED_SYNC) if enabled else None
    return {"spec": {"syncPolicy": {"automated": automated}}}


def refresh_patch() -> dict[str, Any]:
    """Merge patch annotating an Application for an immediate refresh."""
    return {"metadata": {"annotations": {REFRESH_ANNOTATION: "normal"}}}


def remove_label_patch(label: str) -> dict[str, Any]:
    """Merge patch deleting a label."""
    return {"metadata": {"labels": {label: None}}}
