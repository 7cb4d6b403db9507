"""CLI output formatting helpers.

All formatters work with the dict objects returned by the object store.
"""

from typing import Any

import click

from .store.status import (
    app_health_status,
    app_sync_status,
    condition_status,
    object_name,
)


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    click.echo("   ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip())
    for row in rows:
        click.echo("   ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())


def print_app_table(apps: list[dict[str, Any]]) -> None:
    """Print NAME / SYNC / HEALTH for each Application.

    Args:
        apps: Application objects
    """
    if not apps:
        click.echo("No applications found")
        return

    rows = [[object_name(a), app_sync_status(a), app_health_status(a)] for a in apps]
    _print_table(["NAME", "SYNC", "HEALTH"], rows)


def node_roles(node: dict[str, Any]) -> str:
    prefix = "node-role.kubernetes.io/"
    labels = node.get("metadata", {}).get("labels") or {}
    roles = sorted(k[len(prefix) :] for k in labels if k.startswith(prefix))
    return ",".join(roles) or "<none>"


def print_node_table(nodes: list[dict[str, Any]]) -> None:
    """Print NAME / STATUS / ROLES for each node.

    Args:
        nodes: Node objects
    """
    if not nodes:
        click.echo("No nodes found")
        return

    rows = []
    for node in nodes:
        ready = condition_status(node, "Ready")
        status = "Ready" if ready == "True" else "NotReady"
        rows.append([object_name(node), status, node_roles(node)])
    _print_table(["NAME", "STATUS", "ROLES"], rows)


def print_check_results(checks: list[tuple[str, bool, str]]) -> None:
    """Print validation checks.

    Args:
        checks: List of (name, passed, detail)
    """
    for name, passed, detail in checks:
        marker = "✓" if passed else "✗"
        suffix = f": {detail}" if detail else ""
        click.echo(f"  {marker} {name}{suffix}")

    failed = [c for c in checks if not c[1]]
    if failed:
        click.echo(f"\nValidation failed: {len(failed)} of {len(checks)} checks failed")
    else:
        click.echo("\n✓ Validation passed")
