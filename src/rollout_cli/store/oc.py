"""Object store backed by the `oc` command line client."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import yaml

from ..errors import NotAuthenticatedError, StoreError
from ..shared.logging import get_logger
from .base import ObjectStore

logger = get_logger(__name__)


class OcStore(ObjectStore):
    """Run store operations through `oc`."""

    def __init__(self, kubeconfig: str | None = None, binary: str = "oc"):
        """Initialize the store.

        Args:
            kubeconfig: Path to kubeconfig file.
            binary: Client binary name (oc or kubectl).
        """
        self.kubeconfig = kubeconfig
        self.binary = binary

    def _oc_cmd(self) -> list[str]:
        """Build base oc command."""
        cmd = [self.binary]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        return cmd

    def _run(self, args: list[str], stdin: str | None = None) -> subprocess.CompletedProcess:
        cmd = self._oc_cmd() + args
        logger.debug("oc_command", args=args)
        try:
            return subprocess.run(cmd, input=stdin, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise StoreError(f"{self.binary} not found. Is the OpenShift client installed?") from e

    def _check(self, result: subprocess.CompletedProcess, action: str) -> str:
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise StoreError(f"Failed to {action}: {stderr}", stderr=stderr)
        return result.stdout or ""

    @staticmethod
    def _ns_args(namespace: str | None) -> list[str]:
        return ["-n", namespace] if namespace else []

    def whoami(self) -> str:
        result = self._run(["whoami"])
        if result.returncode != 0:
            raise NotAuthenticatedError()
        server = self._run(["whoami", "--show-server"])
        return self._check(server, "read server URL").strip()

    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any] | None:
        result = self._run(["get", kind, name, *self._ns_args(namespace), "-o", "json"])
        if result.returncode != 0:
            if "NotFound" in (result.stderr or "") or "not found" in (result.stderr or ""):
                return None
            self._check(result, f"get {kind}/{name}")
        return json.loads(result.stdout)

    def apply(self, spec: dict[str, Any], dry_run: bool = False) -> dict[str, Any]:
        args = ["apply", "-f", "-", "-o", "json"]
        if dry_run:
            args.append("--dry-run=client")
        name = spec.get("metadata", {}).get("name", "?")
        result = self._run(args, stdin=yaml.safe_dump(spec, sort_keys=False))
        stdout = self._check(result, f"apply {spec.get('kind', '?')}/{name}")
        return json.loads(stdout) if stdout.strip() else spec

    def apply_path(self, path: Path, dry_run: bool = False) -> None:
        flag = "-k" if path.is_dir() else "-f"
        args = ["apply", flag, str(path)]
        if dry_run:
            args.append("--dry-run=client")
        self._check(self._run(args), f"apply {path}")

    def patch(
        self,
        kind: str,
        namespace: str | None,
        name: str,
        merge_patch: dict[str, Any],
    ) -> dict[str, Any]:
        result = self._run(
            [
                "patch",
                kind,
                name,
                *self._ns_args(namespace),
                "--type=merge",
                "-p",
                json.dumps(merge_patch),
                "-o",
                "json",
            ]
        )
        return json.loads(self._check(result, f"patch {kind}/{name}"))

    def delete(
        self,
        kind: str,
        namespace: str | None,
        name: str | None = None,
        selector: str | None = None,
    ) -> int:
        args = ["delete", kind, *self._ns_args(namespace)]
        if name:
            args.append(name)
        elif selector:
            args.extend(["-l", selector])
        else:
            args.append("--all")
        args.extend(["--ignore-not-found", "-o", "name"])

        stdout = self._check(self._run(args), f"delete {kind}")
        return len([line for line in stdout.splitlines() if line.strip()])

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        selector: str | None = None,
    ) -> list[dict[str, Any]]:
        args = ["get", kind, *self._ns_args(namespace), "-o", "json"]
        if selector:
            args.extend(["-l", selector])
        stdout = self._check(self._run(args), f"list {kind}")
        return json.loads(stdout).get("items", [])
