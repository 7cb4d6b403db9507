"""Point Argo CD sources at a fork of the GitOps repository."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from ..errors import HardFailure
from ..shared.logging import get_logger
from .deployer import ROOT_APP_FILE

logger = get_logger(__name__)

SEARCH_DIRS = ["bootstrap", "components", "clusters"]

_REPO_URL_RE = re.compile(r"^(\s*-?\s*repoURL:\s*)(\S+)\s*$")
_REVISION_RE = re.compile(r"^(\s*targetRevision:\s*)(\S+)\s*$")

# targetRevision is matched only this many lines after a rewritten repoURL
REVISION_WINDOW = 3


@dataclass
class RepoRewrite:
    old_url: str
    files: list[Path] = field(default_factory=list)


def current_repo_url(repo_root: Path) -> str:
    """Read the Git URL the root Application currently points at."""
    path = repo_root / ROOT_APP_FILE
    if not path.exists():
        raise HardFailure(f"Root application not found: {path}")
    app = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    url = app.get("spec", {}).get("source", {}).get("repoURL")
    if not url:
        raise HardFailure(f"No spec.source.repoURL in {path}")
    return url


def rewrite_repo_refs(text: str, old_url: str, new_url: str, branch: str) -> tuple[str, int]:
    """Replace repoURL lines equal to old_url and their targetRevision.

    Helm or other sources with a different repoURL are left alone.

    Returns:
        Tuple of (new text, number of repoURL lines replaced).
    """
    lines = text.splitlines(keepends=True)
    replaced = 0
    window = 0

    for index, line in enumerate(lines):
        ending = "\n" if line.endswith("\n") else ""
        url_match = _REPO_URL_RE.match(line.rstrip("\n"))
        if url_match:
            if url_match.group(2).strip("'\"") == old_url:
                lines[index] = f"{url_match.group(1)}{new_url}{ending}"
                replaced += 1
                window = REVISION_WINDOW
            else:
                window = 0
            continue

        if window:
            window -= 1
            rev_match = _REVISION_RE.match(line.rstrip("\n"))
            if rev_match:
                lines[index] = f"{rev_match.group(1)}{branch}{ending}"
                window = 0

    return "".join(lines), replaced


def configure_repo(repo_root: Path, new_url: str | None, branch: str) -> RepoRewrite:
    """Rewrite every Application/ApplicationSet source pointing at this repo."""
    if not new_url:
        raise HardFailure("GITOPS_REPO_URL is not set (set it in the environment or the env file)")

    result = RepoRewrite(old_url=current_repo_url(repo_root))

    for dirname in SEARCH_DIRS:
        base = repo_root / dirname
        if not base.is_dir():
            continue
        for path in sorted(list(base.rglob("*.yaml")) + list(base.rglob("*.yml"))):
            text = path.read_text(encoding="utf-8")
            new_text, count = rewrite_repo_refs(text, result.old_url, new_url, branch)
            if count and new_text != text:
                path.write_text(new_text, encoding="utf-8")
                result.files.append(path)
                logger.info("repo_refs_rewritten", file=str(path), count=count)

    return result
