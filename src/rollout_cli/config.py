"""CLI configuration management.

Settings come from an optional KEY=VALUE file (``./.env`` by default) merged
with the process environment.

Precedence (highest to lowest):
1. Environment variables
2. Env file
3. Defaults
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ENV_FILE = Path(".env")
DEFAULT_SYNC_TIMEOUT = 300
DEFAULT_GITOPS_BRANCH = "main"


@dataclass
class PoolDefaults:
    """Default sizing for one worker pool role."""

    instance_type: str
    replicas: int = 1
    az: str | None = None
    volume_size: int = 120
    min_replicas: int = 1
    max_replicas: int = 3


POOL_DEFAULTS = {
    "cpu": PoolDefaults(instance_type="m5.4xlarge", volume_size=120),
    "gpu": PoolDefaults(instance_type="g5.2xlarge", volume_size=200),
}

# Per-pool env keys; the first entry wins, later ones are generic fallbacks
POOL_ENV_VARS = {
    "instance_type": ["{prefix}_INSTANCE_TYPE", "INSTANCE_TYPE"],
    "replicas": ["{prefix}_REPLICAS", "REPLICAS"],
    "az": ["{prefix}_AZ"],
    "volume_size": ["{prefix}_VOLUME_SIZE", "VOLUME_SIZE"],
    "min_replicas": ["{prefix}_MIN"],
    "max_replicas": ["{prefix}_MAX"],
}

ENV_VARS = {
    "sync_timeout": "SYNC_TIMEOUT",
    "gitops_repo_url": "GITOPS_REPO_URL",
    "gitops_branch": "GITOPS_BRANCH",
    "quay_user": "QUAY_USER",
    "quay_token": "QUAY_TOKEN",
    "repo_root": "ROLLOUT_REPO_ROOT",
    "kubeconfig": "KUBECONFIG",
}


@dataclass
class RolloutConfig:
    """Resolved CLI configuration."""

    repo_root: Path = field(default_factory=Path.cwd)
    kubeconfig: str | None = None
    sync_timeout: int = DEFAULT_SYNC_TIMEOUT
    gitops_repo_url: str | None = None
    gitops_branch: str = DEFAULT_GITOPS_BRANCH
    quay_user: str | None = None
    quay_token: str | None = None
    pools: dict[str, PoolDefaults] = field(default_factory=dict)

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def pool(self, role: str) -> PoolDefaults:
        """Get pool defaults for a role (cpu or gpu)."""
        return self.pools[role]


def load_env_file(path: Path) -> dict[str, str]:
    """Parse a KEY=VALUE env file.

    Blank lines and ``#`` comments (full-line or inline) are ignored, an
    optional ``export`` prefix is dropped and matching quotes are stripped.

    Args:
        path: Path to the env file

    Returns:
        Dict of parsed values, empty if the file does not exist
    """
    values: dict[str, str] = {}
    if not path.exists():
        return values

    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()

        closing = value.find(value[0], 1) if value[:1] in ("'", '"') else -1
        if closing > 0:
            # Anything after the closing quote is an inline comment
            value = value[1:closing]
        elif " #" in value:
            value = value.split(" #", 1)[0].rstrip()

        if key:
            values[key] = value

    return values


def merge_environment(
    file_values: Mapping[str, str],
    environ: Mapping[str, str],
) -> tuple[dict[str, str], dict[str, str]]:
    """Merge env-file values under the process environment.

    Returns:
        Tuple of (merged values, source per key)
    """
    merged: dict[str, str] = dict(file_values)
    sources = {key: "env file" for key in file_values}
    for key, value in environ.items():
        if value != "":
            merged[key] = value
            sources[key] = "environment"
    return merged, sources


def _as_int(key: str, raw: str, fallback: int) -> int:
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid_integer_setting", key=key, value=raw, fallback=fallback)
        return fallback


def _load_pool(
    role: str,
    merged: Mapping[str, str],
    origins: Mapping[str, str],
    sources: dict[str, str],
) -> PoolDefaults:
    base = POOL_DEFAULTS[role]
    pool = PoolDefaults(**vars(base))
    prefix = role.upper()

    for attr, templates in POOL_ENV_VARS.items():
        for template in templates:
            env_key = template.format(prefix=prefix)
            if env_key not in merged:
                continue
            raw = merged[env_key]
            current = getattr(pool, attr)
            if attr in ("instance_type", "az"):
                setattr(pool, attr, raw or current)
            else:
                setattr(pool, attr, _as_int(env_key, raw, current))
            sources[f"{role}.{attr}"] = origins[env_key]
            break

    return pool


def load_config(
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> RolloutConfig:
    """Load CLI configuration.

    Args:
        env_file: KEY=VALUE file to merge (default: ./.env)
        environ: Environment mapping (default: os.environ)

    Returns:
        RolloutConfig with values and sources
    """
    env_path = env_file if env_file is not None else DEFAULT_ENV_FILE
    file_values = load_env_file(env_path)
    merged, origins = merge_environment(file_values, os.environ if environ is None else environ)

    config = RolloutConfig()
    sources: dict[str, str] = {}

    for key, env_key in ENV_VARS.items():
        if env_key not in merged:
            continue
        raw = merged[env_key]
        if key == "sync_timeout":
            config.sync_timeout = _as_int(env_key, raw, DEFAULT_SYNC_TIMEOUT)
        elif key == "repo_root":
            config.repo_root = Path(raw)
        else:
            setattr(config, key, raw)
        sources[key] = origins[env_key]

    config.pools = {
        role: _load_pool(role, merged, origins, sources) for role in POOL_DEFAULTS
    }
    config._sources = sources

    logger.debug("config_loaded", env_file=str(env_path), keys=sorted(sources))
    return config
