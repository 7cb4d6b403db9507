"""Shared test fixtures for rollout-cli tests.

This module provides fixtures for testing rollout components without a
cluster:
- store: In-memory object store
- clock: Fake monotonic clock whose sleep() advances time instantly
- repo_root: Temporary GitOps repository with the bootstrap layout
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import structlog

from tests.mocks import FakeClock, MemoryStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def quiet_logging():
    """Route structlog through stdlib logging at WARNING, as the CLI does by default."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, structlog.dev.ConsoleRenderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """GitOps repository with machineset templates and a root Application."""
    for role in ("cpu", "gpu"):
        target = tmp_path / "bootstrap" / f"{role}-machineset"
        target.mkdir(parents=True)
        template = (FIXTURES_DIR / "machineset-template.yaml").read_text()
        (target / f"{role}-machineset-template.yaml").write_text(template)

    bootstrap = tmp_path / "bootstrap" / "rhoaibu-cluster-nightly"
    bootstrap.mkdir(parents=True)
    (bootstrap / "cluster-config-app.yaml").write_text(
        (FIXTURES_DIR / "cluster-config-app.yaml").read_text()
    )
    return tmp_path

