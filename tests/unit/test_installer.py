"""Unit tests for GitOps control-plane installation."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from rollout_cli.errors import StoreError
from rollout_cli.rollout import ControlPlaneInstaller, InstallResult
from rollout_cli.rollout.installer import BOOTSTRAP_DIR, server_available
from tests.mocks import make_server_deployment


@pytest.fixture
def installer(store, repo_root, clock):
    return ControlPlaneInstaller(
        store, repo_root / BOOTSTRAP_DIR, server_timeout=300, clock=clock, sleep=clock.sleep
    )


def _healthy_control_plane(store):
    store.add(
        {
            "kind": "ClusterServiceVersion",
            "metadata": {
                "name": "openshift-gitops-operator.v1.14.0",
                "namespace": "openshift-gitops-operator",
            },
            "status": {"phase": "Succeeded"},
        }
    )
    store.add({"kind": "Namespace", "metadata": {"name": "openshift-gitops"}})
    store.add(make_server_deployment())
    store.add(
        {
            "kind": "Route",
            "metadata": {"name": "openshift-gitops-server", "namespace": "openshift-gitops"},
            "spec": {"host": "openshift-gitops-server-openshift-gitops.apps.demo.example.com"},
        }
    )


class TestServerAvailable:
    """Tests for server_available()."""

    def test_missing_deployment(self, store):
        assert server_available(store) is False

    def test_available(self, store):
        store.add(make_server_deployment(available=True))
        assert server_available(store) is True

    def test_not_available(self, store):
        store.add(make_server_deployment(available=False))
        assert server_available(store) is False


class TestControlPlaneInstaller:
    """Tests for ControlPlaneInstaller."""

    def test_install_healthy(self, installer, store, clock):
        _healthy_control_plane(store)

        result = installer.install()

        assert result == InstallResult(
            apply_attempts=1,
            operator_ready=True,
            namespace_ready=True,
            server_ready=True,
            console_host="openshift-gitops-server-openshift-gitops.apps.demo.example.com",
        )
        assert clock.sleeps == []
        # Initial apply plus the root Application re-apply
        assert len(store.applied_paths) == 2
        assert store.get("application", "openshift-gitops", "cluster-config") is not None

    def test_retries_until_crds_exist(self, installer, store):
        _healthy_control_plane(store)
        store.reject_applies = 3

        result = installer.install()

        assert result.apply_attempts == 4

    def test_every_wait_is_soft(self, installer, store, clock, capsys):
        """Nothing ever becomes ready; installation still returns."""
        result = installer.install()

        assert result.operator_ready is False
        assert result.namespace_ready is False
        assert result.server_ready is False
        assert result.console_host == "pending"
        out = capsys.readouterr().out
        assert "⚠ GitOps operator not confirmed ready, continuing..." in out
        assert "⚠ Timeout, continuing..." in out
        # 59 operator sleeps of 5s, 29 namespace sleeps of 2s, then the 300s server budget
        assert clock.elapsed == 59 * 5 + 29 * 2 + 300

    def test_operator_csv_must_match_gitops(self, installer, store):
        store.add(
            {
                "kind": "ClusterServiceVersion",
                "metadata": {"name": "other-operator.v1", "namespace": "openshift-gitops-operator"},
                "status": {"phase": "Succeeded"},
            }
        )

        assert installer.install().operator_ready is False

    def test_server_becomes_available_mid_wait(self, installer, store, clock):
        _healthy_control_plane(store)
        store.set_status(
            "deployment",
            "openshift-gitops",
            "openshift-gitops-server",
            {"conditions": [{"type": "Available", "status": "False"}]},
        )
        clock.after(
            40,
            lambda: store.set_status(
                "deployment",
                "openshift-gitops",
                "openshift-gitops-server",
                {"conditions": [{"type": "Available", "status": "True"}]},
            ),
        )

        result = installer.install()

        assert result.server_ready is True
        assert clock.elapsed == 40

    def test_reapply_failure_is_soft(self, installer, store):
        _healthy_control_plane(store)

        with patch.object(store, "apply_path", side_effect=[None, StoreError("webhook denied")]):
            result = installer.install()

        assert result.server_ready is True
