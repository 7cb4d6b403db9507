"""Unit tests for pre-GitOps cluster preparation."""

from __future__ import annotations

import base64
import json

import pytest

from rollout_cli.errors import HardFailure
from rollout_cli.rollout import (
    ImageMirrorInstaller,
    MachineSetScaler,
    PullSecretUpdater,
    resolve_replicas,
)
from tests.mocks import make_machineset


def _pull_secret(auths: dict) -> dict:
    encoded = base64.b64encode(json.dumps({"auths": auths}).encode()).decode()
    return {
        "kind": "Secret",
        "metadata": {"name": "pull-secret", "namespace": "openshift-config"},
        "data": {".dockerconfigjson": encoded},
    }


def _decoded_auths(store) -> dict:
    secret = store.get("secret", "openshift-config", "pull-secret")
    return json.loads(base64.b64decode(secret["data"][".dockerconfigjson"]))["auths"]


class TestPullSecretUpdater:
    """Tests for PullSecretUpdater."""

    def test_adds_registry_and_keeps_existing(self, store):
        store.add(_pull_secret({"registry.redhat.io": {"auth": "abc"}}))

        changed = PullSecretUpdater(store).update("robot", "s3cret")

        assert changed is True
        auths = _decoded_auths(store)
        assert auths["registry.redhat.io"] == {"auth": "abc"}
        assert base64.b64decode(auths["quay.io/rhoai"]["auth"]).decode() == "robot:s3cret"

    def test_second_update_is_noop(self, store):
        store.add(_pull_secret({}))
        updater = PullSecretUpdater(store)

        updater.update("robot", "s3cret")
        assert updater.update("robot", "s3cret") is False
        assert len(store.ops("patch")) == 1

    @pytest.mark.parametrize("user,token", [(None, "t"), ("u", None), ("", "")])
    def test_missing_credentials(self, store, user, token):
        store.add(_pull_secret({}))

        with pytest.raises(HardFailure, match="QUAY_USER and QUAY_TOKEN"):
            PullSecretUpdater(store).update(user, token)

    def test_missing_secret(self, store):
        with pytest.raises(HardFailure, match="not found"):
            PullSecretUpdater(store).update("robot", "s3cret")


class TestImageMirrorInstaller:
    """Tests for ImageMirrorInstaller."""

    @pytest.fixture
    def manifest(self, tmp_path):
        path = tmp_path / "icsp"
        path.mkdir()
        (path / "icsp.yaml").write_text(
            "apiVersion: operator.openshift.io/v1alpha1\n"
            "kind: ImageContentSourcePolicy\n"
            "metadata:\n"
            "  name: rhoai-nightly\n"
            "spec:\n"
            "  repositoryDigestMirrors:\n"
            "    - mirrors: [quay.io/rhoai]\n"
            "      source: registry.redhat.io/rhoai\n"
        )
        return path

    @staticmethod
    def _pool(updating: bool, updated: bool) -> dict:
        return {
            "kind": "MachineConfigPool",
            "metadata": {"name": "worker"},
            "status": {
                "conditions": [
                    {"type": "Updating", "status": str(updating)},
                    {"type": "Updated", "status": str(updated)},
                ]
            },
        }

    def test_missing_manifest(self, store, tmp_path):
        with pytest.raises(HardFailure, match="ICSP manifest not found"):
            ImageMirrorInstaller(store, tmp_path / "nope").install()

    def test_waits_for_rollout(self, store, clock, manifest):
        store.add(self._pool(updating=False, updated=True))
        clock.after(30, lambda: store.add(self._pool(updating=True, updated=False)))
        clock.after(600, lambda: store.add(self._pool(updating=False, updated=True)))

        result = ImageMirrorInstaller(store, manifest, clock=clock, sleep=clock.sleep).install()

        assert result.rollout_started is True
        assert result.pool_updated is True
        assert store.get("imagecontentsourcepolicy", None, "rhoai-nightly") is not None
        assert clock.elapsed == 600

    def test_unchanged_policy_does_not_block(self, store, clock, manifest):
        store.add(self._pool(updating=False, updated=True))

        result = ImageMirrorInstaller(store, manifest, clock=clock, sleep=clock.sleep).install()

        assert result.rollout_started is False
        assert result.pool_updated is True
        assert clock.elapsed == 120

    def test_update_timeout_is_soft(self, store, clock, manifest):
        store.add(self._pool(updating=True, updated=False))

        result = ImageMirrorInstaller(
            store, manifest, update_timeout=300, clock=clock, sleep=clock.sleep
        ).install()

        assert result.pool_updated is False
        assert clock.elapsed == 300


class TestResolveReplicas:
    """Tests for resolve_replicas()."""

    @pytest.mark.parametrize(
        "current,requested,expected",
        [(2, "5", 5), (2, "+3", 5), (5, "-2", 3), (3, "0", 0), (1, " 4 ", 4), (2, "-2", 0)],
    )
    def test_valid(self, current, requested, expected):
        assert resolve_replicas(current, requested) == expected

    @pytest.mark.parametrize("requested", ["", "two", "+", "1.5", "--1"])
    def test_malformed(self, requested):
        with pytest.raises(HardFailure, match="Invalid replicas value"):
            resolve_replicas(1, requested)

    def test_below_zero(self):
        with pytest.raises(HardFailure, match="below 0"):
            resolve_replicas(1, "-2")


class TestMachineSetScaler:
    """Tests for MachineSetScaler."""

    def test_scale_relative(self, store):
        store.add(make_machineset("demo-cpu-worker-2a", replicas=2))

        assert MachineSetScaler(store).scale("demo-cpu-worker-2a", "+1") == (2, 3)
        ms = store.get("machineset", "openshift-machine-api", "demo-cpu-worker-2a")
        assert ms["spec"]["replicas"] == 3

    def test_same_count_does_not_patch(self, store):
        store.add(make_machineset("demo-cpu-worker-2a", replicas=2))

        MachineSetScaler(store).scale("demo-cpu-worker-2a", "2")

        assert store.ops("patch") == []

    def test_unknown_machineset(self, store):
        with pytest.raises(HardFailure, match="not found"):
            MachineSetScaler(store).scale("missing", "1")

    def test_warns_about_autoscaler(self, store, capsys):
        store.add(make_machineset("demo-cpu-worker-2a", replicas=1))
        store.add(
            {
                "kind": "MachineAutoscaler",
                "metadata": {"name": "demo-cpu-worker-2a", "namespace": "openshift-machine-api"},
            }
        )

        MachineSetScaler(store).scale("demo-cpu-worker-2a", "3")

        assert "MachineAutoscaler 'demo-cpu-worker-2a' may override" in capsys.readouterr().out
