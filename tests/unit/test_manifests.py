"""Unit tests for manifest and patch builders."""

from __future__ import annotations

import pytest

from rollout_cli.errors import HardFailure, TemplateNotFoundError
from rollout_cli.rollout.manifests import (
    build_cluster_autoscaler,
    build_machine_autoscaler,
    dump_manifest,
    refresh_patch,
    remove_label_patch,
    render_template,
    sync_policy_patch,
)


class TestRenderTemplate:
    """Tests for render_template()."""

    def test_substitutes_and_parses(self, tmp_path):
        template = tmp_path / "t.yaml"
        template.write_text(
            "kind: MachineSet\nmetadata:\n  name: ${MS_NAME}\nspec:\n  replicas: ${REPLICAS}\n"
        )

        rendered = render_template(template, {"MS_NAME": "ms-2a", "REPLICAS": 2})

        assert rendered == {
            "kind": "MachineSet",
            "metadata": {"name": "ms-2a"},
            "spec": {"replicas": 2},
        }

    def test_unknown_variables_render_empty(self, tmp_path):
        template = tmp_path / "t.yaml"
        template.write_text("kind: X\nlabel: 'a${UNSET}b'\n")

        assert render_template(template, {})["label"] == "ab"

    def test_stray_dollar_is_left_as_written(self, tmp_path):
        template = tmp_path / "t.yaml"
        template.write_text("kind: X\nmetadata:\n  name: ${MS_NAME}\nnote: 'costs $1 or $ 2'\n")

        rendered = render_template(template, {"MS_NAME": "ms-2a"})

        assert rendered["metadata"]["name"] == "ms-2a"
        assert rendered["note"] == "costs $1 or $ 2"

    def test_invalid_yaml(self, tmp_path):
        template = tmp_path / "t.yaml"
        template.write_text("kind: [unclosed\n")

        with pytest.raises(HardFailure, match="valid YAML"):
            render_template(template, {})

    def test_missing_file(self, tmp_path):
        with pytest.raises(TemplateNotFoundError):
            render_template(tmp_path / "missing.yaml", {})

    def test_non_mapping(self, tmp_path):
        template = tmp_path / "t.yaml"
        template.write_text("- a\n- b\n")

        with pytest.raises(HardFailure, match="single object"):
            render_template(template, {})


class TestBuilders:
    """Tests for autoscaler and patch builders."""

    def test_machine_autoscaler_targets_machineset(self):
        manifest = build_machine_autoscaler("ms-2a", 1, 3)

        assert manifest["metadata"] == {"name": "ms-2a", "namespace": "openshift-machine-api"}
        assert manifest["spec"]["minReplicas"] == 1
        assert manifest["spec"]["maxReplicas"] == 3
        assert manifest["spec"]["scaleTargetRef"]["name"] == "ms-2a"

    def test_cluster_autoscaler_singleton(self):
        manifest = build_cluster_autoscaler()
        assert manifest["kind"] == "ClusterAutoscaler"
        assert manifest["metadata"]["name"] == "default"
        assert manifest["spec"]["scaleDown"]["enabled"] is True

    def test_sync_policy_patch(self):
        assert sync_policy_patch(True) == {
            "spec": {"syncPolicy": {"automated": {"prune": True, "selfHeal": True}}}
        }
        assert sync_policy_patch(False) == {"spec": {"syncPolicy": {"automated": None}}}

    def test_enable_patch_is_a_fresh_dict(self):
        sync_policy_patch(True)["spec"]["syncPolicy"]["automated"]["prune"] = False
        assert sync_policy_patch(True)["spec"]["syncPolicy"]["automated"]["prune"] is True

    def test_refresh_and_label_patches(self):
        assert refresh_patch() == {
            "metadata": {"annotations": {"argocd.argoproj.io/refresh": "normal"}}
        }
        assert remove_label_patch("a/b") == {"metadata": {"labels": {"a/b": None}}}

    def test_dump_preserves_key_order(self):
        text = dump_manifest({"kind": "X", "apiVersion": "v1"})
        assert text.index("kind") < text.index("apiVersion")
