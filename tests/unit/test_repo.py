"""Unit tests for configure-repo rewriting."""

from __future__ import annotations

import pytest

from rollout_cli.errors import HardFailure
from rollout_cli.rollout import configure_repo
from rollout_cli.rollout.repo import current_repo_url, rewrite_repo_refs

OLD = "https://github.com/example/rhoaibu-gitops.git"
NEW = "https://github.com/fork/rhoaibu-gitops.git"

APPSET = f"""\
apiVersion: argoproj.io/v1alpha1
kind: ApplicationSet
metadata:
  name: operators
spec:
  generators:
    - git:
        repoURL: {OLD}
        revision: main
  template:
    spec:
      source:
        repoURL: {OLD}
        targetRevision: main
        path: '{{{{path}}}}'
"""

HELM_APP = """\
spec:
  sources:
    - repoURL: https://charts.example.com
      targetRevision: 1.2.3
      chart: thing
"""


class TestRewriteRepoRefs:
    """Tests for rewrite_repo_refs()."""

    def test_rewrites_matching_url_and_revision(self):
        text, count = rewrite_repo_refs(APPSET, OLD, NEW, "feature-x")

        assert count == 2
        assert OLD not in text
        assert f"        repoURL: {NEW}\n" in text
        assert "        targetRevision: feature-x\n" in text
        # Generator revision keys are not targetRevision and stay untouched
        assert "        revision: main\n" in text

    def test_other_sources_untouched(self):
        text, count = rewrite_repo_refs(HELM_APP, OLD, NEW, "feature-x")

        assert count == 0
        assert text == HELM_APP

    def test_list_item_repo_url(self):
        source = f"  sources:\n    - repoURL: {OLD}\n      targetRevision: main\n"

        text, count = rewrite_repo_refs(source, OLD, NEW, "dev")

        assert count == 1
        assert text == f"  sources:\n    - repoURL: {NEW}\n      targetRevision: dev\n"

    def test_quoted_url(self):
        text, count = rewrite_repo_refs(f"repoURL: '{OLD}'\n", OLD, NEW, "dev")
        assert count == 1
        assert text == f"repoURL: {NEW}\n"

    def test_revision_outside_window_untouched(self):
        source = f"repoURL: {OLD}\na: 1\nb: 2\nc: 3\ntargetRevision: main\n"

        text, _ = rewrite_repo_refs(source, OLD, NEW, "dev")

        assert text.endswith("targetRevision: main\n")


class TestConfigureRepo:
    """Tests for configure_repo()."""

    def test_requires_url(self, repo_root):
        with pytest.raises(HardFailure, match="GITOPS_REPO_URL"):
            configure_repo(repo_root, None, "main")

    def test_current_repo_url(self, repo_root):
        assert current_repo_url(repo_root) == OLD

    def test_missing_root_app(self, tmp_path):
        with pytest.raises(HardFailure, match="Root application not found"):
            configure_repo(tmp_path, NEW, "main")

    def test_rewrites_files_in_search_dirs(self, repo_root):
        components = repo_root / "components" / "operators"
        components.mkdir(parents=True)
        (components / "appset.yaml").write_text(APPSET)
        (components / "helm.yaml").write_text(HELM_APP)
        (repo_root / "docs").mkdir()
        (repo_root / "docs" / "example.yaml").write_text(APPSET)

        result = configure_repo(repo_root, NEW, "feature-x")

        assert result.old_url == OLD
        assert sorted(p.name for p in result.files) == ["appset.yaml", "cluster-config-app.yaml"]
        assert NEW in (components / "appset.yaml").read_text()
        assert (components / "helm.yaml").read_text() == HELM_APP
        assert OLD in (repo_root / "docs" / "example.yaml").read_text()

    def test_second_run_changes_nothing(self, repo_root):
        configure_repo(repo_root, NEW, "feature-x")

        result = configure_repo(repo_root, NEW, "feature-x")

        assert result.old_url == NEW
        assert result.files == []
