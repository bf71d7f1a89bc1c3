"""End-to-end: publish pipeline -> manifest -> resolver -> accessors.

Uses the real tarball archiver and the real HTTP downloader (via
``file://`` URLs), with fakes only for git and npm.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dyadartifacts.accessors import dyad_cli_js, list_artifact_names, read_attribution
from dyadartifacts.core.downloader import HttpDownloader
from dyadartifacts.core.hasher import tree_hash
from dyadartifacts.core.manifest import ArtifactManifest
from dyadartifacts.core.resolver import ArtifactResolver
from dyadartifacts.models.config import PipelineConfig
from dyadartifacts.pipelines import CliBundlePipeline, RepoSnapshotPipeline


class TestPublishThenResolve:
    @pytest.fixture
    def workspace(self, tmp_path: Path, project_file: Path, manifest_path: Path) -> dict[str, Path]:
        return {
            "manifest": manifest_path,
            "release": tmp_path / "release",
            "cache": tmp_path / "cache",
            "project": project_file,
        }

    def _config(self, ws: dict[str, Path], name: str, **kw) -> PipelineConfig:
        archive = ws["release"] / f"{name}.tar.gz"
        return PipelineConfig(
            artifact_name=name,
            source_repo="https://example.invalid/dyad-lang.git",
            revision="next",
            manifest_path=ws["manifest"],
            release_dir=ws["release"],
            project_file=ws["project"],
            download_url=archive.as_uri(),
            **kw,
        )

    def _resolver(self, ws: dict[str, Path], **kw) -> ArtifactResolver:
        return ArtifactResolver(ws["manifest"], ws["cache"], downloader=HttpDownloader(), **kw)

    def test_resolved_tree_matches_recorded_hash(self, make_vcs, make_builder, workspace):
        result = CliBundlePipeline(
            self._config(workspace, "dyad-cli", lazy=True), vcs=make_vcs(), builder=make_builder()
        ).run()

        resolver = self._resolver(workspace, verify_tree=True)
        path = resolver.resolve("dyad-cli")
        assert tree_hash(path) == result.git_tree_sha1
        assert ArtifactManifest(workspace["manifest"]).get("dyad-cli").git_tree_sha1 == tree_hash(path)

    def test_accessors_after_publish(self, make_vcs, make_builder, workspace):
        CliBundlePipeline(
            self._config(workspace, "dyad-cli", lazy=True), vcs=make_vcs(), builder=make_builder()
        ).run()
        RepoSnapshotPipeline(
            self._config(workspace, "dyad-lang-source"),
            vcs=make_vcs({"README.md": b"# dyad\n", "lib/core.dyad": b"component X\nend\n"}),
        ).run()

        resolver = self._resolver(workspace)
        assert list_artifact_names(workspace["manifest"]) == ["dyad-cli", "dyad-lang-source"]
        assert dyad_cli_js(resolver).read_bytes() == b"console.log('dyad');\n"
        assert "Commit: 0123456789abcdef" in read_attribution("dyad-lang-source", resolver)

    def test_republish_same_content_is_stable(self, make_vcs, make_builder, workspace):
        first = CliBundlePipeline(
            self._config(workspace, "dyad-cli"), vcs=make_vcs(), builder=make_builder()
        ).run()
        second = CliBundlePipeline(
            self._config(workspace, "dyad-cli"), vcs=make_vcs(), builder=make_builder()
        ).run()
        assert first.git_tree_sha1 == second.git_tree_sha1
        assert first.sha256 == second.sha256

    def test_new_revision_gets_new_cache_directory(self, make_vcs, make_builder, workspace):
        CliBundlePipeline(
            self._config(workspace, "dyad-cli"), vcs=make_vcs(), builder=make_builder()
        ).run()
        resolver = self._resolver(workspace)
        old = resolver.resolve("dyad-cli")

        CliBundlePipeline(
            self._config(workspace, "dyad-cli"), vcs=make_vcs(), builder=make_builder(b"v2\n")
        ).run()
        new = resolver.resolve("dyad-cli")
        assert new != old
        assert old.is_dir()
        assert (new / "dyad-cli.js").read_bytes() == b"v2\n"
