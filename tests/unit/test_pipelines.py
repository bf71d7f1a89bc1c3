"""Tests for the publish pipelines with fake git and npm."""

from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from dyadartifacts.core.manifest import ArtifactManifest
from dyadartifacts.core.registrar import ArtifactRegistrar
from dyadartifacts.core.tools import TarballArchiver
from dyadartifacts.errors import DuplicateArtifactError, ToolError
from dyadartifacts.models.config import PipelineConfig
from dyadartifacts.pipelines import CliBundlePipeline, RepoSnapshotPipeline


@pytest.fixture
def make_config(tmp_path: Path, project_file: Path, manifest_path: Path):
    def _factory(**overrides) -> PipelineConfig:
        values = dict(
            artifact_name="dyad-cli",
            source_repo="https://example.invalid/dyad-lang.git",
            revision="v0.9.0",
            manifest_path=manifest_path,
            release_dir=tmp_path / "tarballs",
            project_file=project_file,
            scratch_root=tmp_path / "scratch",
        )
        values.update(overrides)
        return PipelineConfig(**values)

    return _factory


def _archive_members(archive: Path) -> dict[str, bytes]:
    with tarfile.open(archive) as tar:
        return {
            m.name: tar.extractfile(m).read()  # type: ignore[union-attr]
            for m in tar.getmembers()
            if m.isfile()
        }


class TestCliBundlePipeline:
    def test_runs_build_steps_in_order(self, make_vcs, make_builder, make_config):
        vcs, builder = make_vcs(), make_builder()
        CliBundlePipeline(make_config(), vcs=vcs, builder=builder).run()
        assert vcs.calls == [
            ("clone", "https://example.invalid/dyad-lang.git"),
            ("checkout", "v0.9.0"),
        ]
        assert builder.steps == ["install", "build", "bundle"]

    def test_archive_contents(self, make_vcs, make_builder, make_config):
        result = CliBundlePipeline(make_config(), vcs=make_vcs(), builder=make_builder()).run()
        members = _archive_members(result.archive_path)
        assert sorted(members) == ["dyad-cli/ATTRIBUTION.md", "dyad-cli/dyad-cli.js"]
        assert members["dyad-cli/dyad-cli.js"] == b"console.log('dyad');\n"

        attribution = members["dyad-cli/ATTRIBUTION.md"].decode()
        assert attribution.startswith("# Dyad CLI Bundle")
        assert "Repository: https://example.invalid/dyad-lang.git" in attribution
        assert "Commit: 0123456789abcdef0123456789abcdef01234567" in attribution
        assert "node dyad-cli.js" in attribution

    def test_registers_in_manifest(self, make_vcs, make_builder, make_config, manifest_path: Path):
        result = CliBundlePipeline(
            make_config(lazy=True), vcs=make_vcs(), builder=make_builder()
        ).run()
        entry = ArtifactManifest(manifest_path).get("dyad-cli")
        assert entry.git_tree_sha1 == result.git_tree_sha1
        assert entry.lazy is True
        assert entry.downloads[0].sha256 == result.sha256
        assert result.download_url.endswith("/releases/download/v1.2.3/dyad-cli.tar.gz")
        assert result.archive_path.name == "dyad-cli.tar.gz"

    def test_scratch_removed(self, make_vcs, make_builder, make_config, tmp_path: Path):
        CliBundlePipeline(make_config(), vcs=make_vcs(), builder=make_builder()).run()
        assert list((tmp_path / "scratch").iterdir()) == []

    def test_keep_scratch(self, make_vcs, make_builder, make_config, tmp_path: Path):
        CliBundlePipeline(
            make_config(keep_scratch=True), vcs=make_vcs(), builder=make_builder()
        ).run()
        assert len(list((tmp_path / "scratch").iterdir())) == 1

    def test_build_failure_aborts_without_manifest(
        self, make_vcs, make_builder, make_config, manifest_path: Path, tmp_path: Path
    ):
        pipeline = CliBundlePipeline(make_config(), vcs=make_vcs(), builder=make_builder(fail_on="build"))
        with pytest.raises(ToolError, match="build"):
            pipeline.run()
        assert not manifest_path.exists()
        assert list((tmp_path / "scratch").iterdir()) == []

    def test_no_force_refuses_rebind(self, make_vcs, make_builder, make_config, manifest_path: Path):
        CliBundlePipeline(make_config(), vcs=make_vcs(), builder=make_builder()).run()
        before = manifest_path.read_bytes()
        pipeline = CliBundlePipeline(
            make_config(force=False), vcs=make_vcs(), builder=make_builder(b"new\n")
        )
        with pytest.raises(DuplicateArtifactError):
            pipeline.run()
        assert manifest_path.read_bytes() == before

    def test_injected_registrar_is_used(self, make_vcs, make_builder, make_config, project_file: Path):
        vcs = make_vcs(remote="https://github.com/other/place.git")
        registrar = ArtifactRegistrar(TarballArchiver(), vcs, project_file=project_file)
        result = CliBundlePipeline(
            make_config(), vcs=make_vcs(), builder=make_builder(), registrar=registrar
        ).run()
        assert "github.com/other/place/" in result.download_url


class TestRepoSnapshotPipeline:
    def test_copies_tree_without_git(self, make_vcs, make_config):
        vcs = make_vcs({"README.md": b"# dyad\n", "src/main.ts": b"export {}\n"})
        result = RepoSnapshotPipeline(make_config(artifact_name="dyad-lang-source"), vcs=vcs).run()
        members = _archive_members(result.archive_path)
        assert sorted(members) == [
            "dyad-lang-source/ATTRIBUTION.md",
            "dyad-lang-source/README.md",
            "dyad-lang-source/src/main.ts",
        ]
        assert "# Dyad Language Source Snapshot" in members["dyad-lang-source/ATTRIBUTION.md"].decode()

    def test_commit_falls_back_to_revision(self, make_vcs, make_config):
        vcs = make_vcs(commit="")
        vcs.head_commit = lambda repo_dir: None  # type: ignore[method-assign]
        result = RepoSnapshotPipeline(make_config(artifact_name="src"), vcs=vcs).run()
        assert result.commit == "v0.9.0"
