"""Shared test fixtures for dyadartifacts."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from dyadartifacts.core.registrar import ArtifactRegistrar
from dyadartifacts.core.resolver import ArtifactResolver
from dyadartifacts.core.tools import TarballArchiver
from dyadartifacts.errors import ArtifactDownloadError, ToolError

TreeSpec = dict[str, bytes]


def write_tree(root: Path, files: TreeSpec) -> Path:
    """Create ``files`` (relative path -> bytes) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, data in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


# ---------------------------------------------------------------------------
# Fakes for the external tool interfaces
# ---------------------------------------------------------------------------


class FakeVcs:
    """``VcsClient`` that "clones" a fixed file tree and records calls."""

    def __init__(
        self,
        files: TreeSpec | None = None,
        *,
        commit: str = "0123456789abcdef0123456789abcdef01234567",
        remote: str | None = "git@github.com:acme/dyad-artifacts.git",
    ) -> None:
        self.files = files if files is not None else {"README.md": b"# dyad-lang\n"}
        self.commit = commit
        self.remote = remote
        self.calls: list[tuple[str, ...]] = []

    def clone(self, url: str, dest: Path) -> None:
        self.calls.append(("clone", url))
        write_tree(dest, self.files)
        write_tree(dest / ".git", {"HEAD": b"ref: refs/heads/next\n"})

    def checkout(self, repo_dir: Path, revision: str) -> None:
        self.calls.append(("checkout", revision))

    def head_commit(self, repo_dir: Path) -> str | None:
        return self.commit

    def remote_url(self, repo_dir: Path, remote: str = "origin") -> str | None:
        return self.remote


class FakeBuilder:
    """``Builder`` that writes a stub bundle instead of running npm."""

    def __init__(self, bundle_content: bytes = b"console.log('dyad');\n", fail_on: str = "") -> None:
        self.bundle_content = bundle_content
        self.fail_on = fail_on
        self.steps: list[str] = []

    def _step(self, name: str) -> None:
        self.steps.append(name)
        if name == self.fail_on:
            raise ToolError(f"npm {name} exited with status 1")

    def install(self, repo_dir: Path) -> None:
        self._step("install")

    def build(self, repo_dir: Path) -> None:
        self._step("build")

    def bundle(self, repo_dir: Path, entry: str, outfile: Path) -> None:
        self._step("bundle")
        outfile.write_bytes(self.bundle_content)


class FakeDownloader:
    """``Downloader`` serving URLs from local files and counting requests."""

    def __init__(self, sources: dict[str, Path] | None = None) -> None:
        self.sources = sources or {}
        self.requests: list[str] = []

    def download(self, url: str, dest: Path) -> None:
        self.requests.append(url)
        if url not in self.sources:
            raise ArtifactDownloadError(f"Download of {url} failed: 404")
        shutil.copyfile(self.sources[url], dest)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def archiver() -> TarballArchiver:
    return TarballArchiver()


@pytest.fixture
def tree_writer() -> Callable[[Path, TreeSpec], Path]:
    """The ``write_tree`` helper, for tests that lay out their own trees."""
    return write_tree


@pytest.fixture
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def make_vcs() -> Callable[..., FakeVcs]:
    """Factory fixture: a ``FakeVcs`` with custom files, commit or remote."""
    return FakeVcs


@pytest.fixture
def make_builder() -> Callable[..., FakeBuilder]:
    """Factory fixture: a ``FakeBuilder`` with custom bundle bytes or failing step."""
    return FakeBuilder


@pytest.fixture
def project_file(tmp_dir: Path) -> Path:
    """A minimal pyproject.toml carrying the release version."""
    path = tmp_dir / "project" / "pyproject.toml"
    path.parent.mkdir(parents=True)
    path.write_text('[project]\nname = "dyadartifacts"\nversion = "1.2.3"\n', encoding="utf-8")
    return path


@pytest.fixture
def manifest_path(tmp_dir: Path) -> Path:
    return tmp_dir / "project" / "Artifacts.toml"


@pytest.fixture
def registrar(archiver: TarballArchiver, fake_vcs: FakeVcs, project_file: Path) -> ArtifactRegistrar:
    return ArtifactRegistrar(archiver, fake_vcs, project_file=project_file)


@pytest.fixture
def make_staged(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: build a staged artifact directory named ``name``."""

    def _factory(name: str = "dyad-cli", files: TreeSpec | None = None) -> Path:
        files = files if files is not None else {
            "dyad-cli.js": b"console.log('dyad');\n",
            "ATTRIBUTION.md": b"# Dyad CLI Bundle\n\nCommit: abc123\n",
        }
        return write_tree(tmp_dir / "stage" / name, files)

    return _factory


@pytest.fixture
def make_archive(
    tmp_dir: Path,
    archiver: TarballArchiver,
    make_staged: Callable[..., Path],
) -> Callable[..., tuple[Path, Path]]:
    """Factory fixture: stage and archive; returns ``(staged_dir, archive_path)``."""

    def _factory(name: str = "dyad-cli", files: TreeSpec | None = None) -> tuple[Path, Path]:
        staged = make_staged(name, files)
        archive = archiver.create(staged, tmp_dir / "tarballs" / f"{name}.tar.gz")
        return staged, archive

    return _factory


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def artifacts_dir(tmp_dir: Path) -> Path:
    return tmp_dir / "cache" / "artifacts"


@pytest.fixture
def resolver(
    manifest_path: Path,
    artifacts_dir: Path,
    fake_downloader: FakeDownloader,
    archiver: TarballArchiver,
) -> ArtifactResolver:
    return ArtifactResolver(
        manifest_path,
        artifacts_dir,
        downloader=fake_downloader,
        archiver=archiver,
        host=("linux", "x86_64"),
    )


@pytest.fixture
def published(
    registrar: ArtifactRegistrar,
    manifest_path: Path,
    make_archive: Callable[..., tuple[Path, Path]],
    fake_downloader: FakeDownloader,
) -> Callable[..., str]:
    """Factory fixture: register an artifact and make its URL downloadable.

    Returns the recorded git-tree-sha1.
    """

    def _factory(name: str = "dyad-cli", files: TreeSpec | None = None, *, lazy: bool = True) -> str:
        staged, archive = make_archive(name, files)
        url = f"https://example.invalid/releases/{archive.name}"
        fake_downloader.sources[url] = archive
        return registrar.register(
            manifest_path, name, staged, archive, lazy=lazy, download_url=url
        )

    return _factory
