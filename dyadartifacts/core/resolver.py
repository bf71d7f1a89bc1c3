"""Artifact resolution: manifest name -> local, content-addressed directory.

Layout: ``{artifacts_dir}/{git-tree-sha1}/``. A directory that is present is
trusted as-is and never re-checked against the network. Missing artifacts
are downloaded from the first reachable location, checked against the
recorded sha256, extracted into a hidden staging directory next to the
target, and renamed into place, so a concurrent reader never sees a
half-extracted tree.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from dyadartifacts.core.downloader import Downloader, HttpDownloader
from dyadartifacts.core.hasher import sha256_file, tree_hash
from dyadartifacts.core.manifest import ArtifactManifest
from dyadartifacts.core.tools import ARCHIVE_ROOT_DEPTH, Archiver, TarballArchiver
from dyadartifacts.errors import (
    ArtifactDownloadError,
    ChecksumMismatchError,
    TreeHashMismatchError,
)
from dyadartifacts.models.manifest import ArtifactEntry, DownloadInfo

logger = logging.getLogger(__name__)


class ArtifactResolver:
    """Read-only consumer of an ``Artifacts.toml`` plus a local cache.

    Parameters
    ----------
    manifest_path:
        The manifest to read. Never written by the resolver.
    artifacts_dir:
        Root of the content-addressed cache.
    downloader:
        Fetch backend; defaults to :class:`HttpDownloader`.
    archiver:
        Extraction backend; defaults to :class:`TarballArchiver`.
    verify_tree:
        Re-hash freshly extracted content against the recorded
        git-tree-sha1 before installing it.
    host:
        ``(os, arch)`` used to pick platform variants; defaults to the
        running platform.
    """

    def __init__(
        self,
        manifest_path: Path,
        artifacts_dir: Path,
        *,
        downloader: Downloader | None = None,
        archiver: Archiver | None = None,
        verify_tree: bool = False,
        host: tuple[str, str] | None = None,
    ) -> None:
        self._manifest = ArtifactManifest(manifest_path)
        self._artifacts_dir = Path(artifacts_dir)
        self._downloader = downloader or HttpDownloader()
        self._archiver = archiver or TarballArchiver()
        self._verify_tree = verify_tree
        self._host = host

    @property
    def manifest(self) -> ArtifactManifest:
        return self._manifest

    @property
    def artifacts_dir(self) -> Path:
        return self._artifacts_dir

    def artifact_path(self, git_tree_sha1: str) -> Path:
        """Cache location for a content hash (whether or not it exists)."""
        return self._artifacts_dir / git_tree_sha1

    def entry(self, name: str) -> ArtifactEntry:
        """Manifest entry for ``name`` on this host; ``ArtifactNotFoundError`` if unbound."""
        return self._manifest.get(name, self._host)

    def find_entry(self, name: str) -> ArtifactEntry | None:
        """Like :meth:`entry`, but ``None`` when no variant targets this host."""
        return self._manifest.find(name, self._host)

    def is_installed(self, name: str) -> bool:
        return self.artifact_path(self.entry(name).git_tree_sha1).is_dir()

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def resolve(self, name: str) -> Path:
        """Return the local directory holding artifact ``name``.

        Raises
        ------
        ArtifactNotFoundError
            ``name`` is not bound in the manifest.
        ChecksumMismatchError
            Downloaded bytes do not match the recorded sha256.
        ArtifactDownloadError
            No download location could be reached.
        """
        entry = self.entry(name)
        target = self.artifact_path(entry.git_tree_sha1)
        if target.is_dir():
            logger.debug("Artifact %s already present at %s", name, target)
            return target

        if not entry.lazy:
            logger.warning(
                "Non-lazy artifact %s is not installed; fetching it now. "
                "Run `dyadartifacts fetch` to install eager artifacts up front.",
                name,
            )
        if not entry.downloads:
            raise ArtifactDownloadError(
                f"Artifact {name!r} is not installed and has no download locations"
            )

        failures: list[str] = []
        for download in entry.downloads:
            try:
                return self._install(entry, download, target)
            except ArtifactDownloadError as exc:
                logger.warning("Artifact %s: %s", name, exc)
                failures.append(str(exc))
        raise ArtifactDownloadError(
            f"Could not download artifact {name!r}: " + "; ".join(failures)
        )

    def ensure_installed(self, *, include_lazy: bool = False) -> list[Path]:
        """Resolve every artifact in the manifest that applies to this host.

        Lazy artifacts are skipped unless ``include_lazy`` is set.
        """
        paths: list[Path] = []
        for name in self._manifest.names():
            entry = self.find_entry(name)
            if entry is None:
                logger.debug("Artifact %s has no variant for this host", name)
                continue
            if not include_lazy and entry.lazy:
                logger.debug("Skipping lazy artifact %s", name)
                continue
            paths.append(self.resolve(name))
        return paths

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _install(self, entry: ArtifactEntry, download: DownloadInfo, target: Path) -> Path:
        self._artifacts_dir.mkdir(parents=True, exist_ok=True)
        prefix = f".{entry.git_tree_sha1}-"
        fd, archive_name = tempfile.mkstemp(prefix=prefix, suffix=".tar.gz", dir=self._artifacts_dir)
        os.close(fd)
        archive = Path(archive_name)
        staging = Path(tempfile.mkdtemp(prefix=prefix, dir=self._artifacts_dir))
        try:
            self._downloader.download(download.url, archive)

            actual = sha256_file(archive)
            if actual != download.sha256:
                raise ChecksumMismatchError(
                    f"Artifact {entry.name!r} from {download.url}: expected sha256 "
                    f"{download.sha256}, got {actual}"
                )

            self._archiver.extract(archive, staging, strip_components=ARCHIVE_ROOT_DEPTH)

            if self._verify_tree:
                actual_tree = tree_hash(staging)
                if actual_tree != entry.git_tree_sha1:
                    raise TreeHashMismatchError(
                        f"Artifact {entry.name!r}: expected git-tree-sha1 "
                        f"{entry.git_tree_sha1}, extracted content hashes to {actual_tree}"
                    )

            try:
                os.rename(staging, target)
            except OSError:
                if not target.is_dir():
                    raise
                # Another resolver installed it first; theirs is identical.
                logger.debug("Artifact %s was installed concurrently", entry.name)
            else:
                logger.info("Installed artifact %s at %s", entry.name, target)
            return target
        finally:
            archive.unlink(missing_ok=True)
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)
