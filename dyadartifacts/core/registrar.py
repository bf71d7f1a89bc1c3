"""Artifact registration: archive -> git-tree-sha1 + sha256 -> manifest entry.

The content hash is computed from a fresh extraction of the archive, not from
the staged tree, so it describes exactly what consumers will download and
extract. The manifest write is the final step; anything that fails before it
leaves the manifest untouched.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from dyadartifacts.core.hasher import sha256_file, tree_hash
from dyadartifacts.core.manifest import ArtifactManifest, validate_artifact_name
from dyadartifacts.core.release import project_version, release_download_url, repo_slug
from dyadartifacts.core.tools import (
    ARCHIVE_ROOT_DEPTH,
    Archiver,
    GitClient,
    TarballArchiver,
    VcsClient,
)
from dyadartifacts.errors import DuplicateArtifactError, MissingInputError
from dyadartifacts.models.manifest import ArtifactEntry, DownloadInfo

logger = logging.getLogger(__name__)


class ArtifactRegistrar:
    """Binds archives into an ``Artifacts.toml``.

    Parameters
    ----------
    archiver:
        Used to re-extract the archive for hashing.
    vcs:
        Used to read the project's ``origin`` remote for the release URL.
    project_file:
        ``pyproject.toml`` holding the release version.
    project_dir:
        Working copy whose remote names the hosting repository. Defaults to
        the directory containing ``project_file``.
    """

    def __init__(
        self,
        archiver: Archiver | None = None,
        vcs: VcsClient | None = None,
        *,
        project_file: Path = Path("pyproject.toml"),
        project_dir: Path | None = None,
    ) -> None:
        self._archiver = archiver or TarballArchiver()
        self._vcs = vcs or GitClient()
        self._project_file = Path(project_file)
        self._project_dir = Path(project_dir) if project_dir else self._project_file.parent

    def download_url(self, archive_path: Path) -> str:
        """Release URL the archive is expected to be published at."""
        version = project_version(self._project_file)
        repo = repo_slug(self._vcs, self._project_dir)
        return release_download_url(repo, version, Path(archive_path).name)

    def register(
        self,
        manifest_path: Path,
        name: str,
        staged_dir: Path,
        archive_path: Path,
        *,
        force: bool = False,
        lazy: bool = False,
        download_url: str | None = None,
    ) -> str:
        """Bind ``name`` to the archive and return its git-tree-sha1.

        ``download_url`` overrides the derived GitHub release URL.

        Raises
        ------
        InvalidArtifactNameError
            ``name`` is empty or contains ``.``.
        MissingInputError
            ``staged_dir`` or ``archive_path`` does not exist.
        DuplicateArtifactError
            ``name`` is already bound and ``force`` is false.
        """
        validate_artifact_name(name)
        staged_dir = Path(staged_dir)
        archive_path = Path(archive_path)
        if not staged_dir.is_dir():
            raise MissingInputError(f"Staged directory not found: {staged_dir}")
        if not archive_path.is_file():
            raise MissingInputError(f"Archive not found: {archive_path}")

        manifest = ArtifactManifest(manifest_path)
        if not force and manifest.contains(name):
            raise DuplicateArtifactError(
                f"Artifact {name!r} is already bound in {manifest.path}; "
                "pass force=True to replace it"
            )

        with tempfile.TemporaryDirectory(prefix=f"{name}-") as tmp:
            extracted = Path(tmp)
            self._archiver.extract(
                archive_path, extracted, strip_components=ARCHIVE_ROOT_DEPTH
            )
            git_tree_sha1 = tree_hash(extracted)

        staged_hash = tree_hash(staged_dir)
        if staged_hash != git_tree_sha1:
            logger.warning(
                "Staged tree %s hashes to %s but archive content hashes to %s; "
                "recording the archive hash.",
                staged_dir,
                staged_hash,
                git_tree_sha1,
            )

        sha256 = sha256_file(archive_path)
        url = download_url or self.download_url(archive_path)

        entry = ArtifactEntry(
            name=name,
            git_tree_sha1=git_tree_sha1,
            downloads=(DownloadInfo(url=url, sha256=sha256),),
            lazy=lazy,
        )
        manifest.bind(entry, force=force)

        logger.info(
            "Registered %s: git-tree-sha1=%s sha256=%s url=%s lazy=%s",
            name,
            git_tree_sha1,
            sha256,
            url,
            lazy,
        )
        return git_tree_sha1
