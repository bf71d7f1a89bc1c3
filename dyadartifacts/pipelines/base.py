"""Abstract publish pipeline with a fixed lifecycle.

Every concrete pipeline implements only ``stage_payload()``. ``run()`` is
**not overridable**; it enforces the ordering:

    fetch source -> stage payload -> write ATTRIBUTION.md -> archive -> register

Any failure aborts the run. Because registration is the last step, a failed
run never leaves a partially updated manifest; at worst a scratch directory
is left behind.
"""

from __future__ import annotations

import abc
import logging
import shutil
import tempfile
from pathlib import Path
from typing import ClassVar, final

from dyadartifacts.accessors import ATTRIBUTION_FILE
from dyadartifacts.core.hasher import sha256_file
from dyadartifacts.core.manifest import ArtifactManifest
from dyadartifacts.core.registrar import ArtifactRegistrar
from dyadartifacts.core.tools import Archiver, GitClient, TarballArchiver, VcsClient
from dyadartifacts.models.config import PipelineConfig, PipelineResult

logger = logging.getLogger(__name__)


class ArtifactPipeline(abc.ABC):
    """Base for the publish pipelines.

    Subclasses **must** implement:
        * ``title``: heading used in ``ATTRIBUTION.md``.
        * ``stage_payload(repo_dir, staging_dir)``: put the files to ship
          into ``staging_dir``.

    Subclasses **may** override ``usage_notes`` to describe how to use the
    payload.
    """

    title: ClassVar[str]
    usage_notes: ClassVar[str] = ""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        vcs: VcsClient | None = None,
        archiver: Archiver | None = None,
        registrar: ArtifactRegistrar | None = None,
    ) -> None:
        self.config = config
        self.vcs = vcs or GitClient()
        self.archiver = archiver or TarballArchiver()
        self.registrar = registrar or ArtifactRegistrar(
            self.archiver, self.vcs, project_file=config.project_file
        )

    @abc.abstractmethod
    def stage_payload(self, repo_dir: Path, staging_dir: Path) -> None:
        """Populate ``staging_dir`` from the checked-out ``repo_dir``."""
        ...

    # ------------------------------------------------------------------
    # Lifecycle (not overridable)
    # ------------------------------------------------------------------

    @final
    def run(self) -> PipelineResult:
        """Execute the full publish lifecycle.  **Do not override.**"""
        cfg = self.config
        logger.info(
            "Processing artifact %s from %s @ %s", cfg.artifact_name, cfg.source_repo, cfg.revision
        )
        if cfg.scratch_root is not None:
            cfg.scratch_root.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=f"{cfg.artifact_name}-", dir=cfg.scratch_root))
        try:
            repo_dir = self.fetch_source(scratch / "source")
            commit = self.vcs.head_commit(repo_dir) or cfg.revision

            staging_dir = scratch / "stage" / cfg.artifact_name
            staging_dir.mkdir(parents=True)
            logger.info("Staging payload for %s", cfg.artifact_name)
            self.stage_payload(repo_dir, staging_dir)
            self.write_attribution(staging_dir, commit)

            archive_path = self.archiver.create(staging_dir, cfg.archive_path)
            logger.info("Created tarball %s", archive_path.name)

            git_tree_sha1 = self.registrar.register(
                cfg.manifest_path,
                cfg.artifact_name,
                staging_dir,
                archive_path,
                force=cfg.force,
                lazy=cfg.lazy,
                download_url=cfg.download_url,
            )
        finally:
            if cfg.keep_scratch:
                logger.info("Keeping scratch directory %s", scratch)
            else:
                shutil.rmtree(scratch, ignore_errors=True)

        entry = ArtifactManifest(cfg.manifest_path).variants(cfg.artifact_name)[0]
        return PipelineResult(
            artifact_name=cfg.artifact_name,
            revision=cfg.revision,
            commit=commit,
            git_tree_sha1=git_tree_sha1,
            archive_path=archive_path,
            sha256=sha256_file(archive_path),
            download_url=entry.downloads[0].url,
            lazy=cfg.lazy,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def fetch_source(self, dest: Path) -> Path:
        """Clone the source repository and check out the configured revision."""
        logger.info("Cloning %s", self.config.source_repo)
        self.vcs.clone(self.config.source_repo, dest)
        logger.info("Checking out %s", self.config.revision)
        self.vcs.checkout(dest, self.config.revision)
        return dest

    def render_attribution(self, commit: str) -> str:
        cfg = self.config
        lines = [
            f"# {self.title}",
            "",
            f"This artifact was produced from {cfg.source_repo} at commit: {commit}",
            "",
            "## Source",
            f"Repository: {cfg.source_repo}",
            f"Revision: {cfg.revision}",
            f"Commit: {commit}",
            "",
        ]
        if self.usage_notes:
            lines += ["## Usage", self.usage_notes, ""]
        lines += [
            "## License",
            "Please refer to the LICENSE file in the source repository for licensing information.",
            "",
        ]
        return "\n".join(lines)

    def write_attribution(self, staging_dir: Path, commit: str) -> Path:
        path = staging_dir / ATTRIBUTION_FILE
        path.write_text(self.render_attribution(commit), encoding="utf-8")
        return path
