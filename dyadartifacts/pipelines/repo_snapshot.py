"""Pipeline that ships the checked-out source tree as-is."""

from __future__ import annotations

import shutil
from pathlib import Path

from dyadartifacts.pipelines.base import ArtifactPipeline


class RepoSnapshotPipeline(ArtifactPipeline):
    """Copy the repository at the requested revision, minus ``.git``."""

    title = "Dyad Language Source Snapshot"
    usage_notes = "The repository tree is at the root of the artifact directory."

    def stage_payload(self, repo_dir: Path, staging_dir: Path) -> None:
        shutil.copytree(
            repo_dir,
            staging_dir,
            symlinks=True,
            ignore=shutil.ignore_patterns(".git"),
            dirs_exist_ok=True,
        )
