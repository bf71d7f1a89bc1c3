"""Publish pipelines: fetch a source revision, stage, archive, register.

* :class:`CliBundlePipeline` — builds and bundles the Dyad CLI into a
  single ``dyad-cli.js``.
* :class:`RepoSnapshotPipeline` — ships the checked-out repository tree.
"""

from dyadartifacts.pipelines.base import ArtifactPipeline
from dyadartifacts.pipelines.cli_bundle import CliBundlePipeline
from dyadartifacts.pipelines.repo_snapshot import RepoSnapshotPipeline

__all__ = ["ArtifactPipeline", "CliBundlePipeline", "RepoSnapshotPipeline"]
