"""Per-invocation configuration for the publish pipelines."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class PipelineConfig(BaseModel):
    """Everything one publish run needs, passed explicitly to the pipeline.

    Nothing here is read from module globals: the CLI builds an instance
    from ``ArtifactSettings`` and its arguments, tests build their own.
    ``scratch_root`` of ``None`` means the system temporary directory.
    """

    model_config = ConfigDict(frozen=True)

    artifact_name: str = Field(min_length=1)
    source_repo: str
    revision: str
    manifest_path: Path
    release_dir: Path
    project_file: Path = Path("pyproject.toml")
    scratch_root: Path | None = None
    keep_scratch: bool = False
    download_url: str | None = None  # overrides the derived release URL
    lazy: bool = False
    force: bool = True

    @property
    def archive_path(self) -> Path:
        return self.release_dir / f"{self.artifact_name}.tar.gz"


class PipelineResult(BaseModel):
    """What a publish run produced and recorded in the manifest."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    revision: str
    commit: str
    git_tree_sha1: str
    archive_path: Path
    sha256: str
    download_url: str
    lazy: bool = False
