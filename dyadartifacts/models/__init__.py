"""dyadartifacts data models — all Pydantic v2, all frozen (immutable)."""

from dyadartifacts.models.config import PipelineConfig, PipelineResult
from dyadartifacts.models.manifest import ArtifactEntry, DownloadInfo

__all__ = [
    # manifest
    "ArtifactEntry",
    "DownloadInfo",
    # config
    "PipelineConfig",
    "PipelineResult",
]
