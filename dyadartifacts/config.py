"""Environment-driven settings.

Reads from a ``.env`` file and ``DYADARTIFACTS_*`` environment variables.
Library code never consults a module-level instance: callers create one with
``get_settings()`` (or construct ``ArtifactSettings`` directly) and pass the
values they need into the resolver or a ``PipelineConfig``.

Examples
--------
Point consumers at a different manifest and cache::

    export DYADARTIFACTS_MANIFEST_PATH=/opt/dyad/Artifacts.toml
    export DYADARTIFACTS_ARTIFACTS_DIR=/var/cache/dyad/artifacts
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent

# Artifacts.toml ships inside the package so installed copies can find it.
DEFAULT_MANIFEST_PATH = PACKAGE_DIR / "Artifacts.toml"


class ArtifactSettings(BaseSettings):
    """Settings shared by the CLI, the accessors and the publish pipelines."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DYADARTIFACTS_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Consumption
    manifest_path: Path = DEFAULT_MANIFEST_PATH
    artifacts_dir: Path = Path.home() / ".cache" / "dyadartifacts" / "artifacts"
    download_timeout: float | None = None
    verify_tree: bool = False

    # Publishing
    release_dir: Path = Path("gen/tarballs")
    project_file: Path = Path("pyproject.toml")
    source_repo: str = "https://github.com/juliacomputing/dyad-lang.git"
    default_revision: str = "next"


def get_settings() -> ArtifactSettings:
    """Build settings from the current environment."""
    return ArtifactSettings()
