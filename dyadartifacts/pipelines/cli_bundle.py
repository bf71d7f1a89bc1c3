"""Pipeline that ships the Dyad CLI as a single esbuild bundle."""

from __future__ import annotations

import logging
from pathlib import Path

from dyadartifacts.core.registrar import ArtifactRegistrar
from dyadartifacts.core.tools import Archiver, Builder, NpmBuilder, VcsClient
from dyadartifacts.models.config import PipelineConfig
from dyadartifacts.pipelines.base import ArtifactPipeline

logger = logging.getLogger(__name__)

CLI_ENTRY_POINT = "apps/cli/src/scripts/entry.ts"
CLI_BUNDLE_FILE = "dyad-cli.js"


class CliBundlePipeline(ArtifactPipeline):
    """``npm ci`` + ``npm run build`` + esbuild into ``dyad-cli.js``."""

    title = "Dyad CLI Bundle"
    usage_notes = f"Run with Node.js: `node {CLI_BUNDLE_FILE} [command] [options]`"

    def __init__(
        self,
        config: PipelineConfig,
        *,
        builder: Builder | None = None,
        vcs: VcsClient | None = None,
        archiver: Archiver | None = None,
        registrar: ArtifactRegistrar | None = None,
        entry_point: str = CLI_ENTRY_POINT,
    ) -> None:
        super().__init__(config, vcs=vcs, archiver=archiver, registrar=registrar)
        self.builder = builder or NpmBuilder()
        self.entry_point = entry_point

    def stage_payload(self, repo_dir: Path, staging_dir: Path) -> None:
        logger.info("Installing npm dependencies")
        self.builder.install(repo_dir)
        logger.info("Building internal packages (this may take a few minutes)")
        self.builder.build(repo_dir)
        logger.info("Bundling %s with esbuild", self.entry_point)
        self.builder.bundle(repo_dir, self.entry_point, staging_dir / CLI_BUNDLE_FILE)
