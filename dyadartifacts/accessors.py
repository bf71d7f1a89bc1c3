"""Runtime accessors for the artifacts this package distributes.

These are thin wrappers over :class:`ArtifactResolver`. Each takes an
optional ``resolver``; without one, a resolver is built from
``ArtifactSettings`` (manifest path, cache directory, download timeout).

Example::

    import subprocess
    from dyadartifacts import dyad_cli_js

    subprocess.run(["node", str(dyad_cli_js()), "--help"], check=True)
"""

from __future__ import annotations

import logging
from pathlib import Path

from dyadartifacts.config import get_settings
from dyadartifacts.core.downloader import HttpDownloader
from dyadartifacts.core.manifest import ArtifactManifest
from dyadartifacts.core.resolver import ArtifactResolver

logger = logging.getLogger(__name__)

DYAD_CLI_ARTIFACT = "dyad-cli"
DYAD_CLI_FILE = "dyad-cli.js"
ATTRIBUTION_FILE = "ATTRIBUTION.md"


def default_resolver() -> ArtifactResolver:
    """Resolver configured from the environment."""
    settings = get_settings()
    return ArtifactResolver(
        settings.manifest_path,
        settings.artifacts_dir,
        downloader=HttpDownloader(timeout=settings.download_timeout),
        verify_tree=settings.verify_tree,
    )


def artifact_dir(name: str, resolver: ArtifactResolver | None = None) -> Path:
    """Directory holding artifact ``name``, downloading it first if needed.

    The directory contains the artifact data and, usually, an
    ``ATTRIBUTION.md`` describing where it came from.
    """
    return (resolver or default_resolver()).resolve(name)


def locate_file(
    name: str,
    relative_path: str | Path,
    resolver: ArtifactResolver | None = None,
) -> Path:
    """Path of ``relative_path`` inside artifact ``name``.

    Only the artifact directory is guaranteed to exist.
    """
    return artifact_dir(name, resolver) / relative_path


def dyad_cli_js(resolver: ArtifactResolver | None = None) -> Path:
    """Path to the bundled ``dyad-cli.js``; run it with ``node``."""
    return locate_file(DYAD_CLI_ARTIFACT, DYAD_CLI_FILE, resolver)


def read_attribution(name: str, resolver: ArtifactResolver | None = None) -> str:
    """Contents of the artifact's ``ATTRIBUTION.md``.

    A missing file is not an error: a placeholder message is returned so
    absent provenance never blocks a build. Bytes that are not valid UTF-8
    are replaced with U+FFFD.
    """
    attribution = locate_file(name, ATTRIBUTION_FILE, resolver)
    if not attribution.is_file():
        logger.debug("No %s in %s", ATTRIBUTION_FILE, attribution.parent)
        return f"Attribution file not found for artifact: {name}"
    return attribution.read_text(encoding="utf-8", errors="replace")


def list_artifact_names(manifest_path: Path | None = None) -> list[str]:
    """All artifact names bound in the manifest, sorted.

    Platform/variant-qualified names are excluded. A missing manifest gives
    an empty list.
    """
    path = manifest_path if manifest_path is not None else get_settings().manifest_path
    return ArtifactManifest(path).names()
