"""Release location helpers: where a registered archive will be published.

The download URL is derived from the project's version (``pyproject.toml``)
and the GitHub repository behind the ``origin`` remote. Uploading the
archive there is left to the release process.
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path

from dyadartifacts.core.tools import VcsClient
from dyadartifacts.errors import ProjectMetadataError

logger = logging.getLogger(__name__)

FALLBACK_REPO = "OWNER/REPO"

_GITHUB_REMOTE = re.compile(r"github\.com[:/](.+?)(?:\.git)?/?$")


def project_version(project_file: Path) -> str:
    """Return ``"v" + project.version`` from a ``pyproject.toml``."""
    try:
        with open(project_file, "rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ProjectMetadataError(f"Project file not found: {project_file}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ProjectMetadataError(f"Cannot parse {project_file}: {exc}") from exc

    version = data.get("project", {}).get("version")
    if not version:
        raise ProjectMetadataError(f"{project_file} has no [project].version")
    return f"v{version}"


def parse_github_repo(remote_url: str) -> str | None:
    """Extract ``owner/name`` from an https or ssh GitHub remote URL."""
    match = _GITHUB_REMOTE.search(remote_url.strip())
    return match.group(1) if match else None


def repo_slug(vcs: VcsClient, project_dir: Path) -> str:
    """``owner/name`` of the project's origin, or ``FALLBACK_REPO``."""
    remote = vcs.remote_url(project_dir)
    slug = parse_github_repo(remote) if remote else None
    if slug is None:
        logger.warning(
            "Could not determine GitHub repository from origin remote (%s); "
            "using placeholder %s, edit the manifest URL before publishing.",
            remote,
            FALLBACK_REPO,
        )
        return FALLBACK_REPO
    return slug


def release_download_url(repo: str, version: str, archive_name: str) -> str:
    return f"https://github.com/{repo}/releases/download/{version}/{archive_name}"
