"""Error taxonomy shared by the registrar, resolver, and publish pipelines.

Every hard failure derives from ``ArtifactError`` so the CLI can catch one
type, print a diagnostic, and exit non-zero. A missing ``ATTRIBUTION.md`` is
deliberately *not* an error: ``read_attribution`` returns a placeholder.
"""

from __future__ import annotations


class ArtifactError(RuntimeError):
    """Base class for all dyadartifacts failures."""


class ManifestError(ArtifactError):
    """Raised when ``Artifacts.toml`` cannot be parsed or holds a bad entry."""


class InvalidArtifactNameError(ArtifactError, ValueError):
    """Raised when an artifact name is empty or not a plain manifest key."""


class DuplicateArtifactError(ArtifactError):
    """Raised when binding a name that is already bound without ``force``."""


class MissingInputError(ArtifactError):
    """Raised when the staged directory or archive is absent before registration."""


class ArtifactNotFoundError(ArtifactError, KeyError):
    """Raised when resolving a name the manifest does not bind."""

    def __str__(self) -> str:
        # KeyError.__str__ repr()s the message; keep it readable.
        return str(self.args[0]) if self.args else ""


class ChecksumMismatchError(ArtifactError):
    """Raised when downloaded archive bytes do not match the recorded SHA-256."""


class TreeHashMismatchError(ArtifactError):
    """Raised when extracted content does not hash to the recorded git-tree-sha1."""


class ArtifactDownloadError(ArtifactError):
    """Raised when every download location for an artifact failed."""


class ToolError(ArtifactError):
    """Raised when an external tool (git, npm, esbuild) exits non-zero."""


class ProjectMetadataError(ArtifactError):
    """Raised when the release version cannot be read from ``pyproject.toml``."""
