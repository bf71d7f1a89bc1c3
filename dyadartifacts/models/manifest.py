"""Manifest models — one ``ArtifactEntry`` per ``Artifacts.toml`` section.

On disk an entry looks like::

    [dyad-cli]
    git-tree-sha1 = "0123...89ab"
    lazy = true

        [[dyad-cli.download]]
        url = "https://github.com/OWNER/REPO/releases/download/v0.1.0/dyad-cli.tar.gz"
        sha256 = "0123...cdef"

The git-tree-sha1 is the artifact's identity; the sha256 belongs to the
archive bytes at a particular download location.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dyadartifacts.errors import ManifestError

TREE_HASH_PATTERN = r"^[0-9a-f]{40}$"
SHA256_PATTERN = r"^[0-9a-f]{64}$"


class DownloadInfo(BaseModel):
    """A single place an artifact's archive can be fetched from."""

    model_config = ConfigDict(frozen=True)

    url: str
    sha256: str = Field(pattern=SHA256_PATTERN)


class ArtifactEntry(BaseModel):
    """Binding of a logical artifact name to its content hash and downloads.

    ``os`` and ``arch`` are only set on platform-specific variants, which are
    written as an array of tables (``[[name]]``) instead of a single table.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    git_tree_sha1: str = Field(pattern=TREE_HASH_PATTERN)
    downloads: tuple[DownloadInfo, ...] = ()
    lazy: bool = False
    os: str | None = None
    arch: str | None = None

    @classmethod
    def from_toml(cls, name: str, table: dict[str, Any]) -> ArtifactEntry:
        """Build an entry from its parsed TOML table.

        Unknown keys (including nested variant tables such as
        ``[name.linux]``) are ignored.
        """
        if not isinstance(table, dict):
            raise ManifestError(f"Artifact {name!r}: expected a table, got {type(table).__name__}")
        raw_downloads = table.get("download", [])
        if isinstance(raw_downloads, dict):
            raw_downloads = [raw_downloads]
        try:
            return cls(
                name=name,
                git_tree_sha1=table.get("git-tree-sha1", ""),
                downloads=tuple(
                    DownloadInfo(url=d.get("url", ""), sha256=d.get("sha256", ""))
                    for d in raw_downloads
                ),
                lazy=bool(table.get("lazy", False)),
                os=table.get("os"),
                arch=table.get("arch"),
            )
        except (ValidationError, AttributeError) as exc:
            raise ManifestError(f"Artifact {name!r} is malformed: {exc}") from exc

    def to_toml(self) -> dict[str, Any]:
        """Return the TOML table for this entry (without the section name)."""
        table: dict[str, Any] = {"git-tree-sha1": self.git_tree_sha1}
        if self.os is not None:
            table["os"] = self.os
        if self.arch is not None:
            table["arch"] = self.arch
        if self.lazy:
            table["lazy"] = True
        if self.downloads:
            table["download"] = [
                {"url": d.url, "sha256": d.sha256} for d in self.downloads
            ]
        return table

    def matches_platform(self, os_name: str, arch: str) -> bool:
        """True if this entry applies to the given host platform."""
        return (self.os is None or self.os == os_name) and (
            self.arch is None or self.arch == arch
        )
