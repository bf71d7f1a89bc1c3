"""Artifacts.toml reader/writer.

The manifest is parsed with ``tomllib`` and written with ``tomli_w``; there
is no line-oriented parsing. A top-level key is an artifact name only when
it holds an entry (a table with ``git-tree-sha1``, or an array of them).
Qualified sections such as ``[foo.linux]`` make ``tomllib`` create an
implicit ``foo`` table; on their own they never bind ``foo``, and a rebind
of ``foo`` keeps them.

Writes go through a temporary file in the manifest's directory followed by
``os.replace``, so a reader sees either the old manifest or the new one.
There is no inter-process locking: one release process at a time.
"""

from __future__ import annotations

import logging
import os
import platform
import tempfile
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from dyadartifacts.errors import (
    ArtifactNotFoundError,
    DuplicateArtifactError,
    InvalidArtifactNameError,
    ManifestError,
)
from dyadartifacts.models.manifest import ArtifactEntry, DownloadInfo

logger = logging.getLogger(__name__)

_OS_ALIASES = {"darwin": "macos"}
_ARCH_ALIASES = {"amd64": "x86_64", "arm64": "aarch64"}


def host_platform() -> tuple[str, str]:
    """Return ``(os, arch)`` for the running interpreter, in manifest spelling."""
    os_name = platform.system().lower()
    arch = platform.machine().lower()
    return _OS_ALIASES.get(os_name, os_name), _ARCH_ALIASES.get(arch, arch)


def _is_entry(value: Any) -> bool:
    if isinstance(value, list):
        return bool(value) and all(
            isinstance(table, dict) and "git-tree-sha1" in table for table in value
        )
    return isinstance(value, dict) and "git-tree-sha1" in value


def _subtables(value: Any) -> dict[str, Any]:
    """Qualified sections (``[name.x]``) nested under a top-level table."""
    if not isinstance(value, dict):
        return {}
    return {key: sub for key, sub in value.items() if isinstance(sub, dict)}


def validate_artifact_name(name: str) -> str:
    """Return ``name`` unchanged if it can be a top-level manifest key."""
    if not name or not name.strip():
        raise InvalidArtifactNameError("Artifact name must be non-empty")
    if "." in name or "/" in name or name != name.strip():
        raise InvalidArtifactNameError(
            f"Artifact name {name!r} may not contain '.', '/' or surrounding whitespace"
        )
    return name


class ArtifactManifest:
    """Name -> entry view over an ``Artifacts.toml`` file.

    Parameters
    ----------
    path:
        Location of the manifest. It does not need to exist yet; a missing
        manifest reads as empty.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_raw(self) -> dict[str, Any]:
        """Parse the manifest into plain TOML data; ``{}`` if it is absent."""
        if not self.exists():
            return {}
        try:
            with open(self._path, "rb") as fh:
                return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ManifestError(f"Cannot parse {self._path}: {exc}") from exc

    def names(self) -> list[str]:
        """Sorted, de-duplicated top-level artifact names.

        Qualified names (containing ``.``) and implicit tables created only
        by qualified sections are filtered out after parsing.
        """
        return sorted(
            name for name, value in self.read_raw().items()
            if "." not in name and _is_entry(value)
        )

    def variants(self, name: str) -> list[ArtifactEntry]:
        """Every entry bound to ``name``: one, or one per platform variant."""
        value = self.read_raw().get(name)
        if not _is_entry(value):
            raise ArtifactNotFoundError(f"Artifact {name!r} not found in {self._path}")
        if isinstance(value, list):
            return [ArtifactEntry.from_toml(name, table) for table in value]
        return [ArtifactEntry.from_toml(name, value)]

    def find(self, name: str, host: tuple[str, str] | None = None) -> ArtifactEntry | None:
        """Entry for ``name`` that applies to ``host``, or ``None`` if no variant does.

        ``host`` defaults to the running platform. Unbound names still raise
        ``ArtifactNotFoundError``.
        """
        os_name, arch = host or host_platform()
        for entry in self.variants(name):
            if entry.matches_platform(os_name, arch):
                return entry
        return None

    def get(self, name: str, host: tuple[str, str] | None = None) -> ArtifactEntry:
        """Return the entry for ``name`` that applies to ``host``."""
        entry = self.find(name, host)
        if entry is None:
            os_name, arch = host or host_platform()
            raise ArtifactNotFoundError(
                f"Artifact {name!r} has no variant for platform {os_name}/{arch}"
            )
        return entry

    def contains(self, name: str) -> bool:
        return _is_entry(self.read_raw().get(name))

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def bind(self, entry: ArtifactEntry, *, force: bool = False) -> None:
        """Bind ``entry.name`` to ``entry``.

        Raises ``DuplicateArtifactError`` if the name (or, for platform
        variants, the same os/arch pair) is already bound and ``force`` is
        false. In that case the file is not touched.

        Qualified sections under the name (``[name.x]``) survive a rebind as
        a single table. Platform variants are written as ``[[name]]``, which
        cannot carry them, so binding a variant drops them with a warning.
        """
        validate_artifact_name(entry.name)
        raw = self.read_raw()
        existing = raw.get(entry.name)
        is_variant = entry.os is not None or entry.arch is not None

        if not _is_entry(existing):
            raw[entry.name] = self._entry_value(entry, _subtables(existing))
        elif is_variant and isinstance(existing, list):
            clash = [
                i for i, table in enumerate(existing)
                if table.get("os") == entry.os and table.get("arch") == entry.arch
            ]
            if clash and not force:
                raise DuplicateArtifactError(
                    f"Artifact {entry.name!r} ({entry.os}/{entry.arch}) is already "
                    f"bound in {self._path}; pass force=True to replace it"
                )
            for i in reversed(clash):
                del existing[i]
            existing.append(entry.to_toml())
        else:
            if not force:
                raise DuplicateArtifactError(
                    f"Artifact {entry.name!r} is already bound in {self._path}; "
                    "pass force=True to replace it"
                )
            raw[entry.name] = self._entry_value(entry, _subtables(existing))

        self._write(raw)
        logger.info("Bound %s -> %s in %s", entry.name, entry.git_tree_sha1, self._path)

    def unbind(self, name: str) -> bool:
        """Remove ``name`` from the manifest. Returns False if it was not bound.

        Qualified sections under the name are kept.
        """
        raw = self.read_raw()
        if not _is_entry(raw.get(name)):
            return False
        nested = _subtables(raw[name])
        if nested:
            raw[name] = nested
        else:
            del raw[name]
        self._write(raw)
        logger.info("Unbound %s from %s", name, self._path)
        return True

    def add_download(self, name: str, download: DownloadInfo) -> ArtifactEntry:
        """Append a mirror location to a single-table entry.

        A URL that is already listed is not added twice.
        """
        raw = self.read_raw()
        table = raw.get(name)
        if not _is_entry(table):
            raise ArtifactNotFoundError(f"Artifact {name!r} not found in {self._path}")
        if not isinstance(table, dict):
            raise ManifestError(
                f"Artifact {name!r} has platform variants; bind each variant instead"
            )
        entry = ArtifactEntry.from_toml(name, table)
        if any(d.url == download.url for d in entry.downloads):
            return entry
        updated = entry.model_copy(update={"downloads": entry.downloads + (download,)})
        raw[name] = {**table, **updated.to_toml()}
        self._write(raw)
        return updated

    def _entry_value(self, entry: ArtifactEntry, nested: dict[str, Any]) -> Any:
        if entry.os is None and entry.arch is None:
            return {**nested, **entry.to_toml()}
        if nested:
            logger.warning(
                "Dropping qualified sections %s of %s in %s: platform variants "
                "are written as [[%s]]",
                ", ".join(f"[{entry.name}.{key}]" for key in sorted(nested)),
                entry.name,
                self._path,
                entry.name,
            )
        return [entry.to_toml()]

    def _write(self, raw: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                tomli_w.dump(raw, fh)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
