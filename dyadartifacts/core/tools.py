"""External tools behind narrow, typed interfaces.

The publish pipelines never call ``subprocess`` directly. They depend on the
``VcsClient``, ``Builder`` and ``Archiver`` Protocols defined here, so tests
can hand in fakes and no network or Node.js toolchain is needed.

Default implementations:

* ``GitClient`` — ``git clone --no-checkout`` + ``git checkout``.
* ``NpmBuilder`` — ``npm ci``, ``npm run build``, ``npm exec -- esbuild``.
* ``TarballArchiver`` — gzip tarballs through :mod:`tarfile`, with
  normalized ownership/mtimes so equal trees give equal archive bytes.
"""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import subprocess
import sys
import tarfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from dyadartifacts.errors import ToolError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class VcsClient(Protocol):
    """Clone/checkout access to a version-controlled source repository."""

    def clone(self, url: str, dest: Path) -> None:
        """Clone ``url`` into ``dest`` without checking out a working tree."""
        ...

    def checkout(self, repo_dir: Path, revision: str) -> None:
        """Check out ``revision`` (commit, branch or tag) in ``repo_dir``."""
        ...

    def head_commit(self, repo_dir: Path) -> str | None:
        """Return the commit currently checked out, or ``None`` if unknown."""
        ...

    def remote_url(self, repo_dir: Path, remote: str = "origin") -> str | None:
        """Return the URL of ``remote`` in ``repo_dir``, or ``None``."""
        ...


@runtime_checkable
class Builder(Protocol):
    """Dependency install, build, and bundle steps for a JavaScript project."""

    def install(self, repo_dir: Path) -> None: ...

    def build(self, repo_dir: Path) -> None: ...

    def bundle(self, repo_dir: Path, entry: str, outfile: Path) -> None:
        """Bundle ``entry`` (relative to ``repo_dir``) into the single file ``outfile``."""
        ...


@runtime_checkable
class Archiver(Protocol):
    """Create and extract compressed archives."""

    def create(self, src_dir: Path, archive_path: Path) -> Path:
        """Archive ``src_dir`` so that its basename is the archive's top level."""
        ...

    def extract(self, archive_path: Path, dest: Path, *, strip_components: int = 0) -> None:
        """Extract into ``dest``, dropping ``strip_components`` leading path parts."""
        ...


# ---------------------------------------------------------------------------
# Subprocess helper
# ---------------------------------------------------------------------------


def run_tool(args: list[str], *, cwd: Path | None = None, capture: bool = False) -> str:
    """Run an external command, raising ``ToolError`` if it fails.

    Returns captured stdout (stripped) when ``capture`` is true, else ``""``.
    """
    logger.debug("Running %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            check=True,
            capture_output=capture,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ToolError(f"{args[0]}: command not found") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip()
        raise ToolError(
            f"{' '.join(args)} exited with status {exc.returncode}"
            + (f": {detail}" if detail else "")
        ) from exc
    return result.stdout.strip() if capture and result.stdout else ""


# ---------------------------------------------------------------------------
# Default implementations
# ---------------------------------------------------------------------------


class GitClient:
    """``VcsClient`` backed by the ``git`` executable."""

    def __init__(self, git: str = "git") -> None:
        self.git = git

    def clone(self, url: str, dest: Path) -> None:
        run_tool([self.git, "clone", "--no-checkout", url, str(dest)])

    def checkout(self, repo_dir: Path, revision: str) -> None:
        run_tool([self.git, "checkout", revision], cwd=repo_dir)

    def head_commit(self, repo_dir: Path) -> str | None:
        try:
            return run_tool([self.git, "rev-parse", "HEAD"], cwd=repo_dir, capture=True) or None
        except ToolError:
            return None

    def remote_url(self, repo_dir: Path, remote: str = "origin") -> str | None:
        try:
            return run_tool(
                [self.git, "remote", "get-url", remote], cwd=repo_dir, capture=True
            ) or None
        except ToolError as exc:
            logger.debug("No %s remote in %s: %s", remote, repo_dir, exc)
            return None


def _default_npm() -> str:
    npm = shutil.which("npm") or "npm"
    if sys.platform == "win32" and not npm.lower().endswith(".cmd"):
        npm = str(Path(npm).with_name("npm.cmd"))
    return npm


class NpmBuilder:
    """``Builder`` backed by ``npm`` and esbuild (run through ``npm exec``)."""

    def __init__(self, npm: str | None = None) -> None:
        self.npm = npm or _default_npm()

    def install(self, repo_dir: Path) -> None:
        run_tool([self.npm, "ci"], cwd=repo_dir)

    def build(self, repo_dir: Path) -> None:
        run_tool([self.npm, "run", "build"], cwd=repo_dir)

    def bundle(self, repo_dir: Path, entry: str, outfile: Path) -> None:
        run_tool(
            [
                self.npm, "exec", "--", "esbuild", entry,
                "--bundle", "--platform=node", f"--outfile={outfile}",
            ],
            cwd=repo_dir,
        )


# Archives hold a single top-level directory named after the artifact.
ARCHIVE_ROOT_DEPTH = 1


def _normalize_member(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    info.mtime = 0
    return info


def _strip_path(name: str, count: int) -> str:
    parts = [p for p in name.split("/") if p not in ("", ".")]
    return "/".join(parts[count:])


class TarballArchiver:
    """``Archiver`` producing reproducible ``.tar.gz`` files."""

    def __init__(self, compresslevel: int = 9) -> None:
        self.compresslevel = compresslevel

    def create(self, src_dir: Path, archive_path: Path) -> Path:
        src_dir = Path(src_dir)
        archive_path = Path(archive_path)
        if not src_dir.is_dir():
            raise ToolError(f"Cannot archive {src_dir}: not a directory")
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with open(archive_path, "wb") as raw:
            with gzip.GzipFile(
                filename="", mode="wb", fileobj=raw,
                compresslevel=self.compresslevel, mtime=0,
            ) as gz:
                with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                    tar.add(src_dir, arcname=src_dir.name, filter=_normalize_member)
        logger.info("Created archive %s", archive_path)
        return archive_path

    def extract(self, archive_path: Path, dest: Path, *, strip_components: int = 0) -> None:
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive_path, mode="r:*") as tar:
                members = []
                for member in tar.getmembers():
                    name = _strip_path(member.name, strip_components)
                    if not name:
                        continue
                    member.name = name
                    if member.islnk():
                        member.linkname = _strip_path(member.linkname, strip_components)
                    members.append(member)
                tar.extractall(dest, members=members, filter="data")
        except (tarfile.TarError, OSError) as exc:
            raise ToolError(f"Cannot extract {archive_path}: {exc}") from exc
        logger.debug("Extracted %s into %s", archive_path, os.fspath(dest))
