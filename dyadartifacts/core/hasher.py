"""Canonical hashing helpers for content addressing.

``tree_hash`` computes the git tree-object SHA-1 of a directory, the same
identifier ``git write-tree`` would give it. Only relative paths, contents,
the executable bit and symlink targets contribute; listing order, timestamps
and the remaining permission bits do not.
"""

from __future__ import annotations

import hashlib
import os
import stat
from pathlib import Path

_CHUNK_SIZE = 1 << 20

MODE_FILE = b"100644"
MODE_EXECUTABLE = b"100755"
MODE_SYMLINK = b"120000"
MODE_TREE = b"40000"

EMPTY_TREE_SHA1 = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _git_object(kind: bytes, payload: bytes) -> bytes:
    header = kind + b" " + str(len(payload)).encode("ascii") + b"\0"
    return hashlib.sha1(header + payload).digest()


def _blob_digest(path: Path) -> bytes:
    size = path.stat().st_size
    sha = hashlib.sha1(b"blob " + str(size).encode("ascii") + b"\0")
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.digest()


def _tree_digest(directory: Path) -> bytes | None:
    """Digest of one tree level, or ``None`` if it holds no files at all.

    Git cannot represent empty directories, so they are skipped.
    """
    entries: list[tuple[bytes, bytes, bytes]] = []
    with os.scandir(directory) as it:
        for dirent in it:
            if dirent.name == ".git":
                continue
            name = os.fsencode(dirent.name)
            path = Path(dirent.path)
            if dirent.is_symlink():
                target = os.fsencode(os.readlink(path))
                entries.append((name, MODE_SYMLINK, _git_object(b"blob", target)))
            elif dirent.is_dir():
                sub = _tree_digest(path)
                if sub is not None:
                    # git orders a subtree as if its name ended with "/"
                    entries.append((name + b"/", MODE_TREE, sub))
            else:
                executable = dirent.stat().st_mode & stat.S_IXUSR
                mode = MODE_EXECUTABLE if executable else MODE_FILE
                entries.append((name, mode, _blob_digest(path)))

    if not entries:
        return None

    entries.sort(key=lambda e: e[0])
    payload = b"".join(
        mode + b" " + sort_name.rstrip(b"/") + b"\0" + digest
        for sort_name, mode, digest in entries
    )
    return _git_object(b"tree", payload)


def tree_hash(directory: Path) -> str:
    """Return the git-tree-sha1 hex digest of a directory tree.

    Raises ``NotADirectoryError`` if ``directory`` is not a directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")
    digest = _tree_digest(directory)
    return digest.hex() if digest is not None else EMPTY_TREE_SHA1
