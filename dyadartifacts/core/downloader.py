"""HTTP download backend for the resolver."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from dyadartifacts.errors import ArtifactDownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


@runtime_checkable
class Downloader(Protocol):
    """Fetches one URL into a local file.

    Implementations raise ``ArtifactDownloadError`` for transport-level
    failures so the resolver can move on to the next mirror.
    """

    def download(self, url: str, dest: Path) -> None: ...


class HttpDownloader:
    """``Downloader`` streaming over HTTP(S) with :mod:`requests`.

    ``file://`` URLs are copied from the local file system, which lets a
    manifest point at a release directory before anything is uploaded.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def download(self, url: str, dest: Path) -> None:
        if url.startswith("file://"):
            self._copy_local(url2pathname(urlparse(url).path), dest)
            return
        logger.info("Downloading %s", url)
        try:
            with self._session.get(url, stream=True, timeout=self._timeout) as resp:
                resp.raise_for_status()
                with open(dest, "wb") as fh:
                    for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                        fh.write(chunk)
        except requests.RequestException as exc:
            raise ArtifactDownloadError(f"Download of {url} failed: {exc}") from exc

    @staticmethod
    def _copy_local(path: str, dest: Path) -> None:
        src = Path(path)
        try:
            with open(src, "rb") as fin, open(dest, "wb") as fout:
                for chunk in iter(lambda: fin.read(_CHUNK_SIZE), b""):
                    fout.write(chunk)
        except OSError as exc:
            raise ArtifactDownloadError(f"Cannot read {src}: {exc}") from exc
