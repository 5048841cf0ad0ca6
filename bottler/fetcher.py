"""
fetcher.py

Responsibility: Isolate all network and archive I/O.

This module must be the only place that:
- Sends HTTP requests for source archives
- Reads `file://` sources
- Unpacks archives onto disk

Verification is NOT done here; the pipeline hands the bytes to `verifier.py`
before anything is extracted or built.
"""

from __future__ import annotations

import io
import logging
import stat
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import requests

from bottler import __version__
from bottler.errors import FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedArchive:
    url: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class ArchiveFetcher:
    def __init__(self, *, timeout: float = 60.0, session: requests.Session | None = None) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", f"bottler/{__version__}")

    def fetch(self, url: str) -> FetchedArchive:
        scheme = urlparse(url).scheme
        if scheme in ("http", "https"):
            data = self._fetch_http(url)
        elif scheme == "file":
            data = self._fetch_file(url)
        else:
            raise FetchError(f"Unsupported URL scheme {scheme!r}: {url}")
        logger.info("Fetched %s (%d bytes)", url, len(data))
        return FetchedArchive(url=url, data=data)

    def _fetch_http(self, url: str) -> bytes:
        try:
            r = self._session.get(url, timeout=self._timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise FetchError(f"Download failed {url}: {e}") from e
        if r.status_code >= 400:
            raise FetchError(f"Download failed {url}: HTTP {r.status_code}")
        return r.content

    def _fetch_file(self, url: str) -> bytes:
        path = Path(unquote(urlparse(url).path))
        try:
            return path.read_bytes()
        except OSError as e:
            raise FetchError(f"Cannot read {path}: {e}") from e


def _check_member(name: str) -> None:
    p = PurePosixPath(name)
    if p.is_absolute() or ".." in p.parts:
        raise FetchError(f"Archive member escapes extraction root: {name!r}")


def _extract_tar(data: bytes, destination: Path) -> None:
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tf:
            members = tf.getmembers()
            for m in members:
                _check_member(m.name)
                if m.issym() or m.islnk():
                    raise FetchError(f"Archive member is a link: {m.name!r}")
                if not (m.isfile() or m.isdir()):
                    raise FetchError(f"Archive member is not a regular file: {m.name!r}")
            if hasattr(tarfile, "data_filter"):
                tf.extractall(destination, members=members, filter="data")
            else:
                tf.extractall(destination, members=members)
    except tarfile.TarError as e:
        raise FetchError(f"Corrupt tar archive: {e}") from e
    except OSError as e:
        raise FetchError(f"Failed extracting tar archive into {destination}: {e}") from e


def _extract_zip(data: bytes, destination: Path) -> None:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            for info in zf.infolist():
                _check_member(info.filename)
                if stat.S_ISLNK(info.external_attr >> 16):
                    raise FetchError(f"Archive member is a link: {info.filename!r}")
            for info in zf.infolist():
                target = Path(zf.extract(info, destination))
                mode = (info.external_attr >> 16) & 0o777
                if mode and not info.is_dir():
                    target.chmod(mode)
    except zipfile.BadZipFile as e:
        raise FetchError(f"Corrupt zip archive: {e}") from e
    except OSError as e:
        raise FetchError(f"Failed extracting zip archive into {destination}: {e}") from e


def _single_top_level_dir(destination: Path) -> Path:
    children = list(destination.iterdir())
    if len(children) == 1 and children[0].is_dir():
        return children[0]
    return destination


def extract_archive(archive: FetchedArchive, destination: str | Path) -> Path:
    """
    Unpack `archive` into `destination` and return the extraction root.

    If the archive holds exactly one top-level directory (the usual
    `<repo>-<version>/` wrapper), that directory is returned.
    """
    dst = Path(destination)
    try:
        dst.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FetchError(f"Cannot create extraction directory {dst}: {e}") from e

    if zipfile.is_zipfile(io.BytesIO(archive.data)):
        _extract_zip(archive.data, dst)
    else:
        _extract_tar(archive.data, dst)

    root = _single_top_level_dir(dst)
    logger.debug("Extracted %s into %s", archive.url, root)
    return root
