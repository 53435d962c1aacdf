"""Download and validation of the Tika server archive.

Logic:
- An existing file with the pinned digest is reused (no network).
- A file with a wrong digest is deleted and fetched again.
- If the fresh download does not match, it is removed and `ChecksumError`
  is raised.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from adapters.http_client import build_client
from core.domain.errors import ChecksumError, ConfigurationError, DownloadError

logger = logging.getLogger(__name__)

ARCHIVE_URL_TEMPLATE = (
    "https://search.maven.org/remotecontent?"
    "filepath=org/apache/tika/tika-server/{version}/tika-server-{version}.jar"
)


@dataclass(frozen=True)
class PinnedArchive:
    """Expected digest of one server version."""

    algorithm: str
    digest: str
    url_template: str = ARCHIVE_URL_TEMPLATE

    def url(self, version: str) -> str:
        return self.url_template.format(version=version)


ARCHIVES: dict[str, PinnedArchive] = {
    "1.14": PinnedArchive(algorithm="md5", digest="39055fc71358d774b9da066f80b1141c"),
}

_SUPPORTED_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")


def default_archive_path(version: str) -> Path:
    return Path(f"tika-server-{version}.jar")


def file_digest(path: Path, algorithm: str) -> str:
    if algorithm not in _SUPPORTED_ALGORITHMS:
        raise ConfigurationError(f"unsupported hash algorithm: {algorithm}")
    h = hashlib.new(algorithm)
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def has_valid_digest(path: Path, pinned: PinnedArchive) -> bool:
    if not path.is_file():
        return False
    try:
        return file_digest(path, pinned.algorithm) == pinned.digest.lower()
    except OSError:
        return False


def download_server(
    version: str,
    path: str | Path,
    *,
    client: httpx.Client | None = None,
    archives: dict[str, PinnedArchive] | None = None,
) -> Path:
    """Make sure `path` holds the validated server archive for `version`.

    Raises `ConfigurationError` for an unknown version, `DownloadError` if
    the fetch fails and `ChecksumError` if the fetched file is invalid.
    """

    archives = ARCHIVES if archives is None else archives
    pinned = archives.get(version)
    if pinned is None:
        known = ", ".join(sorted(archives)) or "none"
        raise ConfigurationError(f"unsupported Tika version: {version} (known: {known})")

    path = Path(path)
    if path.exists():
        if has_valid_digest(path, pinned):
            logger.info("%s already present with a valid %s digest", path, pinned.algorithm)
            return path
        logger.warning("%s has an invalid %s digest, downloading again", path, pinned.algorithm)
        path.unlink()

    url = pinned.url(version)
    owns_client = client is None
    client = client or build_client()
    logger.info("downloading %s to %s", url, path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with client.stream("GET", url) as response:
            if not 200 <= response.status_code <= 299:
                raise DownloadError(f"unable to download {url!r}: response code {response.status_code}")
            with path.open("wb") as out:
                for chunk in response.iter_bytes():
                    out.write(chunk)
    except httpx.HTTPError as exc:
        path.unlink(missing_ok=True)
        raise DownloadError(f"unable to download {url!r}: {exc}") from exc
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise DownloadError(f"error saving download to {path}: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if not has_valid_digest(path, pinned):
        path.unlink(missing_ok=True)
        raise ChecksumError(f"invalid {pinned.algorithm} digest for {path}")
    return path
