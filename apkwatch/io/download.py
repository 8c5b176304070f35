"""
Streamed HTTP(S) artifact download for apkwatch.

This module fetches the APK from the vendor's download API and writes it to a
caller-chosen path inside the download directory.

Key Features:

- **Streamed Transfer** - The body is written in chunks, so large APKs never
  sit in memory.
- **Truncation Check** - When the server sends Content-Length, the number of
  bytes written must match it. A short body is a failed download.
- **No Partial Files** - Any failure removes the file being written before
  DownloadError is raised.
- **Stable Length** - Forces Accept-Encoding: identity so Content-Length
  describes the bytes actually received.

Constants:

- DEFAULT_CHUNK (int): Stream chunk size (1 MiB).

Example:
Basic download:

    >>> from pathlib import Path
    >>> from apkwatch.io import download_file
    >>> path = download_file(
    ...     url="https://vendor.example/api/download",
    ...     dest_dir=Path("./downloads"),
    ...     filename="temp_pgsharp_1700000000000_0.apk",
    ... )
    >>> print(f"Downloaded to {path}")

Notes:
- No retries: a failed run is retried by the next scheduled invocation
- User-Agent identifies apkwatch to help with debugging/support
- All transport errors are chained for better debugging
- Timeouts are per-request, not total download time
"""

from __future__ import annotations

from pathlib import Path
import time

import requests

from apkwatch.exceptions import DownloadError
from apkwatch.logging import Logger, get_global_logger

# Stream size per chunk (1 MiB). Tune up/down if needed.
DEFAULT_CHUNK = 1024 * 1024

DEFAULT_TIMEOUT = 120


def make_session() -> requests.Session:
    """
    Create a requests.Session with apkwatch's default headers.

    - Sets a helpful User-Agent to avoid being blocked.
    - Forces 'Accept-Encoding: identity' so Content-Length matches the bytes
      written and the truncation check is meaningful.
    """
    from apkwatch import __version__

    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": f"apkwatch/{__version__}",
            "Accept-Encoding": "identity",
        }
    )
    return s


def _remove_partial(path: Path, logger: Logger) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as err:
        logger.warning("FILE", f"Could not remove partial file {path}: {err}")


def download_file(
    url: str,
    dest_dir: Path,
    filename: str,
    *,
    session: requests.Session | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    logger: Logger | None = None,
) -> Path:
    """Download a URL to dest_dir/filename.

    Follows redirects. Writes the streamed body straight to the target path;
    the caller picks a unique temporary name and renames it afterwards.

    Args:
        url: Source URL.
        dest_dir: Folder to save into (created if missing).
        filename: Name of the file to create inside dest_dir.
        session: Optional session to reuse. A new one from make_session()
            is used and closed when omitted.
        timeout: Per-request timeout (seconds).
        logger: Optional logger. Defaults to the global logger.

    Returns:
        Path to the downloaded file.

    Raises:
        DownloadError: For transport errors, non-2xx responses, a body
            shorter than Content-Length, or a local write failure. The
            partially written file is removed first.

    """
    logger = logger or get_global_logger()

    dest_dir = Path(dest_dir)
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise DownloadError(f"cannot create download directory {dest_dir}: {err}") from err

    target = dest_dir / filename

    owns_session = session is None
    active = make_session() if owns_session else session

    logger.verbose("HTTP", f"GET {url}")
    started_at = time.time()
    try:
        try:
            resp = active.get(url, stream=True, allow_redirects=True, timeout=timeout)
        except requests.RequestException as err:
            raise DownloadError(f"download failed for {url}: {err}") from err

        with resp:
            for hist in resp.history:
                logger.debug(
                    "HTTP",
                    f"Redirect {hist.status_code} -> {hist.headers.get('Location', 'unknown')}",
                )

            try:
                resp.raise_for_status()
            except requests.HTTPError as err:
                raise DownloadError(f"download failed for {url}: {err}") from err

            logger.verbose("HTTP", f"Response: {resp.status_code} {resp.reason}")

            expected = resp.headers.get("Content-Length")
            try:
                total_size = int(expected) if expected else None
            except ValueError:
                total_size = None
            if total_size is not None:
                size_mb = total_size / (1024 * 1024)
                logger.verbose("HTTP", f"Content-Length: {total_size} ({size_mb:.1f} MB)")

            logger.verbose("FILE", f"Downloading to: {target}")
            downloaded = 0
            try:
                with target.open("wb") as f:
                    for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                        if not chunk:
                            continue
                        f.write(chunk)
                        downloaded += len(chunk)
            except requests.RequestException as err:
                _remove_partial(target, logger)
                raise DownloadError(f"download interrupted for {url}: {err}") from err
            except OSError as err:
                _remove_partial(target, logger)
                raise DownloadError(f"cannot write {target}: {err}") from err

            if total_size is not None and downloaded < total_size:
                _remove_partial(target, logger)
                raise DownloadError(
                    f"truncated download for {url}: got {downloaded} of {total_size} bytes"
                )
    finally:
        if owns_session:
            active.close()

    elapsed = time.time() - started_at
    logger.verbose("FILE", f"Download complete: {target} ({downloaded} bytes)")
    logger.verbose("FILE", f"Time elapsed: {elapsed:.1f}s")
    return target


class HttpArtifactFetcher:
    """Artifact fetcher backed by download_file().

    Args:
        timeout: Per-request timeout (seconds).
        session: Optional shared session.
        logger: Optional logger. Defaults to the global logger.

    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.timeout = timeout
        self.session = session
        self.logger = logger

    def download_to_file(self, url: str, dest_dir: Path, filename: str) -> Path:
        return download_file(
            url,
            dest_dir,
            filename,
            session=self.session,
            timeout=self.timeout,
            logger=self.logger,
        )
