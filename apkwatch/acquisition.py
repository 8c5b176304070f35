# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Artifact acquisition and filename reconciliation for apkwatch.

Once the pipeline decides a new version is out, this module turns the
download API URL into a named APK on disk:

1. Derive a provisional filename from the scraped version.
2. Stream the APK to a unique temporary file in the download directory.
3. Rename the temporary file to the provisional name.
4. Read versionName/versionCode from the APK manifest.
5. If the manifest disagrees with the page, rename the file again to a name
   derived from the manifest version.

Steps 4 and 5 degrade instead of failing: an unreadable manifest leaves both
manifest fields as None, and a failed second rename keeps the provisional
name. Both are reported in AcquiredArtifact.degraded.

Example:
    Acquire with the default collaborators:
        ```python
        from pathlib import Path
        from apkwatch.acquisition import acquire_artifact
        from apkwatch.io import HttpArtifactFetcher
        from apkwatch.versioning import ApkManifestReader

        artifact = acquire_artifact(
            "https://vendor.example/api/download",
            "1.0.7",
            Path("./downloads"),
            fetcher=HttpArtifactFetcher(),
            manifest_reader=ApkManifestReader(),
        )
        print(artifact.file_path, artifact.manifest_version_name)
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import itertools
from pathlib import Path
import re
from typing import Protocol

from apkwatch.exceptions import DownloadError
from apkwatch.logging import Logger, get_global_logger
from apkwatch.results import AcquiredArtifact, FailureKind, ManifestVersion

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")

# Disambiguates temp names created within the same millisecond
_temp_sequence = itertools.count()


class ArtifactFetcher(Protocol):
    """Protocol for artifact download backends."""

    def download_to_file(self, url: str, dest_dir: Path, filename: str) -> Path:
        """Stream ``url`` to ``dest_dir/filename``.

        Raises:
            DownloadError: On a non-success status, transport error or
                truncated body.
        """
        ...


class ManifestReader(Protocol):
    """Protocol for artifact manifest readers."""

    def read_version(self, artifact_path: Path) -> ManifestVersion | None:
        """Return the manifest version, or None when it cannot be read."""
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def sanitize_version_filename(version: str, extension: str = ".apk") -> str:
    """Build a filesystem-safe filename from a version string.

    Every character outside ``[A-Za-z0-9.-]`` becomes ``_``.

    Example:
        >>> sanitize_version_filename("1.0.6 (build 106)")
        '1.0.6__build_106_.apk'
    """
    return _UNSAFE_CHARS.sub("_", version) + extension


def temp_filename(basename: str, extension: str, now: datetime) -> str:
    """Return a unique temporary filename for a download in progress."""
    millis = int(now.timestamp() * 1000)
    return f"temp_{basename}_{millis}_{next(_temp_sequence)}{extension}"


def _discard(path: Path, logger: Logger) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as err:
        logger.warning("ACQUIRE", f"Could not remove temporary file {path}: {err}")


def acquire_artifact(
    api_url: str,
    scraped_version: str,
    download_dir: Path,
    *,
    fetcher: ArtifactFetcher,
    manifest_reader: ManifestReader,
    basename: str = "apk",
    extension: str = ".apk",
    clock: Callable[[], datetime] = _utcnow,
    logger: Logger | None = None,
) -> AcquiredArtifact:
    """Download the artifact and reconcile its filename with its manifest.

    Args:
        api_url: Download API endpoint.
        scraped_version: Version text read from the page.
        download_dir: Managed download directory (created if absent).
        fetcher: Streams the URL to a file.
        manifest_reader: Reads the manifest of the downloaded file.
        basename: Used in the temporary filename.
        extension: Suffix for every filename produced (default ".apk").
        clock: Returns the current UTC time. Injected by tests.
        logger: Optional logger. Defaults to the global logger.

    Returns:
        The acquired artifact with its final path and manifest details.
        Existing files with the same target name are replaced.

    Raises:
        DownloadError: If the download fails or the temporary file cannot
            be renamed. No temporary file is left behind.

    """
    logger = logger or get_global_logger()
    download_dir = Path(download_dir)
    degraded: list[FailureKind] = []

    provisional_name = sanitize_version_filename(scraped_version, extension)
    temp_name = temp_filename(basename, extension, clock())
    temp_path = download_dir / temp_name

    logger.verbose("ACQUIRE", f"Downloading {api_url}")
    try:
        temp_path = fetcher.download_to_file(api_url, download_dir, temp_name)
    except DownloadError:
        _discard(temp_path, logger)
        raise
    downloaded_at = clock()

    provisional_path = download_dir / provisional_name
    try:
        temp_path.replace(provisional_path)
    except OSError as err:
        _discard(temp_path, logger)
        raise DownloadError(
            f"cannot rename {temp_path.name} to {provisional_name}: {err}"
        ) from err
    logger.verbose("ACQUIRE", f"Saved as {provisional_name}")

    manifest = manifest_reader.read_version(provisional_path)
    if manifest is None:
        logger.warning(
            "ACQUIRE", "Manifest could not be read; storing no manifest version"
        )
        degraded.append(FailureKind.MANIFEST_PARSE)
        manifest = ManifestVersion(version_name=None, version_code=None)

    final_path = provisional_path
    name = manifest.version_name
    if name and name != scraped_version:
        manifest_filename = sanitize_version_filename(name, extension)
        if manifest_filename != provisional_name:
            target = download_dir / manifest_filename
            logger.verbose(
                "ACQUIRE",
                f"Page shows {scraped_version!r} but manifest says {name!r}; "
                f"renaming to {manifest_filename}",
            )
            try:
                provisional_path.replace(target)
                final_path = target
            except OSError as err:
                logger.error(
                    "ACQUIRE",
                    f"Could not rename {provisional_name} to {manifest_filename}: {err}",
                )
                degraded.append(FailureKind.RELOCATION)

    return AcquiredArtifact(
        file_path=final_path,
        filename=final_path.name,
        manifest_version_name=manifest.version_name,
        manifest_version_code=manifest.version_code,
        downloaded_at=downloaded_at,
        degraded=tuple(degraded),
    )
