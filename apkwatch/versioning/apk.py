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

"""APK manifest version extraction for apkwatch.

This module reads ``versionName`` and ``versionCode`` from the binary
AndroidManifest.xml packed inside an APK, using pyaxmlparser. No Android SDK
tooling is required.

The vendor page and the APK do not always agree: the page may show
"2.99.1-beta-display" while the manifest says "2.99.1". The manifest value is
the one stored as the baseline for the next comparison.

Example:
    Read the manifest version:

        from pathlib import Path
        from apkwatch.versioning.apk import ApkManifestReader

        manifest = ApkManifestReader().read_version(Path("downloads/1.0.6.apk"))
        if manifest is not None:
            print(manifest.version_name, manifest.version_code)

Note:
    Parsing failures never raise. A file that is missing, not a zip, or has
    an unreadable manifest yields None, and the caller stores None for both
    manifest fields.

"""

from __future__ import annotations

from pathlib import Path

from pyaxmlparser import APK

from apkwatch.logging import Logger, get_global_logger
from apkwatch.results import ManifestVersion


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ApkManifestReader:
    """Manifest reader for APK files."""

    def __init__(self, *, logger: Logger | None = None) -> None:
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def read_version(self, artifact_path: Path) -> ManifestVersion | None:
        """Extract versionName and versionCode from an APK.

        Args:
            artifact_path: Path to the APK file.

        Returns:
            The manifest version, or None if the file is missing, cannot be
            parsed, or declares neither attribute. versionCode is returned
            as a decimal string.

        """
        logger = self.logger
        p = Path(artifact_path)
        if not p.is_file():
            logger.error("MANIFEST", f"APK not found: {p}")
            return None

        logger.verbose("MANIFEST", f"Reading manifest from {p.name}")
        try:
            apk = APK(str(p))
            version_name = _clean(apk.version_name)
            version_code = _clean(apk.version_code)
        except Exception as err:
            # pyaxmlparser surfaces zipfile, lxml and its own errors
            logger.error("MANIFEST", f"Failed to parse manifest of {p.name}: {err}")
            return None

        if version_name is None and version_code is None:
            logger.warning("MANIFEST", f"No version attributes in manifest of {p.name}")
            return None

        logger.verbose(
            "MANIFEST", f"versionName={version_name} versionCode={version_code}"
        )
        return ManifestVersion(version_name=version_name, version_code=version_code)
