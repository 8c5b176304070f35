"""
Version comparison utilities for apkwatch.

This package decides whether a version string scraped from the download page
denotes a release that has not been processed yet.

Modules
-------
compare : module
    Substring-aware comparison of scraped text against the stored manifest
    versionName.
apk : module
    versionName and versionCode extraction from an APK manifest.

Public API
----------
Decision : enum
    UNCHANGED or CHANGED.
compare_versions : function
    Compare a stored record with freshly scraped text.
describe_baseline : function
    The stored version to show in log lines.
ApkManifestReader : class
    Reads the manifest version of a downloaded APK.

Examples
--------
    >>> from apkwatch.state import VersionRecord
    >>> from apkwatch.versioning import compare_versions
    >>> prev = VersionRecord("pgsharp_apk_check", manifest_version_name="1.0.6")
    >>> compare_versions(prev, "1.0.6 (build 106)")
    <Decision.UNCHANGED: 'unchanged'>

Notes
-----
- Comparison is pure: no network or file I/O; only ApkManifestReader reads files
- A record without a manifest versionName always compares as CHANGED
"""

from .apk import ApkManifestReader
from .compare import Decision, compare_versions, describe_baseline

__all__ = ["ApkManifestReader", "Decision", "compare_versions", "describe_baseline"]
