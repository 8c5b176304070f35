"""
apkwatch - APK release watcher

A Python-based CLI tool that watches a vendor download page for a new APK
release, downloads it, records what was processed and announces it on
Discord.

apkwatch provides:
  - Version discovery from a JavaScript-rendered page (headless Chromium)
    or from static HTML
  - Substring-aware comparison against the last processed manifest version
  - Streamed download with truncation checks and no leftover temp files
  - Filename reconciliation against the APK's own manifest versionName
  - Version record persistence in a JSON file or MongoDB
  - Discord webhook notifications with a user mention

Quick Start
-----------
Check configuration:

    $ apkwatch validate --config apkwatch.yaml

Run one update check (schedule this):

    $ apkwatch check --config apkwatch.yaml

For full CLI documentation:

    $ apkwatch --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Wires production collaborators and runs a check.
pipeline : module
    The reconciliation state machine.
acquisition : module
    Download, rename and manifest reconciliation of the artifact.
config : package
    Layered settings (defaults, YAML, environment).
discovery : package
    Registry of page version scrapers.
versioning : package
    Version comparison and APK manifest reading.
io : package
    Streamed HTTP download.
state : package
    JSON and MongoDB version record stores.
notify : package
    Message formatting and Discord delivery.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from apkwatch.core import run_check
    from apkwatch.config import load_settings
    from apkwatch.versioning import compare_versions
    from apkwatch.io import download_file

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Watch a download page for new APK releases"

# Re-export commonly used functions for convenience
from apkwatch.config import load_settings
from apkwatch.core import run_check
from apkwatch.io import download_file
from apkwatch.versioning import compare_versions

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "run_check",
    "load_settings",
    "download_file",
    "compare_versions",
]
