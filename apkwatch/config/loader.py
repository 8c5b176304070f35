"""
Settings loading and merging for apkwatch.

This module builds the runtime Settings from three layers, each overriding
the one before it:

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULTS below)
   - Selector, timeouts, file locations, notification title and timezone

2. **Settings file** (optional YAML, e.g. apkwatch.yaml)
   - Same shape as DEFAULTS
   - Relative paths are resolved against the settings file's directory

3. **Environment** (process environment, after loading .env)
   - WEBHOOK_URL, VERSION_DISPLAY_PAGE_URL, APK_DOWNLOAD_API_URL (required)
   - MONGODB_URI (required when the mongo backend is selected)
   - DISCORD_USER_ID, APKWATCH_STATE_BACKEND, APKWATCH_STATE_FILE,
     APKWATCH_KEEP_ARTIFACT (optional)

Programmatic overrides (the CLI's --state-file and --keep-artifact) are
merged last.

Merge Behavior
--------------
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

State Backend Selection
-----------------------
``state.backend`` is "json", "mongo" or "auto" (default). "auto" picks mongo
when MONGODB_URI is set and the JSON file otherwise.

Error Handling
--------------
- ConfigError: missing required values, YAML parse errors, invalid values
- All errors are chained with "from err" for better debugging

Examples
--------
Basic usage:

    >>> from apkwatch.config import load_settings
    >>> settings = load_settings()
    >>> settings.source_identifier
    'pgsharp_apk_check'

With a settings file and an explicit environment:

    >>> settings = load_settings(
    ...     Path("apkwatch.yaml"),
    ...     env={"WEBHOOK_URL": "...", "VERSION_DISPLAY_PAGE_URL": "...",
    ...          "APK_DOWNLOAD_API_URL": "..."},
    ... )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
import yaml

from apkwatch.exceptions import ConfigError

# -------------------------------
# Defaults
# -------------------------------

# Element holding the version text on the vendor's download page
DEFAULT_SELECTOR = (
    "#content > div > div > div > div > "
    "section.elementor-section.elementor-top-section.elementor-element"
    ".elementor-element-46f376a.elementor-section-boxed"
    ".elementor-section-height-default.elementor-section-height-default > "
    "div > div > div > div > div > div.elementor-element"
    ".elementor-element-d81c5e0.elementor-widget.elementor-widget-text-editor > "
    "div > div > p:nth-child(1) > span:nth-child(2)"
)

DEFAULTS: dict[str, Any] = {
    "source": {
        "identifier": "pgsharp_apk_check",
        "page_url": None,
        "selector": DEFAULT_SELECTOR,
        "scraper": "browser",
        "timeout_ms": 15000,
    },
    "download": {
        "api_url": None,
        "dir": "downloads",
        "basename": "apk_pgsharp",
        "extension": ".apk",
        "keep_artifact": False,
        "timeout": 60,
    },
    "state": {
        "backend": "auto",
        "file": "state/apkwatch.json",
        "database": None,
        "mongodb_uri": None,
    },
    "notify": {
        "webhook_url": None,
        "title": "PGSharp Update",
        "mention_user_id": None,
        "timezone": "America/Sao_Paulo",
        "timestamp_format": "%d/%m/%Y, %H:%M:%S",
        "on_failure": False,
    },
}

# Environment variable -> (section, key)
ENV_KEYS: dict[str, tuple[str, str]] = {
    "WEBHOOK_URL": ("notify", "webhook_url"),
    "VERSION_DISPLAY_PAGE_URL": ("source", "page_url"),
    "APK_DOWNLOAD_API_URL": ("download", "api_url"),
    "MONGODB_URI": ("state", "mongodb_uri"),
    "DISCORD_USER_ID": ("notify", "mention_user_id"),
    "APKWATCH_STATE_BACKEND": ("state", "backend"),
    "APKWATCH_STATE_FILE": ("state", "file"),
    "APKWATCH_KEEP_ARTIFACT": ("download", "keep_artifact"),
}

# Always-required values, reported by their environment variable names
REQUIRED: dict[str, tuple[str, str]] = {
    "WEBHOOK_URL": ("notify", "webhook_url"),
    "VERSION_DISPLAY_PAGE_URL": ("source", "page_url"),
    "APK_DOWNLOAD_API_URL": ("download", "api_url"),
}

STATE_BACKENDS = ("auto", "json", "mongo")
SCRAPERS = ("browser", "static")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        webhook_url: Discord webhook endpoint.
        page_url: Page showing the current version.
        download_api_url: URL that serves the latest APK.
        mongodb_uri: Connection string for the mongo backend, or None.
        source_identifier: Key of the tracked artifact's record.
        selector: CSS selector of the version text on the page.
        scraper: Registered scraper name ("browser" or "static").
        timeout_ms: How long to wait for the selector to appear.
        download_dir: Managed download directory.
        artifact_basename: Stem used in temporary file names.
        artifact_extension: Extension of stored artifacts (".apk").
        keep_artifact: Keep the downloaded file after a successful run.
        download_timeout: Per-request HTTP timeout in seconds.
        state_backend: "json" or "mongo" ("auto" is resolved at load).
        state_file: JSON state file for the json backend.
        state_database: Database name for the mongo backend.
        notify_title: Title of every notification.
        mention_user_id: Discord user pinged before each notification.
        timezone: IANA zone used to render timestamps.
        timestamp_format: strftime format used to render timestamps.
        notify_on_failure: Also notify when a run aborts.
    """

    webhook_url: str
    page_url: str
    download_api_url: str
    mongodb_uri: str | None = None
    source_identifier: str = "pgsharp_apk_check"
    selector: str = DEFAULT_SELECTOR
    scraper: str = "browser"
    timeout_ms: int = 15000
    download_dir: Path = Path("downloads")
    artifact_basename: str = "apk_pgsharp"
    artifact_extension: str = ".apk"
    keep_artifact: bool = False
    download_timeout: int = 60
    state_backend: str = "json"
    state_file: Path = Path("state/apkwatch.json")
    state_database: str | None = None
    notify_title: str = "PGSharp Update"
    mention_user_id: str | None = None
    timezone: str = "America/Sao_Paulo"
    timestamp_format: str = "%d/%m/%Y, %H:%M:%S"
    notify_on_failure: bool = False


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML settings file and return the parsed mapping.

    Raises:
      ConfigError - when the file is missing, unparsable or not a mapping
    """
    if not p.exists():
        raise ConfigError(f"Settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML must be a mapping (dict): {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _env_layer(env: Mapping[str, str]) -> dict[str, Any]:
    """Translate recognized environment variables into a config layer.

    Empty values are ignored so ``WEBHOOK_URL=`` counts as unset.
    """
    layer: dict[str, Any] = {}
    for name, (section, key) in ENV_KEYS.items():
        value = env.get(name)
        if value is None or value.strip() == "":
            continue
        layer.setdefault(section, {})[key] = value.strip()
    return layer


# -------------------------------
# Path resolution
# -------------------------------


def _resolve_known_paths(layer: dict[str, Any], base_dir: Path) -> None:
    """
    Resolve relative path fields of a settings-file layer against base_dir.

    Currently handled:
      - download.dir
      - state.file

    Modifies layer in place.
    """
    for section, key in (("download", "dir"), ("state", "file")):
        values = layer.get(section)
        if not isinstance(values, dict):
            continue
        raw = values.get(key)
        if isinstance(raw, str) and raw:
            p = Path(raw)
            # Resolve only if the path is relative
            if not p.is_absolute():
                values[key] = str((base_dir / p).resolve())


# -------------------------------
# Validation
# -------------------------------


def _as_bool(value: Any, name: str, errors: list[str]) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    errors.append(f"{name} must be a boolean, got {value!r}")
    return False


def _as_positive_int(value: Any, name: str, errors: list[str]) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors.append(f"{name} must be an integer, got {value!r}")
        return 0
    if number <= 0:
        errors.append(f"{name} must be positive, got {number}")
    return number


def validate_settings(merged: Mapping[str, Any]) -> list[str]:
    """Validate a merged configuration mapping without raising.

    Checks required values, backend and scraper names, numeric fields and
    the timezone. Makes no network calls.

    Args:
        merged: Configuration after all layers were merged.

    Returns:
        List of error messages (empty if valid).
    """
    errors: list[str] = []

    for env_name, (section, key) in REQUIRED.items():
        if not merged.get(section, {}).get(key):
            errors.append(f"Missing required setting {section}.{key} (env {env_name})")

    state = merged.get("state", {})
    backend = str(state.get("backend") or "auto").lower()
    if backend not in STATE_BACKENDS:
        errors.append(
            f"Unknown state backend {backend!r}. Available: {', '.join(STATE_BACKENDS)}"
        )
    elif backend == "mongo" and not state.get("mongodb_uri"):
        errors.append("Missing required setting state.mongodb_uri (env MONGODB_URI)")

    source = merged.get("source", {})
    scraper = source.get("scraper")
    if scraper not in SCRAPERS:
        errors.append(f"Unknown scraper {scraper!r}. Available: {', '.join(SCRAPERS)}")
    if not source.get("selector"):
        errors.append("source.selector cannot be empty")
    if not source.get("identifier"):
        errors.append("source.identifier cannot be empty")
    _as_positive_int(source.get("timeout_ms"), "source.timeout_ms", errors)

    download = merged.get("download", {})
    _as_positive_int(download.get("timeout"), "download.timeout", errors)
    _as_bool(download.get("keep_artifact"), "download.keep_artifact", errors)
    extension = download.get("extension")
    if not isinstance(extension, str) or not extension.startswith("."):
        errors.append(f"download.extension must start with '.', got {extension!r}")

    notify = merged.get("notify", {})
    _as_bool(notify.get("on_failure"), "notify.on_failure", errors)
    zone = notify.get("timezone")
    try:
        ZoneInfo(str(zone))
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"Unknown timezone {zone!r}")

    return errors


# -------------------------------
# Public API
# -------------------------------


def merge_layers(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge defaults, settings file, environment and overrides.

    Args:
        config_path: Optional YAML settings file.
        env: Environment mapping. Defaults to os.environ after loading .env.
        overrides: Final layer (same shape as DEFAULTS).

    Returns:
        The merged configuration mapping (not validated).

    Raises:
        ConfigError: If the settings file is missing or unparsable.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    merged = _deep_merge_dicts({}, DEFAULTS)
    if config_path is not None:
        config_path = Path(config_path).resolve()
        file_layer = _load_yaml_file(config_path)
        _resolve_known_paths(file_layer, config_path.parent)
        merged = _deep_merge_dicts(merged, file_layer)
    merged = _deep_merge_dicts(merged, _env_layer(env))
    if overrides:
        merged = _deep_merge_dicts(merged, overrides)
    return merged


def load_settings(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load, validate and freeze the effective settings.

    Steps
      1) Start from DEFAULTS.
      2) Merge the YAML settings file, if given.
      3) Merge environment variables (.env honoured when env is None).
      4) Merge programmatic overrides.
      5) Validate; resolve the "auto" backend.

    Returns
      A frozen Settings instance.

    Raises
      ConfigError listing every problem found, so a misconfigured deployment
      fails once with the full picture instead of one value at a time.
    """
    merged = merge_layers(config_path, env=env, overrides=overrides)

    errors = validate_settings(merged)
    if errors:
        raise ConfigError("Invalid configuration:\n  - " + "\n  - ".join(errors))

    source = merged["source"]
    download = merged["download"]
    state = merged["state"]
    notify = merged["notify"]

    backend = str(state.get("backend") or "auto").lower()
    if backend == "auto":
        backend = "mongo" if state.get("mongodb_uri") else "json"

    ignored: list[str] = []
    return Settings(
        webhook_url=notify["webhook_url"],
        page_url=source["page_url"],
        download_api_url=download["api_url"],
        mongodb_uri=state.get("mongodb_uri") or None,
        source_identifier=str(source["identifier"]),
        selector=source["selector"],
        scraper=source["scraper"],
        timeout_ms=int(source["timeout_ms"]),
        download_dir=Path(download["dir"]),
        artifact_basename=str(download["basename"]),
        artifact_extension=download["extension"],
        keep_artifact=_as_bool(download["keep_artifact"], "download.keep_artifact", ignored),
        download_timeout=int(download["timeout"]),
        state_backend=backend,
        state_file=Path(state["file"]),
        state_database=state.get("database") or None,
        notify_title=str(notify["title"]),
        mention_user_id=(str(notify["mention_user_id"]) if notify.get("mention_user_id") else None),
        timezone=str(notify["timezone"]),
        timestamp_format=str(notify["timestamp_format"]),
        notify_on_failure=_as_bool(notify["on_failure"], "notify.on_failure", ignored),
    )
