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

"""Command-line interface for apkwatch.

This module provides the main CLI entry point for the apkwatch tool, meant
to be run by a scheduler (cron, systemd timer, CI schedule).

Commands:

    check: Run one update check (scrape, compare, download, notify)
    show: Print the stored version record
    validate: Check configuration without network calls

Example:
    Run a check:
        ```bash
        $ apkwatch check
        ```

    Use a settings file and keep the downloaded APK:
        ```bash
        $ apkwatch check --config apkwatch.yaml --keep-artifact
        ```

    Enable verbose output:
        ```bash
        $ apkwatch check --verbose
        ```

Exit Codes:

- 0: Success (no new version, or new version processed)
- 1: Error (configuration error, or the run aborted)

Note:
    The CLI uses argparse for command parsing (stdlib, zero dependencies).
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.

"""

from __future__ import annotations

import argparse
from importlib.metadata import version
from pathlib import Path
import sys
from typing import Any

from apkwatch.config import load_settings, merge_layers, validate_settings
from apkwatch.core import load_record, run_check
from apkwatch.exceptions import ApkWatchError, ConfigError
from apkwatch.logging import get_logger, set_global_logger
from apkwatch.results import RunStatus


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}")
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        import traceback

        traceback.print_exc()


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config).resolve() if args.config else None


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "state_file", None):
        overrides.setdefault("state", {})["file"] = str(args.state_file)
    if getattr(args, "keep_artifact", False):
        overrides.setdefault("download", {})["keep_artifact"] = True
    return overrides


def cmd_check(args: argparse.Namespace) -> int:
    """Handler for 'apkwatch check' command.

    Loads settings, runs one pass of the pipeline and prints the outcome.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for unchanged or updated, 1 for aborted runs and
        configuration errors).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        settings = load_settings(_config_path(args), overrides=_overrides(args))
    except ConfigError as err:
        _print_error(err, args)
        return 1

    print(f"Checking for updates: {settings.page_url}")
    print()

    try:
        outcome = run_check(settings, logger=logger)
    except ApkWatchError as err:
        _print_error(err, args)
        return 1

    record = outcome.record
    print("=" * 70)
    print("CHECK RESULTS")
    print("=" * 70)
    print(f"Source:            {outcome.source_identifier}")
    print(f"Status:            {outcome.status.value}")
    print(f"Page Version:      {outcome.scraped_version}")
    if outcome.artifact is not None:
        print(f"Manifest Version:  {outcome.artifact.manifest_version_name}")
        print(f"Version Code:      {outcome.artifact.manifest_version_code}")
        print(f"File:              {outcome.artifact.filename}")
    elif outcome.previous is not None:
        print(f"Stored Version:    {outcome.previous.manifest_version_name}")
    if record is not None:
        print(f"Record Updated:    {record.updated_at}")
    print(f"States:            {' -> '.join(s.value for s in outcome.states)}")
    if outcome.failure is not None:
        print(f"Failure:           {outcome.failure.value}")
    if outcome.degraded:
        print(f"Degraded:          {', '.join(k.value for k in outcome.degraded)}")
    print(f"Notified:          {'yes' if outcome.notified else 'no'}")
    print("=" * 70)
    print()

    if outcome.status is RunStatus.ABORTED:
        print("[FAILED] Update check aborted.")
        return 1
    if outcome.status is RunStatus.UPDATED:
        print("[SUCCESS] New version processed!")
    else:
        print("[SUCCESS] No new version.")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Handler for 'apkwatch show' command.

    Prints the stored record for the configured source identifier.

    Returns:
        Exit code (0 when the store could be read, 1 otherwise).

    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    try:
        settings = load_settings(_config_path(args))
        record = load_record(settings, logger=logger)
    except ApkWatchError as err:
        _print_error(err, args)
        return 1

    print("=" * 70)
    print("STORED RECORD")
    print("=" * 70)
    print(f"Backend:           {settings.state_backend}")
    print(f"Source:            {settings.source_identifier}")
    if record is None:
        print("Record:            (none)")
    else:
        print(f"Page Version:      {record.scraped_version}")
        print(f"Manifest Version:  {record.manifest_version_name}")
        print(f"Version Code:      {record.manifest_version_code}")
        print(f"File:              {record.filename}")
        print(f"Downloaded At:     {record.downloaded_at}")
        print(f"Updated At:        {record.updated_at}")
        print(f"Created At:        {record.created_at}")
    print("=" * 70)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'apkwatch validate' command.

    Validates the merged configuration without making network calls.

    Returns:
        Exit code (0 for valid configuration, 1 for invalid).

    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    config_path = _config_path(args)
    print(f"Validating configuration: {config_path or '(environment only)'}")
    print()

    try:
        merged = merge_layers(config_path)
    except ConfigError as err:
        _print_error(err, args)
        return 1
    errors = validate_settings(merged)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Status:      {'INVALID' if errors else 'VALID'}")
    print()
    if errors:
        print(f"Errors ({len(errors)}):")
        for error in errors:
            print(f"  [X] {error}")
        print()
    print("=" * 70)

    if errors:
        print()
        print(f"[FAILED] Configuration has {len(errors)} error(s).")
        return 1
    print()
    print("[SUCCESS] Configuration is valid!")
    return 0


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: environment only)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="apkwatch",
        description="apkwatch - detect, download and announce new APK releases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"apkwatch {version('apkwatch')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'check' command
    parser_check = subparsers.add_parser(
        "check",
        help="Run one update check",
        description="Read the version from the page, download and record a new release, and notify.",
    )
    _add_config_argument(parser_check)
    parser_check.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="JSON state file (default: from config or state/apkwatch.json)",
    )
    parser_check.add_argument(
        "--keep-artifact",
        action="store_true",
        help="Keep the downloaded APK after a successful run",
    )
    parser_check.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser_check.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )
    parser_check.set_defaults(func=cmd_check)

    # 'show' command
    parser_show = subparsers.add_parser(
        "show",
        help="Print the stored version record",
        description="Read the stored record for the configured source identifier.",
    )
    _add_config_argument(parser_show)
    parser_show.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show details",
    )
    parser_show.set_defaults(func=cmd_show)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate configuration (no network calls)",
        description="Check settings file and environment for missing or invalid values.",
    )
    _add_config_argument(parser_validate)
    parser_validate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show validation details",
    )
    parser_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the apkwatch CLI.

    This function is registered as the 'apkwatch' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
