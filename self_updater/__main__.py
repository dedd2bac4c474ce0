"""Drive the update pipeline from the command line."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Sequence

from self_updater.builder import build_updater
from self_updater.config import load_updater_config
from self_updater.logging_config import LogVerbosity, ensure_updater_logging, set_file_log_verbosity
from self_updater.models import UpdateError

_LOGGER = logging.getLogger("self_updater.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="self_updater", description=__doc__)
    parser.add_argument(
        "--manifest",
        default=Path("package.json"),
        type=Path,
        help="Path to the running application's manifest.",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON updater configuration.")
    parser.add_argument("--temp-dir", type=Path, help="Directory for downloads and unpacking.")
    parser.add_argument("--verbose", action="store_true", help="Log debug output.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("check", help="Report whether a newer version is published.")
    subparsers.add_parser("stage", help="Download and unpack the newer version.")
    subparsers.add_parser(
        "relaunch",
        help="Stage the newer version and start it so it can install itself.",
    )
    install = subparsers.add_parser(
        "install", help="Copy this application over an older installation."
    )
    install.add_argument("--target", required=True, type=Path, help="Installation to replace.")
    install.add_argument(
        "--relaunch", type=Path, help="Executable to start once the copy finished."
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    ensure_updater_logging(console_level=logging.DEBUG if args.verbose else logging.INFO)
    if args.verbose:
        set_file_log_verbosity(LogVerbosity.VERBOSE)

    config = load_updater_config(args.config)
    if args.temp_dir is not None:
        config = dataclasses.replace(config, temporary_directory=args.temp_dir)

    try:
        updater = build_updater(args.manifest, config=config)
        if args.command == "install":
            updater.install(args.target)
            if args.relaunch is not None:
                updater.run(args.relaunch)
            print(f"Installed {updater.manifest.name} to {args.target}")
            return 0

        has_update, remote = updater.check_new_version()
        if not has_update:
            print(f"{updater.manifest.name} {updater.manifest.version} is up to date")
            return 0
        print(f"Update available: {updater.manifest.version} -> {remote.version}")
        if args.command == "check":
            return 0

        session = updater.stage_update(remote)
        print(f"Staged {remote.name} {remote.version} at {session.executable_path}")
        if args.command == "relaunch":
            process = updater.relaunch_into(session)
            print(f"Started updated application (pid {process.pid})")
        return 0
    except UpdateError as exc:
        _LOGGER.error("Update failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
