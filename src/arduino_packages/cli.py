"""
Command-line interface for arduino-packages.

This module provides the `arduino-packages` command, which installs hardware
platforms and their tools from Arduino package indices into a directory tree.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from arduino_packages import __version__
from arduino_packages.config import (
    DEFAULT_BOARD,
    DEFAULT_INDICES,
    DEFAULT_ROOT_DIRECTORY,
    DEFAULT_SELECTIONS,
    InstallConfig,
    PlatformSelection,
    get_cache_root,
)
from arduino_packages.errors import PackagesError
from arduino_packages.installer import Installer, InstallReport
from arduino_packages.output import TimedLogger, log, log_detail, log_error, log_header, log_phase, log_warning, set_verbose

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool) -> None:
    """Configure the root logger for library log records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _selection(value: str) -> PlatformSelection:
    try:
        return PlatformSelection.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arduino-packages",
        description="Install Arduino hardware platforms and their tools from package indices",
    )
    parser.add_argument("--version", action="version", version=f"arduino-packages {__version__}")
    parser.add_argument(
        "--root-directory",
        type=Path,
        default=DEFAULT_ROOT_DIRECTORY,
        help=f"directory to extract to (default: {DEFAULT_ROOT_DIRECTORY})",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="directory for downloaded archives (default: $ARDUINO_PACKAGES_CACHE_DIR or ~/.arduino-packages/cache)",
    )
    parser.add_argument(
        "--index",
        dest="indices",
        action="append",
        type=Path,
        default=None,
        help=f"package index file, may be repeated (default: {' '.join(DEFAULT_INDICES)})",
    )
    parser.add_argument(
        "--select",
        dest="selections",
        action="append",
        type=_selection,
        default=None,
        metavar="PACKAGE:ARCH[@VERSION]",
        help=f"platforms to install, may be repeated (default: {' '.join(DEFAULT_SELECTIONS)})",
    )
    parser.add_argument(
        "--host",
        dest="hosts",
        action="append",
        default=None,
        help="accepted tool host triple, may be repeated (default: detected from this machine)",
    )
    parser.add_argument(
        "--board",
        default=DEFAULT_BOARD,
        help=f"board id whose properties are printed (default: {DEFAULT_BOARD})",
    )
    parser.add_argument(
        "--strict-pin",
        action="store_true",
        help="fail when a pinned version does not exist instead of using the latest",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        help="maximum concurrent downloads (default: one per archive)",
    )
    parser.add_argument("--dry-run", action="store_true", help="print the installation plan without executing it")
    parser.add_argument("--no-tui", action="store_true", help="disable the live progress display")
    parser.add_argument("-v", "--verbose", action="store_true", help="show verbose output")
    return parser


def config_from_args(args: argparse.Namespace) -> InstallConfig:
    config = InstallConfig(
        root_directory=args.root_directory,
        cache_dir=get_cache_root(args.cache_dir),
        board=args.board,
        strict_pin=args.strict_pin,
        jobs=args.jobs,
        dry_run=args.dry_run,
        use_tui=False if args.no_tui else None,
        verbose=args.verbose,
    )
    if args.indices:
        config.indices = list(args.indices)
    if args.selections:
        config.selections = list(args.selections)
    if args.hosts:
        config.hosts = list(args.hosts)
    return config


def run(config: InstallConfig) -> InstallReport:
    """Run the installer, reporting each step."""
    installer = Installer(config)

    log_phase(1, 4, "Loading package indices...")
    store = installer.load_store()
    for index in store.indices:
        log_detail(f"{index.source}: {len(index.packages)} packages")

    log_phase(2, 4, "Resolving platforms...")
    resolved = installer.resolve(store)
    plan = installer.build_plan(store, resolved)
    for entry in plan.files:
        log_detail(entry.path)
        log_detail(f"<- {entry.url}", indent=9, verbose_only=True)

    report = InstallReport(plan=plan)
    if config.dry_run:
        return report

    with TimedLogger(f"Installing {len(plan)} archives", phase=(3, 4)) as timed:
        report.result = installer.execute(plan)
        report.result.raise_for_error()
        timed.detail(f"{report.result.downloads} downloaded, {report.result.extractions} extracted, {report.result.placed_count} in place")

    log_phase(4, 4, f"Loading board properties for {config.board}...")
    installer.load_properties(report)
    for collision in report.collisions:
        log(f"Key collision {collision.key} in {collision.source}", verbose_only=True)
    if not report.board_properties.map:
        log_warning(f"No properties found for board {config.board}")
    for key in sorted(report.board_properties.map):
        log_detail(f"{key}={report.board_properties.map[key]}")

    return report


def main(argv: Optional[List[str]] = None) -> int:
    """arduino-packages entry point.

    Returns:
        Process exit code: 0 on success, 1 on any installer error, 130 on Ctrl-C
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    set_verbose(args.verbose)
    log_header("arduino-packages", __version__)

    try:
        run(config_from_args(args))
    except PackagesError as e:
        log_error(f"{e.kind.value} error: {e}")
        if args.verbose:
            logging.getLogger(__name__).debug("Traceback", exc_info=True)
        return 1
    except KeyboardInterrupt:
        log_error("Interrupted by user")
        return 130

    log("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
