#!/usr/bin/env python3
"""Entry point for tgz2slack."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .converter import TgzPackageConverter
from .installer import PackageInstaller
from .utils import Tgz2SlackError, setup_logging


def _print_metadata(converter: TgzPackageConverter, input_path: Path) -> None:
    metadata = converter.scan(input_path)
    print(f"Package: {metadata.name}")
    print(f"Version: {metadata.version}")
    print(f"Architecture: {metadata.architecture}")
    print(f"Summary: {metadata.summary}")
    print("Description:")
    for line in metadata.description.splitlines():
        print(f"  {line}" if line else "")
    print(f"Files: {len(metadata.filelist)}")
    print(f"Conffiles: {', '.join(metadata.conffiles) or 'none'}")
    print(f"Scripts: {', '.join(sorted(metadata.scripts)) or 'none'}")


def _confirm(prompt: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    return input(f"{prompt} [y/N]: ").strip().lower() in {"y", "yes"}


def run_inspect(args: argparse.Namespace, logger: logging.Logger) -> int:
    converter = TgzPackageConverter(logger, verbose=args.verbose)
    _print_metadata(converter, Path(args.input_file))
    return 0


def run_slack_desc(args: argparse.Namespace, logger: logging.Logger) -> int:
    converter = TgzPackageConverter(logger, verbose=args.verbose)
    metadata = converter.scan(Path(args.input_file))
    if args.name:
        metadata.name = args.name
    if args.summary:
        metadata.set_summary(args.summary)
    sys.stdout.write(converter.render_slack_desc(metadata))
    return 0


def run_convert(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Run conversion and optional installation in terminal mode."""
    converter = TgzPackageConverter(logger, verbose=args.verbose)
    installer = PackageInstaller(logger)
    input_path = Path(args.input_file).expanduser().resolve()
    output_dir = Path(args.output_dir).expanduser() if args.output_dir else Path.cwd()

    print(f"Inspecting: {input_path}")
    _print_metadata(converter, input_path)

    if not _confirm("Proceed with conversion?", args.yes):
        print("Cancelled.")
        return 1

    result = None
    try:
        print("Converting package...")
        result = converter.convert(
            input_path,
            output_dir=output_dir,
            use_scripts=not args.no_scripts,
            log_callback=lambda line: print(line),
        )
        print(f"Generated package: {result.package_path}")

        if not args.install:
            return 0

        if not _confirm("Install generated package with installpkg now?", args.yes):
            print("Conversion complete. Installation skipped.")
            return 0

        install_result = installer.install(result.package_path, log_callback=lambda line: print(line))
        if install_result.success:
            print("Installation completed successfully.")
            return 0

        print(f"Installation failed: {install_result.message}")
        return 2
    finally:
        if result is not None:
            converter.cleanup_workspace(result.temp_dir)


def run_gui(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Run GTK mode."""
    input_path = Path(args.input_file).expanduser() if args.input_file else None
    try:
        from .gui import launch_gui
    except Exception as exc:  # pragma: no cover - runtime dependency branch
        print(f"GUI dependencies unavailable: {exc}", file=sys.stderr)
        return 2

    return launch_gui(input_path, logger=logger)


def build_parser() -> argparse.ArgumentParser:
    """Build command-line parser."""
    parser = argparse.ArgumentParser(
        prog="tgz2slack",
        description="Convert tarball packages into Slackware packages with a regenerated slack-desc.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show external commands (-v) and their output (-vv)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Print package metadata")
    inspect_parser.add_argument("input_file", help="Path to a .tgz/.tar.gz package")
    inspect_parser.set_defaults(handler=run_inspect)

    desc_parser = subparsers.add_parser("slack-desc", help="Print the regenerated slack-desc")
    desc_parser.add_argument("input_file", help="Path to a .tgz/.tar.gz package")
    desc_parser.add_argument("--name", help="Override the package name used as line tag")
    desc_parser.add_argument("--summary", help="Override the one-line summary")
    desc_parser.set_defaults(handler=run_slack_desc)

    convert_parser = subparsers.add_parser("convert", help="Rebuild the package with a new slack-desc")
    convert_parser.add_argument("input_file", help="Path to a .tgz/.tar.gz package")
    convert_parser.add_argument("-o", "--output-dir", help="Directory for the built package (default: cwd)")
    convert_parser.add_argument("--no-scripts", action="store_true", help="Do not carry lifecycle scripts over")
    convert_parser.add_argument("--install", action="store_true", help="Install the result with installpkg")
    convert_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    convert_parser.set_defaults(handler=run_convert)

    gui_parser = subparsers.add_parser("gui", help="Open the GTK interface")
    gui_parser.add_argument("input_file", nargs="?", help="Package to open")
    gui_parser.set_defaults(handler=run_gui)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Program entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.INFO if args.verbose and args.log_level == "WARNING" else getattr(logging, args.log_level)
    logger = setup_logging("tgz2slack.cli", level)

    try:
        return args.handler(args, logger)
    except Tgz2SlackError as exc:
        logger.error("Operation failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
