#!/usr/bin/env python3
"""Command-line interface for layerpack.

This module provides the CLI for building and inspecting layer archives:
- Argument parsing and validation
- Tool settings and build configuration loading
- Logging setup
- Help and version information

Example:
    >>> from layerpack.cli import parse_arguments
    >>> args = parse_arguments(["build", "-c", "image.yaml", "-o", "out"])
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from layerpack.core.constants import LAYERPACK_VERSION
from layerpack.infrastructure.build_config import load_build_config
from layerpack.infrastructure.config_manager import (
    LOG_FILE_KEY,
    LOG_LEVEL_KEY,
    ConfigError,
    ConfigManager,
    ConfigSource,
)
from layerpack.infrastructure.logger import Logger, set_global_logger
from layerpack.layers.archive import ArchiveError, extract_tar
from layerpack.layers.builder import LayerBuildError, LayerBuilder
from layerpack.layers.models import BuildConfig
from layerpack.layers.timestamps import parse_timestamp

DESCRIPTION = "layerpack - Deterministic tar layers for container images"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If argument validation fails
    """
    parser = argparse.ArgumentParser(
        prog="layerpack",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build every layer declared in image.yaml
  layerpack build --config image.yaml --output out/

  # Build with debug logging written to a file
  layerpack build -c image.yaml -o out/ --debug --log-file build.log

  # Unpack a layer to inspect it
  layerpack extract out/app.tar /tmp/app
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {LAYERPACK_VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # build
    build = subparsers.add_parser("build", help="Build layer archives from a configuration")

    build.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        required=True,
        help="Build configuration file (YAML format)",
    )

    build.add_argument(
        "-o",
        "--output",
        metavar="DIR",
        type=str,
        required=True,
        help="Directory receiving <layer>.tar files",
    )

    build.add_argument(
        "--settings",
        metavar="FILE",
        type=str,
        help="Tool settings file (logging, owner/group defaults)",
    )

    log_group = build.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write log messages to FILE",
    )

    # extract
    extract = subparsers.add_parser("extract", help="Extract a layer archive")
    extract.add_argument("archive", metavar="ARCHIVE", help="Archive to extract")
    extract.add_argument("destination", metavar="DEST", help="Destination directory")

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    if args.command == "build":
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")

        output_path = Path(args.output)
        if output_path.exists() and not output_path.is_dir():
            raise CLIError(f"Output path is not a directory: {args.output}")

        if args.settings and not Path(args.settings).is_file():
            raise CLIError(f"Settings file does not exist: {args.settings}")

    elif args.command == "extract":
        if not Path(args.archive).is_file():
            raise CLIError(f"Archive does not exist: {args.archive}")


def load_settings(args: argparse.Namespace) -> ConfigManager:
    """
    Load tool settings with command-line overrides applied.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration manager

    Raises:
        CLIError: If the settings file cannot be loaded
    """
    try:
        settings = ConfigManager(getattr(args, "settings", None))
    except ConfigError as e:
        raise CLIError(str(e))

    if getattr(args, "debug", False):
        settings.set(LOG_LEVEL_KEY, "DEBUG", ConfigSource.CLI_ARGS)

    if getattr(args, "log_file", None):
        settings.set(LOG_FILE_KEY, args.log_file, ConfigSource.CLI_ARGS)

    return settings


def setup_logging(settings: ConfigManager) -> Logger:
    """
    Setup logging based on tool settings.

    Args:
        settings: Configuration manager

    Returns:
        Configured logger instance

    Raises:
        CLIError: If the configured log level is unknown
    """
    level = settings.log_level
    log_file = settings.log_file

    try:
        logger = Logger("layerpack", level=level)
    except KeyError:
        raise CLIError(f"Unknown log level: {level}")

    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))

    set_global_logger(logger)
    return logger


def log_image_metadata(config: BuildConfig, logger: Logger) -> None:
    """
    Log the image creation time and target platforms.

    Args:
        config: Build configuration
        logger: Logger instance
    """
    if config.creation_time:
        result = parse_timestamp(config.creation_time)
        if result.ok:
            logger.info("Image creation time", creation_time=result.value.isoformat())
        else:
            logger.warning(
                "Using current time as image creation time",
                error=str(result.error),
                creation_time=result.value.isoformat(),
            )

    for platform in config.platforms:
        logger.info("Target platform", platform=platform.render())


def run_build(args: argparse.Namespace) -> int:
    """
    Build every layer of a configuration and print the archive paths.

    Args:
        args: Parsed arguments namespace

    Returns:
        Exit code
    """
    settings = load_settings(args)
    logger = setup_logging(settings)

    try:
        config = load_build_config(args.config)
    except ConfigError as e:
        raise CLIError(str(e))

    log_image_metadata(config, logger)

    default_user, default_group = settings.default_owner
    builder = LayerBuilder(
        args.output,
        config.properties,
        logger=logger,
        default_user=default_user,
        default_group=default_group,
    )

    try:
        paths = builder.build(config.layers)
    except LayerBuildError as e:
        raise CLIError(str(e))

    for path in paths:
        print(path)

    return 0


def run_extract(args: argparse.Namespace) -> int:
    """
    Extract an archive and print the extracted entry names.

    Args:
        args: Parsed arguments namespace

    Returns:
        Exit code
    """
    try:
        names = extract_tar(args.archive, args.destination)
    except ArchiveError as e:
        raise CLIError(str(e))

    for name in names:
        print(name)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    try:
        args = parse_arguments(argv)

        if args.command == "build":
            return run_build(args)
        return run_extract(args)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
