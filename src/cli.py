#!/usr/bin/env python3
"""
CLI for following log files.

Usage:
    python -m src.cli follow --conf logtrail.toml
    python -m src.cli follow --conf logtrail.toml --poll --prefix-time
    python -m src.cli config --conf logtrail.toml
"""

import argparse
import dataclasses
import json
import logging
import os
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from dotenv import load_dotenv

from src.trail import DirectoryWatcher, Trail, TrailError, __version__
from src.console import (
    AppConfig,
    ConfigError,
    LineWriter,
    PidFileError,
    build_trail_options,
    compile_pattern,
    load_config,
    remove_pid_file,
    resolve_log_level,
    write_pid_file,
)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def setup_logging(config: AppConfig, verbose: bool = False) -> None:
    """
    Configure the root logger from the application config.

    Logs go to ``config.log`` when set. A log file that cannot be opened
    falls back to stderr with a warning.
    """
    level = logging.DEBUG if verbose else resolve_log_level(config.log_level)
    if config.log:
        try:
            logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, force=True,
                                filename=str(config.log))
            return
        except OSError as e:
            logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, force=True)
            logger.warning(f"Cannot open log file {config.log}, logging to stderr: {e}")
            return
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, force=True)


def get_config(args) -> AppConfig:
    """
    Load the config file and apply command line and environment overrides.

    Raises:
        ConfigError: If no config file is given or it is invalid
    """
    conf = args.conf or os.environ.get("LOGTRAIL_CONFIG")
    if not conf:
        raise ConfigError("No config file given. Use --conf or set LOGTRAIL_CONFIG")

    config = load_config(conf)

    if args.poll:
        config.poll = True
    if args.prefix_path is not None:
        config.prefix_path = args.prefix_path
    if args.prefix_time:
        config.prefix_time = True

    env_level = os.environ.get("LOGTRAIL_LOG_LEVEL")
    if env_level:
        resolve_log_level(env_level)
        config.log_level = env_level

    return config


def start_trails(config: AppConfig) -> Tuple[List[Trail], List[TextIO]]:
    """
    Start one trail per watched directory.

    On failure every trail already started is ended and every output
    opened is closed before the error propagates.

    Returns:
        The running trails and the output files opened for them

    Raises:
        OSError: If an output file cannot be opened
        TrailError: If a directory cannot be watched or listed
    """
    trails: List[Trail] = []
    outputs: List[TextIO] = []
    trail_logger = logging.getLogger("src.trail")

    try:
        for watch in config.watches:
            if watch.out:
                out = open(watch.out, "a", encoding="utf-8")
                outputs.append(out)
            else:
                out = sys.stdout

            options = build_trail_options(watch, config, trail_logger)
            handler = LineWriter(
                out,
                line_pattern=compile_pattern(watch.line_pattern, "line_pattern", logger),
                line_ignore_pattern=compile_pattern(watch.line_ignore_pattern, "line_ignore_pattern", logger),
                prefix_path=config.prefix_path,
                prefix_time=config.prefix_time,
                desc=watch.desc,
            )

            for directory in watch.paths:
                watcher = DirectoryWatcher(directory, poll=config.poll)
                trail = Trail(watcher, options)
                trail.follow(handler)
                trails.append(trail)
                logger.info(f"  - {watcher.directory}")
    except (OSError, TrailError):
        stop_trails(trails, outputs)
        raise

    return trails, outputs


def stop_trails(trails: List[Trail], outputs: List[TextIO]) -> None:
    """End every trail, then close the outputs they wrote to."""
    for trail in trails:
        trail.end()
    for out in outputs:
        out.close()


def cmd_follow(args):
    """Follow the configured directories until interrupted."""
    try:
        config = get_config(args)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    setup_logging(config, args.verbose)

    if not config.watches:
        logger.error("Nothing to watch: the config has no [[watch]] entries")
        sys.exit(1)

    pid_file = Path(args.pid_file)
    try:
        write_pid_file(pid_file)
    except (PidFileError, OSError) as e:
        logger.error(f"Cannot write PID file {pid_file}: {e}")
        sys.exit(1)

    shutdown = GracefulShutdown()

    try:
        try:
            trails, outputs = start_trails(config)
        except (OSError, TrailError) as e:
            logger.error(f"Failed to start: {e}")
            sys.exit(1)

        logger.info(f"Following {len(trails)} director{'y' if len(trails) == 1 else 'ies'}")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.5)

        stop_trails(trails, outputs)
        logger.info("Stopped")
    finally:
        remove_pid_file(pid_file)


def cmd_config(args):
    """Print the resolved configuration as JSON."""
    try:
        config = get_config(args)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    print(json.dumps(dataclasses.asdict(config), indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logtrail",
        description="Utility for following log files in directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Follow everything configured in logtrail.toml
  python -m src.cli follow --conf logtrail.toml

  # Poll instead of using native change notifications
  python -m src.cli follow --conf logtrail.toml --poll

  # Show the configuration that would be used
  python -m src.cli config --conf logtrail.toml
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=__version__)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--conf", default=None, help="Config file (or set LOGTRAIL_CONFIG)")
    common.add_argument("--poll", action="store_true",
                        help="Poll for changes instead of using native notifications")
    common.add_argument("--prefix-path", action=argparse.BooleanOptionalAction, default=None,
                        help="Prefix the file path to every output line (default)")
    common.add_argument("--prefix-time", action="store_true", help="Prefix the time to every output line")

    subparsers = parser.add_subparsers(dest="command", required=True)

    follow_parser = subparsers.add_parser("follow", parents=[common], help="Follow the configured directories")
    follow_parser.add_argument("--pid-file", default="logtrail.pid", help="PID file (default: logtrail.pid)")
    follow_parser.set_defaults(func=cmd_follow)

    config_parser = subparsers.add_parser("config", parents=[common], help="Print the resolved configuration")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None):
    load_dotenv()

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
