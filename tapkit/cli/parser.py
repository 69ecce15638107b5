"""
tap CLI argument parser.

This module implements the command-line interface for tapkit using argparse.

Everything after the first ``--`` on the command line is split off before
argparse sees it and forwarded untouched to the executable launched by
``tap run``.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from tapkit.cli.utils import print_error
from tapkit.core.exceptions import TapError
from tapkit.dispatcher import Verb

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("tapkit")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

PASSTHROUGH_SEPARATOR = "--"


def split_passthrough(argv: List[str]) -> Tuple[List[str], List[str]]:
    """
    Split ``argv`` at the first ``--``.

    Args:
        argv: Raw command-line arguments

    Returns:
        (arguments for tap, passthrough arguments)

    Example:
        >>> split_passthrough(["run", "app", "--", "--flag", "value"])
        (['run', 'app'], ['--flag', 'value'])
    """
    if PASSTHROUGH_SEPARATOR not in argv:
        return list(argv), []
    index = argv.index(PASSTHROUGH_SEPARATOR)
    return list(argv[:index]), list(argv[index + 1 :])


class CLI:
    """tap command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="tap",
            description="tap - one front end for make, CMake and Meson projects",
            epilog='Use "tap COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"tap {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: <project>/tap.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            help="Project root directory (default: nearest parent with a build file)",
        )
        parser.add_argument(
            "--backend",
            "--build-system",
            "-b",
            dest="backend",
            metavar="NAME",
            help="Use this build system instead of detecting it (make, cmake, meson)",
        )
        parser.add_argument(
            "--jobs",
            "-j",
            type=_positive_int,
            metavar="N",
            help="Number of parallel build jobs",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Print the commands that would run without running them",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_build_command(subparsers)
        self._add_run_command(subparsers)
        self._add_clean_command(subparsers)
        self._add_install_command(subparsers)

        return parser

    @staticmethod
    def _add_mode_argument(parser, help_text: str):
        parser.add_argument(
            "--mode",
            "-m",
            metavar="MODE",
            help=help_text,
        )

    @staticmethod
    def _add_jobs_argument(parser):
        # Also accepted after the verb; the global value survives if omitted
        parser.add_argument(
            "--jobs",
            "-j",
            type=_positive_int,
            metavar="N",
            default=argparse.SUPPRESS,
            help="Number of parallel build jobs",
        )

    def _add_build_command(self, subparsers):
        """Add 'build' subcommand."""
        parser = subparsers.add_parser(
            "build",
            aliases=["b"],
            help="Build the project",
            description="Build the project with its native build system",
        )
        self._add_mode_argument(
            parser, "Build mode: debug, release or a custom mode (default: debug)"
        )
        self._add_jobs_argument(parser)
        parser.set_defaults(verb=Verb.BUILD)

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            aliases=["r"],
            help="Build and run an executable",
            description=(
                "Build the project, then run one of its executables. "
                "Arguments after -- are passed to the executable unchanged."
            ),
            usage="tap run [-h] [-m MODE] EXECUTABLE [-- ARGS...]",
        )
        self._add_mode_argument(parser, "Build mode (default: debug)")
        self._add_jobs_argument(parser)
        parser.add_argument("executable", metavar="EXECUTABLE", help="Executable to run")
        parser.set_defaults(verb=Verb.RUN)

    def _add_clean_command(self, subparsers):
        """Add 'clean' subcommand."""
        parser = subparsers.add_parser(
            "clean",
            aliases=["c"],
            help="Remove build outputs",
            description="Remove build outputs for one mode, or for all modes",
        )
        self._add_mode_argument(parser, "Only clean this mode (default: all modes)")
        parser.set_defaults(verb=Verb.CLEAN)

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            aliases=["i"],
            help="Build and install artifacts",
            description=(
                "Build the project and copy its executables and libraries "
                "under PREFIX/bin and PREFIX/lib"
            ),
        )
        self._add_mode_argument(parser, "Build mode (default: debug)")
        self._add_jobs_argument(parser)
        parser.add_argument(
            "--prefix",
            type=Path,
            metavar="PATH",
            help="Install prefix (default: /usr/local as root, ~/.local otherwise)",
        )
        parser.set_defaults(verb=Verb.INSTALL)

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Arguments after ``--`` are stored on ``passthrough``.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        if args is None:
            args = sys.argv[1:]
        tap_args, passthrough = split_passthrough(args)
        parsed = self.parser.parse_args(tap_args)
        parsed.passthrough = passthrough

        if passthrough and getattr(parsed, "verb", None) is not Verb.RUN:
            self.parser.error("arguments after -- are only accepted by 'run'")

        return parsed

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except TapError as e:
            logger.debug(f"{type(e).__name__}: {e}")
            print_error(str(e), f"while running 'tap {parsed_args.verb.value}'")
            return e.exit_code
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with verb field

        Returns:
            Exit code from command handler
        """
        command_map = {
            Verb.BUILD: "tapkit.cli.commands.build",
            Verb.RUN: "tapkit.cli.commands.run",
            Verb.CLEAN: "tapkit.cli.commands.clean",
            Verb.INSTALL: "tapkit.cli.commands.install",
        }

        module_name = command_map.get(args.verb)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        import importlib

        module = importlib.import_module(module_name)
        return module.run(args)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid job count: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"job count must be at least 1, got {number}")
    return number


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
