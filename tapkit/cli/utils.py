"""
Shared utilities for CLI commands.

Provides common functionality used across the verb commands: project
root and configuration lookup, dispatcher construction, and consistent
output formatting.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

from tapkit.backends.detector import BackendDetector
from tapkit.config.parser import CONFIG_FILE_NAME, ProjectConfig, load_project_config
from tapkit.core.exceptions import UnsupportedProject
from tapkit.dispatcher import Command, Dispatcher

logger = logging.getLogger(__name__)


# ============================================================================
# Project / Configuration
# ============================================================================


def resolve_project_root(args, detector: Optional[BackendDetector] = None) -> Path:
    """
    Resolve the project root for a CLI invocation.

    An explicit ``--project-root`` is used as given. Otherwise the nearest
    directory (starting at the current directory) with a build file is
    used. With an explicit backend and no build file anywhere, the current
    directory is the root.

    Args:
        args: Parsed arguments with project_root and backend
        detector: Backend detector (default: global registry)

    Returns:
        Resolved absolute path

    Raises:
        UnsupportedProject: If no build file is found and no backend is given
    """
    if getattr(args, "project_root", None):
        return Path(args.project_root).resolve()

    cwd = Path.cwd()
    root = (detector or BackendDetector()).find_project_root(cwd)
    if root is not None:
        return root

    if getattr(args, "backend", None):
        return cwd.resolve()

    raise UnsupportedProject(cwd)


def load_config(args, project_root: Path) -> ProjectConfig:
    """
    Load tap.yaml for a CLI invocation.

    ``--config`` must point at an existing file; the default
    ``<project>/tap.yaml`` is optional.

    Args:
        args: Parsed arguments with config
        project_root: Project root directory

    Returns:
        Parsed configuration
    """
    if getattr(args, "config", None):
        return load_project_config(Path(args.config).resolve(), required=True)
    return load_project_config(project_root / CONFIG_FILE_NAME, required=False)


def create_dispatcher(args) -> Dispatcher:
    """
    Build a Dispatcher from parsed CLI arguments.

    Args:
        args: Parsed arguments

    Returns:
        Dispatcher bound to the resolved project root and configuration
    """
    project_root = resolve_project_root(args)
    config = load_config(args, project_root)
    logger.debug(f"Project root: {project_root}")

    return Dispatcher(
        project_root,
        config=config,
        jobs=getattr(args, "jobs", None),
        dry_run=getattr(args, "dry_run", False),
    )


def command_from_args(args) -> Command:
    """Translate parsed CLI arguments into a Command."""
    return Command(
        verb=args.verb,
        mode=getattr(args, "mode", None),
        executable=getattr(args, "executable", None),
        passthrough_args=list(getattr(args, "passthrough", [])),
        prefix=getattr(args, "prefix", None),
        backend=getattr(args, "backend", None),
    )


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def format_install_summary(prefix: Path, mode: Any, count: int) -> str:
    """One-line summary printed after a successful install."""
    noun = "file" if count == 1 else "files"
    return f"Install complete: {count} {noun} to {prefix} ({mode})"


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)
