"""
Run command implementation.

Builds the project, then launches one of its executables with the
arguments given after ``--``.
"""

import logging

from tapkit.cli.utils import command_from_args, create_dispatcher

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments (executable, passthrough)

    Returns:
        Exit code (0 for success); a failing executable's exit code is
        reported through BackendInvocationFailed
    """
    logger.debug(f"Arguments: {args}")
    logger.debug(f"Passthrough arguments: {args.passthrough}")

    dispatcher = create_dispatcher(args)
    return dispatcher.dispatch(command_from_args(args)).exit_code
