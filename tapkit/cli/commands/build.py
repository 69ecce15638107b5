"""
Build command implementation.

Builds the project with its detected build system.
"""

import logging

from tapkit.cli.utils import command_from_args, create_dispatcher

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the build command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug(f"Arguments: {args}")

    dispatcher = create_dispatcher(args)
    result = dispatcher.dispatch(command_from_args(args))

    logger.info(f"Build finished ({result.mode})")
    return result.exit_code
