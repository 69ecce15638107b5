"""
Clean command implementation.

Removes build outputs for one mode, or for every mode.
"""

import logging

from tapkit.cli.utils import command_from_args, create_dispatcher

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the clean command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug(f"Arguments: {args}")

    dispatcher = create_dispatcher(args)
    result = dispatcher.dispatch(command_from_args(args))

    if result.mode is None:
        logger.info("Cleaned all build outputs")
    else:
        logger.info(f"Cleaned build outputs ({result.mode})")
    return result.exit_code
