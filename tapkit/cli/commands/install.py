"""
Install command implementation.

Builds the project and copies its executables and libraries under the
install prefix.
"""

import logging

from tapkit.cli.utils import (
    command_from_args,
    create_dispatcher,
    format_install_summary,
    print_warning,
)

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug(f"Arguments: {args}")

    dispatcher = create_dispatcher(args)
    result = dispatcher.dispatch(command_from_args(args))
    install = result.install

    if not install.installed:
        print_warning(f"Nothing was installed to {install.prefix}")
        return result.exit_code

    if not args.quiet and not args.dry_run:
        print(format_install_summary(install.prefix, result.mode, len(install.installed)))
    return result.exit_code
