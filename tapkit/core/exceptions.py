"""
Centralized exception hierarchy for tapkit.

Every error carries the exit code the ``tap`` command reports when the
error reaches the top of the CLI. Validation errors share one reserved
code; backend failures mirror the child process.
"""

from typing import Optional, Sequence

# Reserved exit code for failures detected by tap itself before any
# backend process is spawned.
EXIT_VALIDATION_ERROR = 125

# Shell convention for "command not found".
EXIT_TOOL_NOT_FOUND = 127


# ============================================================================
# Base Exceptions
# ============================================================================


class TapError(Exception):
    """Base exception for all tapkit errors."""

    exit_code = 1


class ValidationError(TapError):
    """Base exception for errors raised before any side effect."""

    exit_code = EXIT_VALIDATION_ERROR


# ============================================================================
# Detection Exceptions
# ============================================================================


class UnsupportedProject(ValidationError):
    """Raised when no backend marker is found in the project root."""

    def __init__(self, root):
        self.root = root
        super().__init__(
            f"Could not detect the build system in {root} "
            "(expected Makefile, CMakeLists.txt or meson.build)"
        )


class AmbiguousBackend(ValidationError):
    """Raised when an explicit backend override names no known backend."""

    def __init__(self, name: str, known: Sequence[str] = ()):
        self.name = name
        msg = f"Unknown build backend: {name!r}"
        if known:
            msg += f" (choose from: {', '.join(known)})"
        super().__init__(msg)


# ============================================================================
# Mode / Configuration Exceptions
# ============================================================================


class InvalidMode(ValidationError):
    """Raised when a requested build mode is not recognized."""

    def __init__(self, mode: str, known: Sequence[str] = ()):
        self.mode = mode
        msg = f"Invalid build mode: {mode!r}"
        if known:
            msg += f" (known modes: {', '.join(known)})"
        super().__init__(msg)


class ConfigurationError(ValidationError):
    """Raised when tap.yaml cannot be parsed or has invalid values."""

    pass


# ============================================================================
# Execution Exceptions
# ============================================================================


class BackendInvocationFailed(TapError):
    """Raised when a backend child process exits non-zero."""

    def __init__(self, exit_code: int, command: Optional[Sequence[str]] = None):
        self.returncode = exit_code
        self.command = list(command) if command else []
        # Killed-by-signal codes are negative; report them the way a shell does
        self.exit_code = 128 - exit_code if exit_code < 0 else exit_code
        if exit_code < 0:
            msg = f"Process was killed by signal {-exit_code}"
        else:
            msg = f"Process exited with exit code {exit_code}"
        if self.command:
            msg += f" while running: {' '.join(self.command)}"
        super().__init__(msg)


class ToolNotFound(TapError):
    """Raised when the backend executable cannot be spawned."""

    exit_code = EXIT_TOOL_NOT_FOUND

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"{program} not found in PATH")


class ExecutableNotFound(ValidationError):
    """Raised when `run` names an executable the build did not produce."""

    def __init__(self, name: str, searched=None):
        self.name = name
        self.searched = searched
        msg = f"Executable not found among build outputs: {name}"
        if searched is not None:
            msg += f" (searched {searched})"
        super().__init__(msg)


# ============================================================================
# Install / Filesystem Exceptions
# ============================================================================


class InstallPermissionDenied(ValidationError):
    """Raised when the install prefix is not writable."""

    def __init__(self, path, prefix=None):
        self.path = path
        self.prefix = prefix if prefix is not None else path
        super().__init__(
            f"Permission denied: cannot write to {path}. "
            "Re-run with elevated privileges or pass --prefix"
        )


class FilesystemError(TapError):
    """Raised when a removal or copy fails."""

    pass
