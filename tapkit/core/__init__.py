"""
Core functionality for tapkit.

This package contains the foundational modules the backends and the
dispatcher depend on. It must not import from ``tapkit.backends``.
"""

from .exceptions import (
    EXIT_TOOL_NOT_FOUND,
    EXIT_VALIDATION_ERROR,
    AmbiguousBackend,
    BackendInvocationFailed,
    ConfigurationError,
    ExecutableNotFound,
    FilesystemError,
    InstallPermissionDenied,
    InvalidMode,
    TapError,
    ToolNotFound,
    UnsupportedProject,
    ValidationError,
)

from .modes import (
    DEBUG,
    RELEASE,
    BuildMode,
    ModeKind,
    ModeResolver,
    resolve_mode,
)

from .process import (
    ChildCommand,
    InvocationResult,
    ProcessRunner,
)

from .installer import (
    Installer,
    InstallResult,
    InstallTarget,
    PrivilegeLevel,
    detect_privilege,
    resolve_prefix,
)

__all__ = [
    # Exceptions
    "EXIT_TOOL_NOT_FOUND",
    "EXIT_VALIDATION_ERROR",
    "AmbiguousBackend",
    "BackendInvocationFailed",
    "ConfigurationError",
    "ExecutableNotFound",
    "FilesystemError",
    "InstallPermissionDenied",
    "InvalidMode",
    "TapError",
    "ToolNotFound",
    "UnsupportedProject",
    "ValidationError",
    # Modes
    "DEBUG",
    "RELEASE",
    "BuildMode",
    "ModeKind",
    "ModeResolver",
    "resolve_mode",
    # Processes
    "ChildCommand",
    "InvocationResult",
    "ProcessRunner",
    # Install
    "Installer",
    "InstallResult",
    "InstallTarget",
    "PrivilegeLevel",
    "detect_privilege",
    "resolve_prefix",
]
