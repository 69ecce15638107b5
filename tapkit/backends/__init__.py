"""
Build backends for tapkit.
"""

from tapkit.backends.base import (
    BackendAdapter,
    BackendKind,
    BackendOptions,
    DeferredCommand,
    DirectRemoval,
    EnsureDirectory,
    Project,
    Step,
)
from tapkit.backends.cmake import CMakeBackend
from tapkit.backends.detector import BackendDetector, detect_backend
from tapkit.backends.make import MakeBackend
from tapkit.backends.meson import MesonBackend
from tapkit.backends.registry import BackendRegistry, get_global_registry

__all__ = [
    "BackendAdapter",
    "BackendDetector",
    "BackendKind",
    "BackendOptions",
    "BackendRegistry",
    "CMakeBackend",
    "DeferredCommand",
    "DirectRemoval",
    "EnsureDirectory",
    "MakeBackend",
    "MesonBackend",
    "Project",
    "Step",
    "detect_backend",
    "get_global_registry",
]
