"""
Backend detection.

Inspects a project root for backend marker files and selects exactly one
backend. Projects migrated between build systems often keep stale
markers, so several markers may be present; the registry's order decides
(Make, then CMake, then Meson). An explicit override skips the scan.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from tapkit.backends.base import BackendKind, Project
from tapkit.backends.registry import BackendRegistry, get_global_registry
from tapkit.core.exceptions import UnsupportedProject

logger = logging.getLogger(__name__)


class BackendDetector:
    """Select the backend owning a project root."""

    def __init__(self, registry: Optional[BackendRegistry] = None):
        """
        Initialize detector.

        Args:
            registry: Backend registry (default: global registry)
        """
        self.registry = registry or get_global_registry()

    def present_kinds(self, root: Path) -> List[BackendKind]:
        """All backends whose markers exist in ``root``, in precedence order."""
        return [
            kind
            for kind in self.registry.kinds()
            if self.registry.get(kind).detect(root)
        ]

    def detect(self, root: Union[str, Path], override: Optional[str] = None) -> BackendKind:
        """
        Detect the backend for ``root``.

        Args:
            root: Project root directory
            override: Explicit backend name; skips marker detection entirely

        Returns:
            The selected BackendKind (never UNKNOWN)

        Raises:
            AmbiguousBackend: If ``override`` names no known backend
            UnsupportedProject: If no marker is found
        """
        root = Path(root)

        if override is not None:
            kind = self.registry.kind_by_name(override)
            logger.debug(f"Using backend override: {kind.value}")
            return kind

        present = self.present_kinds(root)
        if not present:
            raise UnsupportedProject(root)

        kind = present[0]
        if len(present) > 1:
            others = ", ".join(k.value for k in present[1:])
            logger.warning(
                f"Found markers for several build systems; using {kind.value} "
                f"(ignoring {others}). Pass --backend to choose another."
            )
        logger.debug(f"Detected build system: {kind.value} in {root}")
        return kind

    def find_project_root(self, start: Union[str, Path]) -> Optional[Path]:
        """
        Walk from ``start`` toward the filesystem root looking for a project.

        Args:
            start: Directory to start from

        Returns:
            First directory carrying any backend marker, or None
        """
        path = Path(start).resolve()
        for candidate in [path, *path.parents]:
            if self.present_kinds(candidate):
                logger.debug(f"Found project root: {candidate}")
                return candidate
        return None

    def detect_project(
        self, root: Union[str, Path], override: Optional[str] = None
    ) -> Project:
        """Detect and wrap the result in an immutable Project."""
        root = Path(root).resolve()
        return Project(root=root, kind=self.detect(root, override))


def detect_backend(root: Union[str, Path], override: Optional[str] = None) -> BackendKind:
    """Detect the backend for ``root`` using the global registry."""
    return BackendDetector().detect(root, override)
