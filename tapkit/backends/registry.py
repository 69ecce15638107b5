"""
Backend registry.

Maps each BackendKind to the adapter class that implements it, and keeps
the order in which backends are tried during detection.
"""

from pathlib import Path
from typing import Dict, List, Optional, Type

from tapkit.backends.base import BackendAdapter, BackendKind, BackendOptions, Project
from tapkit.core.exceptions import AmbiguousBackend, UnsupportedProject


class BackendRegistry:
    """
    Registry of adapter classes.

    Registration order is detection precedence: when a project carries
    markers of several backends, the backend registered first wins.
    """

    def __init__(self):
        """Initialize empty registry."""
        self._adapters: Dict[BackendKind, Type[BackendAdapter]] = {}

    def register(self, adapter_cls: Type[BackendAdapter]) -> None:
        """
        Register an adapter class under its ``kind``.

        Raises:
            ValueError: If the kind is UNKNOWN or already registered
        """
        kind = adapter_cls.kind
        if kind is BackendKind.UNKNOWN:
            raise ValueError(f"{adapter_cls.__name__} does not declare a backend kind")
        if kind in self._adapters:
            raise ValueError(f"Build backend '{kind.value}' is already registered")
        self._adapters[kind] = adapter_cls

    def has(self, kind: BackendKind) -> bool:
        return kind in self._adapters

    def get(self, kind: BackendKind) -> Type[BackendAdapter]:
        """
        Get the adapter class for ``kind``.

        Raises:
            KeyError: If no adapter is registered for ``kind``
        """
        if kind not in self._adapters:
            raise KeyError(f"Build backend '{kind.value}' not found in registry")
        return self._adapters[kind]

    def kinds(self) -> List[BackendKind]:
        """Registered kinds in detection order."""
        return list(self._adapters)

    def names(self) -> List[str]:
        return [kind.value for kind in self._adapters]

    def kind_by_name(self, name: str) -> BackendKind:
        """
        Look up a registered kind by backend name ('make', 'cmake', 'meson').

        Raises:
            AmbiguousBackend: If ``name`` matches no registered backend
        """
        for kind, adapter_cls in self._adapters.items():
            if name in (kind.value, adapter_cls.name):
                return kind
        raise AmbiguousBackend(name, self.names())

    def create(
        self, project: Project, options: Optional[BackendOptions] = None
    ) -> BackendAdapter:
        """
        Instantiate the adapter owning ``project``.

        Raises:
            UnsupportedProject: If the project's kind has no adapter
        """
        if project.kind is BackendKind.UNKNOWN or project.kind not in self._adapters:
            raise UnsupportedProject(project.root)
        return self._adapters[project.kind](Path(project.root), options)

    def clear(self) -> None:
        self._adapters.clear()


_global_registry: Optional[BackendRegistry] = None


def get_global_registry() -> BackendRegistry:
    """Get the process-wide registry with the built-in backends registered."""
    global _global_registry
    if _global_registry is None:
        from tapkit.backends.cmake import CMakeBackend
        from tapkit.backends.make import MakeBackend
        from tapkit.backends.meson import MesonBackend

        registry = BackendRegistry()
        # Detection precedence: recipe > generator > two-phase
        registry.register(MakeBackend)
        registry.register(CMakeBackend)
        registry.register(MesonBackend)
        _global_registry = registry
    return _global_registry
