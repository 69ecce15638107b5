"""
Build backend adapter interface for tapkit.

An adapter translates the uniform verbs (build, run, clean, install) into
the invocations of one native build system. Adapters never execute
anything themselves: every verb returns a list of steps that the
dispatcher carries out in order, stopping at the first failure.

Step types:
    ChildCommand     - spawn a backend process
    EnsureDirectory  - create a build directory if missing
    DirectRemoval    - delete build output directories
    DeferredCommand  - a ChildCommand that can only be built once the
                       earlier steps have finished (e.g. launching the
                       executable a build just produced)
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from tapkit.core.artifacts import (
    Artifact,
    ArtifactKind,
    declared_artifacts,
    find_executable,
    scan_artifacts,
)
from tapkit.core.exceptions import ExecutableNotFound, FilesystemError
from tapkit.core.filesystem import ensure_directory, safe_rmtree
from tapkit.core.modes import BuildMode
from tapkit.core.process import ChildCommand

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class BackendKind(Enum):
    """Build system families tap can drive."""

    RECIPE_BASED = "make"
    GENERATOR_BASED = "cmake"
    TWO_PHASE = "meson"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Project:
    """A project root and the backend that owns it."""

    root: Path
    kind: BackendKind


@dataclass
class BackendOptions:
    """
    Settings shared by all adapters.

    Attributes:
        jobs: Parallel job count (None = backend default)
        build_dir: Build directory root, relative to the project
        libraries: Library paths declared in configuration
    """

    jobs: Optional[int] = None
    build_dir: Optional[str] = None
    libraries: List[str] = field(default_factory=list)


# ============================================================================
# Steps
# ============================================================================


@dataclass
class EnsureDirectory:
    """Create ``path`` (and parents) if it does not exist."""

    path: Path
    description: str = "prepare"

    def perform(self) -> None:
        ensure_directory(self.path)

    def __str__(self) -> str:
        return f"mkdir -p {self.path}"


@dataclass
class DirectRemoval:
    """
    Remove build output directories.

    Targets must lie inside ``build_root`` (the project root when not
    given). The project root and its ancestors are never removed, even
    when a configured build directory points at them.
    """

    paths: List[Path]
    root: Path
    build_root: Optional[Path] = None
    description: str = "clean"
    on_success: Optional[Callable[[], None]] = field(
        default=None, compare=False, repr=False
    )

    def perform(self) -> List[Path]:
        removed = []
        for path in self.paths:
            self._check_target(path)
            existed = safe_rmtree(path)
            if existed:
                logger.info(f"   Removed {path}")
                removed.append(path)
            else:
                logger.debug(f"Nothing to remove at {path}")
        if self.on_success is not None:
            self.on_success()
        return removed

    def _check_target(self, path: Path) -> None:
        target = Path(path).resolve()
        project_root = self.root.resolve()
        if project_root.is_relative_to(target):
            raise FilesystemError(
                f"Refusing to delete '{target}': it contains the project root"
            )
        anchor = (self.build_root or self.root).resolve()
        if not target.is_relative_to(anchor):
            raise FilesystemError(
                f"Refusing to delete '{target}': not under build directory '{anchor}'"
            )

    def __str__(self) -> str:
        return "rm -rf " + " ".join(str(p) for p in self.paths)


@dataclass
class DeferredCommand:
    """A command whose argv is computed right before it runs."""

    factory: Callable[[], ChildCommand] = field(repr=False)
    description: str = ""

    def resolve(self) -> ChildCommand:
        return self.factory()

    def __str__(self) -> str:
        return f"<{self.description or 'deferred command'}>"


Step = Union[ChildCommand, EnsureDirectory, DirectRemoval, DeferredCommand]


# ============================================================================
# Adapter
# ============================================================================


class BackendAdapter(ABC):
    """
    Abstract base class for backend adapters.

    Subclasses set ``kind``, ``name``, ``program`` and ``markers`` and
    implement build(), clean() and output_dirs().
    """

    kind: BackendKind = BackendKind.UNKNOWN
    name: str = "unknown"
    program: str = ""
    markers: Tuple[str, ...] = ()

    def __init__(self, root: Path, options: Optional[BackendOptions] = None):
        """
        Initialize adapter.

        Args:
            root: Project root directory (absolute)
            options: Shared backend options
        """
        self.root = Path(root)
        self.options = options or BackendOptions()

    @classmethod
    def detect(cls, root: Path) -> bool:
        """Check whether any of this backend's marker files exist in ``root``."""
        return any((Path(root) / marker).is_file() for marker in cls.markers)

    @abstractmethod
    def build(self, mode: BuildMode) -> List[Step]:
        """
        Produce the steps that build the project.

        Args:
            mode: Validated build mode

        Returns:
            Ordered steps
        """
        pass

    @abstractmethod
    def clean(self, mode: Optional[BuildMode] = None) -> List[Step]:
        """
        Produce the steps that remove build outputs.

        Args:
            mode: Mode to clean, or None for all modes

        Returns:
            Ordered steps
        """
        pass

    @abstractmethod
    def output_dirs(self, mode: BuildMode) -> List[Tuple[Path, bool]]:
        """
        Directories where built executables and libraries land.

        Returns:
            List of (directory, recursive) pairs, most specific first
        """
        pass

    def run(
        self, executable: str, mode: BuildMode, passthrough_args: Sequence[str] = ()
    ) -> List[Step]:
        """
        Build, then launch ``executable`` with ``passthrough_args``.

        The executable is located only after the build steps have run.

        Args:
            executable: File name of the built executable
            mode: Validated build mode
            passthrough_args: Arguments appended verbatim

        Returns:
            Build steps followed by the launch
        """
        args = list(passthrough_args)
        steps = self.build(mode)
        steps.append(
            DeferredCommand(
                lambda: self.launch_command(executable, mode, args),
                description=f"run {executable}",
            )
        )
        return steps

    def launch_command(
        self, executable: str, mode: BuildMode, passthrough_args: Sequence[str] = ()
    ) -> ChildCommand:
        """
        Build the command launching an already-built executable.

        Raises:
            ExecutableNotFound: If no build output matches ``executable``
        """
        path = self.find_executable(executable, mode)
        if path is None:
            searched = ", ".join(str(d) for d, _ in self.output_dirs(mode))
            raise ExecutableNotFound(executable, searched)

        return ChildCommand(
            [str(path), *passthrough_args],
            cwd=self.root,
            description="run",
        )

    def find_executable(self, executable: str, mode: BuildMode) -> Optional[Path]:
        """Locate a built executable by name in this backend's output dirs."""
        names = [executable]
        if IS_WINDOWS and not executable.lower().endswith(".exe"):
            names.append(executable + ".exe")

        for directory, recursive in self.output_dirs(mode):
            for name in names:
                path = find_executable(directory, name, recursive=recursive)
                if path is not None:
                    logger.debug(f"Resolved executable {executable} -> {path}")
                    return path
        return None

    def install_artifacts(self, mode: BuildMode) -> List[Artifact]:
        """
        Enumerate built binaries and declared libraries for ``mode``.

        Returns:
            Artifacts in stable order, without duplicates
        """
        seen = set()
        artifacts = []
        for directory, recursive in self.output_dirs(mode):
            for artifact in scan_artifacts(directory, recursive=recursive):
                key = artifact.path.resolve()
                if key not in seen:
                    seen.add(key)
                    artifacts.append(artifact)

        for artifact in declared_artifacts(
            self.root, self.options.libraries, ArtifactKind.LIBRARY
        ):
            key = artifact.path.resolve()
            if key not in seen:
                seen.add(key)
                artifacts.append(artifact)

        return artifacts

    def _jobs_args(self, flag: str = "-j") -> List[str]:
        if self.options.jobs:
            return [flag, str(self.options.jobs)]
        return []

    def _build_root(self, default: str) -> Path:
        build_dir = Path(self.options.build_dir or default)
        if not build_dir.is_absolute():
            build_dir = self.root / build_dir
        return build_dir

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} root={str(self.root)!r}>"
