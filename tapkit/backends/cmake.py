"""
CMake build backend.

Each mode gets its own out-of-source build directory
(``build/debug``, ``build/release``, ``build/<custom>``), so artifacts of
different modes never mix. A build is the usual two-step:

    cmake -S <root> -B build/<mode> -DCMAKE_BUILD_TYPE=<type>
    cmake --build build/<mode> --config <type> [--parallel N]
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tapkit.backends.base import (
    BackendAdapter,
    BackendKind,
    DirectRemoval,
    EnsureDirectory,
    Step,
)
from tapkit.core.modes import BuildMode, ModeKind
from tapkit.core.process import ChildCommand

logger = logging.getLogger(__name__)

DEFAULT_BUILD_DIR = "build"

CMAKE_BUILD_TYPES = {
    ModeKind.DEBUG: "Debug",
    ModeKind.RELEASE: "Release",
}


class CMakeBackend(BackendAdapter):
    """Generator-based backend driving ``cmake``."""

    kind = BackendKind.GENERATOR_BASED
    name = "cmake"
    program = "cmake"
    markers = ("CMakeLists.txt",)

    @property
    def build_root(self) -> Path:
        return self._build_root(DEFAULT_BUILD_DIR)

    def build_dir(self, mode: BuildMode) -> Path:
        """Build directory for ``mode``."""
        return self.build_root / mode.name

    def build(self, mode: BuildMode) -> List[Step]:
        build_dir = self.build_dir(mode)
        build_type = CMAKE_BUILD_TYPES[mode.base]

        configure = ChildCommand(
            [
                self.program,
                "-S",
                str(self.root),
                "-B",
                str(build_dir),
                f"-DCMAKE_BUILD_TYPE={build_type}",
            ],
            cwd=self.root,
            description="configure",
        )

        compile_args = [
            self.program,
            "--build",
            str(build_dir),
            "--config",
            build_type,
            *self._jobs_args("--parallel"),
        ]
        compile = ChildCommand(compile_args, cwd=self.root, description="build")

        logger.debug(f"CMake build directory for {mode}: {build_dir}")
        return [EnsureDirectory(build_dir), configure, compile]

    def clean(self, mode: Optional[BuildMode] = None) -> List[Step]:
        if mode is None:
            target = self.build_root
        else:
            target = self.build_dir(mode)
        return [DirectRemoval([target], root=self.root, build_root=self.build_root)]

    def output_dirs(self, mode: BuildMode) -> List[Tuple[Path, bool]]:
        build_dir = self.build_dir(mode)
        # Multi-config generators nest outputs under the build type
        return [(build_dir, True)]
