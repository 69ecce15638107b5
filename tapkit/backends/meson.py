"""
Meson build backend.

Meson splits a build into a setup phase and a compile phase. Setup only
needs to run once per build directory, so a successful setup is recorded
in the project's state file and skipped on later builds of the same
mode. It runs again when the marker is missing, when the build type
recorded for the mode differs, or when the build directory was wiped.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tapkit.backends.base import (
    BackendAdapter,
    BackendKind,
    BackendOptions,
    DirectRemoval,
    Step,
)
from tapkit.core.modes import BuildMode, ModeKind
from tapkit.core.process import ChildCommand
from tapkit.core.state import StateManager

logger = logging.getLogger(__name__)

DEFAULT_BUILD_DIR = "builddir"

MESON_BUILD_TYPES = {
    ModeKind.DEBUG: "debug",
    ModeKind.RELEASE: "release",
}


class MesonBackend(BackendAdapter):
    """Two-phase backend driving ``meson setup`` and ``meson compile``."""

    kind = BackendKind.TWO_PHASE
    name = "meson"
    program = "meson"
    markers = ("meson.build",)

    def __init__(
        self,
        root: Path,
        options: Optional[BackendOptions] = None,
        state: Optional[StateManager] = None,
    ):
        super().__init__(root, options)
        self._state = state

    @property
    def state(self) -> StateManager:
        if self._state is None:
            self._state = StateManager(self.root)
        return self._state

    @property
    def build_root(self) -> Path:
        return self._build_root(DEFAULT_BUILD_DIR)

    def build_dir(self, mode: BuildMode) -> Path:
        """Build directory for ``mode``."""
        return self.build_root / mode.name

    def needs_setup(self, mode: BuildMode) -> bool:
        """
        Check whether the setup phase must run for ``mode``.

        Returns:
            False only if a marker for this mode records the same build
            directory and build type, and meson's own configuration is present
        """
        build_dir = self.build_dir(mode)
        record = self.state.get_setup(self.name, mode.name)

        if record is None:
            logger.debug(f"No setup marker for {mode}")
            return True

        recorded_dir = Path(record.build_dir)
        if not recorded_dir.is_absolute():
            recorded_dir = self.root / recorded_dir
        if recorded_dir != build_dir:
            logger.debug(f"Build directory changed for {mode}: {recorded_dir} -> {build_dir}")
            return True

        if record.buildtype != MESON_BUILD_TYPES[mode.base]:
            logger.debug(f"Build type changed for {mode}: {record.buildtype}")
            return True

        if not (build_dir / "meson-private" / "coredata.dat").is_file():
            logger.debug(f"Build directory {build_dir} is not set up")
            return True

        return False

    def build(self, mode: BuildMode) -> List[Step]:
        build_dir = self.build_dir(mode)
        buildtype = MESON_BUILD_TYPES[mode.base]
        steps: List[Step] = []

        if self.needs_setup(mode):
            argv = [self.program, "setup", f"--buildtype={buildtype}"]
            if (build_dir / "meson-private").is_dir():
                argv.append("--reconfigure")
            argv.append(str(build_dir))

            steps.append(
                ChildCommand(
                    argv,
                    cwd=self.root,
                    description="setup",
                    on_success=lambda: self.state.mark_setup(
                        self.name, mode.name, build_dir, buildtype
                    ),
                )
            )
        else:
            logger.info(f"Setup for {mode} is up to date, skipping")

        steps.append(
            ChildCommand(
                [self.program, "compile", "-C", str(build_dir), *self._jobs_args()],
                cwd=self.root,
                description="compile",
            )
        )
        return steps

    def clean(self, mode: Optional[BuildMode] = None) -> List[Step]:
        if mode is None:
            target = self.build_root
            mode_name = None
        else:
            target = self.build_dir(mode)
            mode_name = mode.name

        return [
            DirectRemoval(
                [target],
                root=self.root,
                build_root=self.build_root,
                on_success=lambda: self.state.clear_setup(self.name, mode_name),
            )
        ]

    def output_dirs(self, mode: BuildMode) -> List[Tuple[Path, bool]]:
        return [(self.build_dir(mode), True)]
