"""
GNU Make backend.

Make builds in-source: outputs land next to the Makefile (or in the
conventional ``bin``/``lib`` subdirectories), so modes do not get separate
directories. Release mode passes optimization flags as make variables.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tapkit.backends.base import BackendAdapter, BackendKind, Step
from tapkit.core.modes import BuildMode
from tapkit.core.process import ChildCommand

logger = logging.getLogger(__name__)

RELEASE_VARIABLES = ["CFLAGS=-O3", "CXXFLAGS=-O3"]


class MakeBackend(BackendAdapter):
    """Recipe-based backend driving ``make``."""

    kind = BackendKind.RECIPE_BASED
    name = "make"
    program = "make"
    # GNU make's own lookup order
    markers = ("GNUmakefile", "makefile", "Makefile")

    def build(self, mode: BuildMode) -> List[Step]:
        argv = [self.program, *self._jobs_args()]
        if mode.is_release:
            argv.extend(RELEASE_VARIABLES)
        return [ChildCommand(argv, cwd=self.root, description="build")]

    def clean(self, mode: Optional[BuildMode] = None) -> List[Step]:
        if mode is not None:
            logger.debug(f"make builds in-source; cleaning all outputs, not only {mode}")
        return [ChildCommand([self.program, "clean"], cwd=self.root, description="clean")]

    def output_dirs(self, mode: BuildMode) -> List[Tuple[Path, bool]]:
        return [
            (self.root, False),
            (self.root / "bin", False),
            (self.root / "lib", False),
        ]
