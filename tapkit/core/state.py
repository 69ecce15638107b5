"""
Setup-marker state for tapkit projects.

Backends with a separate setup phase record, per build mode, that setup
has succeeded. The record lives in ``<project>/.tap/state.json`` so that
the next invocation (a fresh process) can skip setup when nothing changed.

Example:
    >>> from pathlib import Path
    >>> from tapkit.core.state import StateManager
    >>>
    >>> manager = StateManager(Path('/path/to/project'))
    >>> manager.mark_setup('meson', 'debug', Path('builddir/debug'), 'debug')
    >>> manager.get_setup('meson', 'debug').buildtype
    'debug'
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from filelock import FileLock, Timeout as LockTimeout

from tapkit.core.exceptions import TapError
from tapkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".tap"
STATE_VERSION = 1


class StateError(TapError):
    """Base exception for state management errors."""

    pass


@dataclass
class SetupRecord:
    """
    Record of a successful setup phase.

    Attributes:
        backend: Backend name that ran setup ('meson')
        mode: Build mode name
        build_dir: Build directory setup was run for, relative to the project
        buildtype: Backend build type setup was run with
        timestamp: ISO 8601 time setup completed
    """

    backend: str
    mode: str
    build_dir: str
    buildtype: str
    timestamp: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def _record_key(backend: str, mode: str) -> str:
    return f"{backend}:{mode}"


class StateManager:
    """
    Manages the project's setup-marker file.

    All read-modify-write cycles hold a ``filelock.FileLock`` on
    ``.tap/state.lock`` and writes go through a temp file + rename.

    Attributes:
        project_root: Project root directory
        state_file: Path to state.json
        lock_file: Path to the lock guarding state.json
    """

    def __init__(self, project_root: Path, lock_timeout: float = 10):
        """
        Initialize state manager.

        Args:
            project_root: Project root directory
            lock_timeout: Seconds to wait for the state lock

        Raises:
            StateError: If project_root is not a directory
        """
        project_root = Path(project_root)

        if not project_root.is_dir():
            raise StateError(f"Project root is not a directory: {project_root}")

        self.project_root = project_root.resolve()
        self.state_dir = self.project_root / STATE_DIR_NAME
        self.state_file = self.state_dir / "state.json"
        self.lock_file = self.state_dir / "state.lock"
        self.lock_timeout = lock_timeout

    def _read(self) -> Dict[str, SetupRecord]:
        if not self.state_file.exists():
            return {}

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)

            if data.get("version", STATE_VERSION) != STATE_VERSION:
                logger.warning(
                    f"State version {data.get('version')} not supported, ignoring markers"
                )
                return {}

            return {
                key: SetupRecord(**value)
                for key, value in data.get("setup", {}).items()
            }
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning(f"Invalid state file {self.state_file}, ignoring: {e}")
            return {}

    def _write(self, records: Dict[str, SetupRecord]) -> None:
        content = json.dumps(
            {
                "version": STATE_VERSION,
                "setup": {key: record.to_dict() for key, record in records.items()},
            },
            indent=2,
            sort_keys=True,
        )
        atomic_write(self.state_file, content)
        logger.debug(f"Saved state to {self.state_file}")

    def _lock(self) -> FileLock:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        return FileLock(str(self.lock_file), timeout=self.lock_timeout)

    def get_setup(self, backend: str, mode: str) -> Optional[SetupRecord]:
        """
        Get the setup record for a backend and mode.

        Args:
            backend: Backend name
            mode: Build mode name

        Returns:
            SetupRecord, or None if setup has not been recorded
        """
        return self._read().get(_record_key(backend, mode))

    def mark_setup(
        self, backend: str, mode: str, build_dir: Path, buildtype: str
    ) -> SetupRecord:
        """
        Record that setup succeeded.

        Args:
            backend: Backend name
            mode: Build mode name
            build_dir: Build directory (absolute or project-relative)
            buildtype: Backend build type used for setup

        Returns:
            The stored record
        """
        build_dir = Path(build_dir)
        if build_dir.is_absolute() and build_dir.is_relative_to(self.project_root):
            build_dir = build_dir.relative_to(self.project_root)

        record = SetupRecord(
            backend=backend,
            mode=mode,
            build_dir=build_dir.as_posix(),
            buildtype=buildtype,
            timestamp=datetime.now().isoformat(),
        )

        try:
            with self._lock():
                records = self._read()
                records[_record_key(backend, mode)] = record
                self._write(records)
        except LockTimeout as e:
            raise StateError(
                f"Could not acquire state lock after {self.lock_timeout}s. "
                "Another tap process may be running."
            ) from e

        logger.debug(f"Recorded setup for {backend} ({mode})")
        return record

    def clear_setup(self, backend: str, mode: Optional[str] = None) -> int:
        """
        Forget setup records.

        Args:
            backend: Backend name
            mode: Build mode name, or None for every mode of the backend

        Returns:
            Number of records removed
        """
        if not self.state_file.exists():
            return 0

        try:
            with self._lock():
                records = self._read()
                keys = [
                    key
                    for key, record in records.items()
                    if record.backend == backend and (mode is None or record.mode == mode)
                ]
                for key in keys:
                    del records[key]
                if keys:
                    self._write(records)
        except LockTimeout as e:
            raise StateError(
                f"Could not acquire state lock after {self.lock_timeout}s. "
                "Another tap process may be running."
            ) from e

        return len(keys)
