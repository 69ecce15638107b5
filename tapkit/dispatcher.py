"""
Command dispatch for tapkit.

The dispatcher drives one verb to completion:

    Idle -> Detecting -> ModeResolving -> Invoking -> Completed | Failed

Detection and mode validation (and, for install, prefix resolution and
the writability check) happen before any process is spawned or any file
is touched. Steps produced by the adapter then run strictly in order;
the first failing step ends the invocation.

Usage:
    from tapkit.dispatcher import Command, Dispatcher, Verb

    dispatcher = Dispatcher(Path.cwd())
    result = dispatcher.dispatch(Command(Verb.BUILD, mode="release"))
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from tapkit.backends.base import (
    BackendAdapter,
    BackendOptions,
    DeferredCommand,
    Project,
    Step,
)
from tapkit.backends.detector import BackendDetector
from tapkit.config.parser import ProjectConfig
from tapkit.core.artifacts import ArtifactKind
from tapkit.core.exceptions import BackendInvocationFailed
from tapkit.core.installer import (
    InstallResult,
    Installer,
    InstallTarget,
    PrivilegeLevel,
    detect_privilege,
    resolve_prefix,
)
from tapkit.core.modes import BuildMode, ModeResolver
from tapkit.core.process import ChildCommand, ProcessRunner

logger = logging.getLogger(__name__)


class Verb(Enum):
    """Uniform verbs understood by every backend."""

    BUILD = "build"
    RUN = "run"
    CLEAN = "clean"
    INSTALL = "install"


VERB_ALIASES = {
    "b": Verb.BUILD,
    "r": Verb.RUN,
    "c": Verb.CLEAN,
    "i": Verb.INSTALL,
}


def parse_verb(name: str) -> Verb:
    """
    Map a verb or its one-letter alias to a Verb.

    Raises:
        ValueError: If ``name`` is not a verb
    """
    if name in VERB_ALIASES:
        return VERB_ALIASES[name]
    return Verb(name)


class InvocationState(Enum):
    """Lifecycle of one dispatch."""

    IDLE = "idle"
    DETECTING = "detecting"
    MODE_RESOLVING = "mode-resolving"
    INVOKING = "invoking"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Command:
    """
    A parsed request.

    Attributes:
        verb: What to do
        mode: Requested mode name (None = configured or built-in default)
        executable: Executable to launch (run only)
        passthrough_args: Arguments after ``--``, forwarded untouched
        prefix: Install prefix override (install only)
        backend: Explicit backend name, skips detection
    """

    verb: Verb
    mode: Optional[str] = None
    executable: Optional[str] = None
    passthrough_args: List[str] = field(default_factory=list)
    prefix: Optional[Path] = None
    backend: Optional[str] = None


@dataclass
class DispatchResult:
    """Outcome of a successful dispatch."""

    exit_code: int
    project: Project
    mode: Optional[BuildMode]
    install: Optional[InstallResult] = None


class Dispatcher:
    """Runs Commands against a project root."""

    def __init__(
        self,
        project_root: Path,
        config: Optional[ProjectConfig] = None,
        runner: Optional[ProcessRunner] = None,
        detector: Optional[BackendDetector] = None,
        installer: Optional[Installer] = None,
        privilege: Optional[PrivilegeLevel] = None,
        jobs: Optional[int] = None,
        dry_run: bool = False,
    ):
        """
        Initialize dispatcher.

        Args:
            project_root: Project root directory
            config: Parsed tap.yaml (default: empty configuration)
            runner: Process runner (default: inherits the terminal)
            detector: Backend detector (default: global registry)
            installer: Installer (default: honours dry_run)
            privilege: Privilege level; detected per dispatch when None
            jobs: Parallel job override (wins over config)
            dry_run: Print steps instead of executing them
        """
        self.project_root = Path(project_root)
        self.config = config or ProjectConfig()
        self.dry_run = dry_run
        self.runner = runner or ProcessRunner(dry_run=dry_run)
        self.detector = detector or BackendDetector()
        self.installer = installer or Installer(dry_run=dry_run)
        self.privilege = privilege
        self.jobs = jobs
        self.state = InvocationState.IDLE

    def _transition(self, state: InvocationState) -> None:
        logger.debug(f"Invocation state: {self.state.value} -> {state.value}")
        self.state = state

    def dispatch(self, command: Command) -> DispatchResult:
        """
        Run ``command`` to completion.

        Returns:
            DispatchResult with exit code 0

        Raises:
            TapError: Validation errors before any side effect, or
                BackendInvocationFailed carrying the child's exit code
        """
        try:
            result = self._dispatch(command)
        except BaseException:
            self._transition(InvocationState.FAILED)
            raise
        self._transition(InvocationState.COMPLETED)
        return result

    def _dispatch(self, command: Command) -> DispatchResult:
        privilege = self.privilege
        if command.verb is Verb.INSTALL and privilege is None:
            privilege = detect_privilege()

        self._transition(InvocationState.DETECTING)
        project = self.detector.detect_project(
            self.project_root, override=command.backend or self.config.backend
        )
        logger.info(f"Using {project.kind.value} in {project.root}")

        self._transition(InvocationState.MODE_RESOLVING)
        mode = self._resolve_mode(command)

        adapter = self.detector.registry.create(project, self._backend_options())

        target = None
        if command.verb is Verb.INSTALL:
            target = self._prepare_install(command, project, privilege)

        self._transition(InvocationState.INVOKING)
        if command.verb is Verb.BUILD:
            self.execute(adapter.build(mode))
        elif command.verb is Verb.RUN:
            if not command.executable:
                raise ValueError("run requires an executable name")
            self.execute(
                adapter.run(command.executable, mode, command.passthrough_args)
            )
        elif command.verb is Verb.CLEAN:
            self.execute(adapter.clean(mode))
        elif command.verb is Verb.INSTALL:
            self.execute(adapter.build(mode))
            return DispatchResult(
                0, project, mode, install=self._install(adapter, mode, target)
            )

        return DispatchResult(0, project, mode)

    def _resolve_mode(self, command: Command) -> Optional[BuildMode]:
        resolver = ModeResolver(self.config.modes)
        if command.verb is Verb.CLEAN and command.mode is None:
            # clean without a mode removes every mode's outputs
            return None
        requested = command.mode if command.mode is not None else self.config.default_mode
        return resolver.resolve(requested)

    def _backend_options(self) -> BackendOptions:
        return BackendOptions(
            jobs=self.jobs or self.config.jobs,
            build_dir=self.config.build_dir,
            libraries=list(self.config.install.libraries),
        )

    def _prepare_install(
        self, command: Command, project: Project, privilege: PrivilegeLevel
    ) -> InstallTarget:
        if command.prefix is not None:
            prefix = resolve_prefix(command.prefix, privilege)
        elif self.config.install.prefix is not None:
            prefix = resolve_prefix(
                self.config.install.prefix, privilege, cwd=project.root
            )
        else:
            prefix = resolve_prefix(None, privilege)

        kinds = [ArtifactKind.BINARY]
        if self.config.install.libraries:
            kinds.append(ArtifactKind.LIBRARY)
        self.installer.check_writable(prefix, kinds)

        logger.info(f"Install prefix: {prefix} ({privilege.value} privileges)")
        return InstallTarget(prefix=prefix, privilege=privilege)

    def _install(
        self, adapter: BackendAdapter, mode: BuildMode, target: InstallTarget
    ) -> InstallResult:
        target.artifacts = adapter.install_artifacts(mode)
        if not target.artifacts and not self.dry_run:
            logger.warning(f"Build produced no installable artifacts for {mode}")
        return self.installer.install(target.artifacts, target.prefix)

    def execute(self, steps: Sequence[Step]) -> None:
        """
        Execute steps in order.

        Raises:
            BackendInvocationFailed: On the first non-zero child exit
        """
        for step in steps:
            if isinstance(step, DeferredCommand):
                if self.dry_run:
                    print(f"   {step}")
                    continue
                step = step.resolve()

            if isinstance(step, ChildCommand):
                self._run_child(step)
            elif self.dry_run:
                print(f"   {step}")
            else:
                step.perform()

    def _run_child(self, command: ChildCommand) -> None:
        result = self.runner.run(command)
        if not result.success:
            raise BackendInvocationFailed(result.returncode, command.argv)
        if command.on_success is not None and not self.dry_run:
            command.on_success()
