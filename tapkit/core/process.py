"""
Child process execution for tapkit.

The runner spawns exactly one backend process per call, lets its output
reach the terminal as it is produced, forwards interrupt signals to the
child while it runs, and hands back the child's exit status unchanged.

Usage:
    from tapkit.core.process import ChildCommand, ProcessRunner

    runner = ProcessRunner()
    result = runner.run(ChildCommand(["make", "-j", "8"], cwd=project_root))
    if not result.success:
        print(f"make failed with {result.returncode}")
"""

import codecs
import locale
import logging
import os
import shlex
import signal
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

from tapkit.core.exceptions import ToolNotFound

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class ChildCommand:
    """
    A single backend invocation.

    Attributes:
        argv: Program and arguments, passed without a shell
        cwd: Working directory for the child
        env: Extra environment variables layered over the current environment
        description: Short human-readable label ('configure', 'compile', ...)
        on_success: Called after the child exits with status 0
    """

    argv: List[str]
    cwd: Optional[Path] = None
    env: Optional[Dict[str, str]] = None
    description: str = ""
    on_success: Optional[Callable[[], None]] = field(
        default=None, compare=False, repr=False
    )

    @property
    def program(self) -> str:
        return self.argv[0]

    def __str__(self) -> str:
        return shlex.join(self.argv)


@dataclass
class InvocationResult:
    """Exit status of one child process."""

    returncode: int
    command: ChildCommand

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """
    Runs ChildCommands one at a time.

    By default the child inherits the terminal's stdout/stderr, so nothing
    is buffered by tap. When ``stdout`` or ``stderr`` sinks are given, the
    matching stream is piped and copied to the sink by its own reader
    thread as chunks arrive.
    """

    def __init__(
        self,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        dry_run: bool = False,
        echo: bool = True,
    ):
        """
        Initialize process runner.

        Args:
            stdout: Sink for child stdout (None = inherit)
            stderr: Sink for child stderr (None = inherit)
            dry_run: Print commands instead of running them
            echo: Log each command before running it
        """
        self.stdout = stdout
        self.stderr = stderr
        self.dry_run = dry_run
        self.echo = echo

    def run(self, command: ChildCommand) -> InvocationResult:
        """
        Run a command to completion.

        Args:
            command: Command to execute

        Returns:
            InvocationResult carrying the child's exit code

        Raises:
            ToolNotFound: If the program cannot be found
        """
        if self.dry_run:
            print(f"   {command}")
            return InvocationResult(returncode=0, command=command)

        if self.echo:
            logger.info(f"   {command}")

        env = None
        if command.env:
            env = dict(os.environ)
            env.update(command.env)

        try:
            process = subprocess.Popen(
                command.argv,
                cwd=str(command.cwd) if command.cwd else None,
                env=env,
                stdout=subprocess.PIPE if self.stdout is not None else None,
                stderr=subprocess.PIPE if self.stderr is not None else None,
            )
        except FileNotFoundError:
            logger.debug(f"Could not spawn {command.program}", exc_info=True)
            raise ToolNotFound(command.program)

        logger.debug(f"Spawned pid {process.pid}: {command}")

        relays = []
        if self.stdout is not None:
            relays.append(_start_relay(process.stdout, self.stdout))
        if self.stderr is not None:
            relays.append(_start_relay(process.stderr, self.stderr))

        with _forward_signals(process):
            returncode = process.wait()
            for relay in relays:
                relay.join()

        logger.debug(f"Process {process.pid} exited with {returncode}")
        return InvocationResult(returncode=returncode, command=command)


@contextmanager
def _forward_signals(process: subprocess.Popen):
    """
    Forward SIGINT/SIGTERM received by tap to ``process`` while it runs.

    A SIGINT sent to the whole process group (a terminal Ctrl-C, or
    ``kill -INT -<pgid>``) has already reached a child sharing tap's group,
    so it is not sent a second time.
    """
    # signal handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        if process.poll() is not None:
            return
        if signum == signal.SIGINT and _child_gets_group_signals(process):
            logger.debug(f"Signal {signum} already delivered to pid {process.pid}")
            return
        logger.debug(f"Forwarding signal {signum} to pid {process.pid}")
        try:
            process.send_signal(signum)
        except ValueError:
            # Windows only delivers SIGTERM/CTRL events to children
            process.terminate()

    previous = {}
    for sig in FORWARDED_SIGNALS:
        previous[sig] = signal.signal(sig, handler)

    try:
        yield
    finally:
        for sig, old_handler in previous.items():
            signal.signal(sig, old_handler)


def _child_gets_group_signals(process: subprocess.Popen) -> bool:
    """
    Check whether a SIGINT received by tap was also delivered to ``process``.

    True when the child is in tap's process group and that group is the
    foreground group of tap's controlling terminal, or tap has no
    controlling terminal, in which case SIGINT is taken to be group-wide.
    A SIGINT aimed at tap's pid while tap is a background job is the one
    case that needs forwarding.
    """
    if os.name != "posix":
        return False
    try:
        if os.getpgid(process.pid) != os.getpgrp():
            return False
    except ProcessLookupError:
        return True

    try:
        tty = os.open(os.ctermid(), os.O_RDONLY | os.O_NOCTTY)
    except OSError:
        return True
    try:
        return os.tcgetpgrp(tty) == os.getpgrp()
    except OSError:
        return True
    finally:
        os.close(tty)


def _start_relay(source, sink: TextIO) -> threading.Thread:
    thread = threading.Thread(target=_relay, args=(source, sink), daemon=True)
    thread.start()
    return thread


def _relay(source, sink: TextIO) -> None:
    """Copy a child's pipe to ``sink`` chunk by chunk."""
    decoder = codecs.getincrementaldecoder(locale.getpreferredencoding(False))(
        errors="replace"
    )
    try:
        for chunk in iter(lambda: source.read1(8192), b""):
            sink.write(decoder.decode(chunk))
            sink.flush()
        tail = decoder.decode(b"", final=True)
        if tail:
            sink.write(tail)
            sink.flush()
    finally:
        source.close()
