"""
External process execution for mirrorforge.

Every external command (git, mail) goes through an ExecutionContext:
- A global counting limiter bounds how many processes run at once
- A read/write lock lets a shutdown wait for running processes

A running command holds the read side. A termination request takes
the write side, so it blocks until every running command has exited,
and no new command starts meanwhile.
"""

import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command."""
    stdout: bytes = b""
    stderr: bytes = b""
    returncode: int = -1

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        """Decoded stdout with surrounding whitespace removed."""
        return self.stdout.decode('utf-8', errors='replace').strip()


class ReadWriteLock:
    """
    Read/write lock that prefers writers.

    Once a writer is waiting, new readers block until it is done.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @property
    def readers(self) -> int:
        with self._cond:
            return self._readers


def default_max_processes() -> int:
    """Two processes per available CPU."""
    return 2 * (os.cpu_count() or 1)


class ExecutionContext:
    """
    Shared process budget and shutdown guard.

    Create one per process and hand it to every component that spawns
    external commands.

    Example:
        context = ExecutionContext()
        result = context.run("/srv/mirrors/abc", "git", "fetch", "origin")
        if result.ok:
            print(result.text)
    """

    def __init__(self, max_processes: Optional[int] = None):
        """
        Initialize ExecutionContext.

        Args:
            max_processes: Concurrent process limit
                (default: 2 x available CPUs)
        """
        self.max_processes = max_processes or default_max_processes()
        self._limiter = threading.BoundedSemaphore(self.max_processes)
        self._no_interrupt = ReadWriteLock()
        self._terminating = threading.Event()

    def run(
        self,
        cwd: Optional[str],
        exe: str,
        *args: str,
        input: Optional[bytes] = None
    ) -> CommandResult:
        """
        Run a command and capture stdout and stderr separately.

        Failures (non-zero exit or spawn error) are logged together with
        the command line and both captured streams.

        Args:
            cwd: Working directory (None for the current one)
            exe: Executable name
            *args: Arguments
            input: Bytes fed to stdin

        Returns:
            CommandResult; check `.ok`
        """
        argv = [exe, *args]

        self._no_interrupt.acquire_read()
        try:
            self._limiter.acquire()
            try:
                result, error = self._spawn(argv, cwd, input)
            finally:
                self._limiter.release()
        finally:
            self._no_interrupt.release_read()

        if not result.ok:
            logger.error(
                f"Command failed: {argv} in {cwd or '.'}: {error}; "
                f"stdout={result.stdout.decode('utf-8', errors='replace')!r} "
                f"stderr={result.stderr.decode('utf-8', errors='replace')!r}"
            )

        return result

    def _spawn(self, argv, cwd, input):
        logger.debug(f"Running command: {argv} in {cwd or '.'}")
        try:
            proc = subprocess.run(
                argv,
                cwd=cwd or None,
                input=input,
                stdin=None if input is not None else subprocess.DEVNULL,
                capture_output=True,
            )
        except OSError as e:
            return CommandResult(returncode=-1), str(e)
        return CommandResult(proc.stdout, proc.stderr, proc.returncode), f"exit status {proc.returncode}"

    @property
    def running(self) -> int:
        """Number of commands currently running."""
        return self._no_interrupt.readers

    def wait_for_running(self) -> None:
        """Block until no command runs, then keep new ones from starting."""
        logger.debug("Waiting for all uninterruptible operations to finish")
        self._no_interrupt.acquire_write()

    def resume(self) -> None:
        """Allow commands again after wait_for_running()."""
        self._no_interrupt.release_write()

    def terminate(self, code: int = 0) -> None:
        """Exit the process once running commands have finished."""
        self.wait_for_running()
        logging.shutdown()
        os._exit(code)

    def install_signal_handlers(self) -> None:
        """Terminate gracefully on SIGTERM and SIGINT."""

        def handle(signum, frame):
            if self._terminating.is_set():
                return
            self._terminating.set()
            logger.warning(f"Terminating on signal {signal.Signals(signum).name}")
            threading.Thread(target=self.terminate, name="terminator", daemon=True).start()

        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, handle)
        logger.debug("Listening for SIGTERM and SIGINT")
