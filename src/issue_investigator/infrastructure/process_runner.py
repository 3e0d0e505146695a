"""Child-process execution with incremental output capture.

``ProcessRunner.spawn`` starts a process and returns a ``RunningProcess``
handle immediately. Reader tasks drain stdout and stderr as data arrives, so
output produced before a forced kill is still available. Deadlines are not
enforced here; callers race ``wait()`` against their own timer and call
``kill()`` on the losing path.

Exit and end-of-output are separate events: a child may exit while a process
it started still holds the inherited pipes open. ``wait()`` reports the exit,
``release()`` collects the remaining output. On POSIX each child leads its
own process group so ``kill()`` also reaches the processes it started.
"""

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096
_EXIT_POLL_SECONDS = 0.05
_USE_PROCESS_GROUPS = os.name == "posix"


class RunningProcess(ABC):
    """Handle to a spawned child process."""

    def __init__(self):
        self._stdout: List[str] = []
        self._stderr: List[str] = []

    @property
    def stdout(self) -> str:
        """Standard output captured so far."""
        return "".join(self._stdout)

    @property
    def stderr(self) -> str:
        """Standard error captured so far."""
        return "".join(self._stderr)

    @abstractmethod
    async def wait(self) -> int:
        """Wait for the process to exit and return the exit code.

        Output may still be arriving; call ``release()`` to collect the rest.
        """

    @abstractmethod
    def kill(self):
        """Forcibly terminate the process and any processes it started."""

    async def release(self, grace: float = 1.0):
        """Stop capturing output, waiting up to ``grace`` seconds for the streams to close."""
        pass


class ProcessRunner(ABC):
    @abstractmethod
    async def spawn(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> RunningProcess:
        """Start ``args`` in ``cwd`` with ``env`` (None inherits the parent environment)."""


class AsyncioProcess(RunningProcess):
    def __init__(self, process: asyncio.subprocess.Process, label: str):
        super().__init__()
        self._process = process
        self._label = label
        self._readers = [
            asyncio.create_task(self._drain(process.stdout, self._stdout, "stdout")),
            asyncio.create_task(self._drain(process.stderr, self._stderr, "stderr")),
        ]

    @property
    def pid(self) -> int:
        return self._process.pid

    async def _drain(self, stream: Optional[asyncio.StreamReader], sink: List[str], name: str):
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            text = chunk.decode("utf-8", errors="replace")
            sink.append(text)
            logger.debug(f"[{self._label} {name}] {text.rstrip()}")

    async def wait(self) -> int:
        # Process.wait() also waits for every pipe to close, so poll the
        # exit status the child watcher records instead.
        while self._process.returncode is None:
            await asyncio.sleep(_EXIT_POLL_SECONDS)
        return self._process.returncode

    def kill(self):
        if _USE_PROCESS_GROUPS:
            try:
                os.killpg(self._process.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                # Group already empty
                return
            logger.info(f"Killed process group of {self._label} (pid {self._process.pid})")
            return

        if self._process.returncode is not None:
            return
        try:
            self._process.kill()
            logger.warning(f"Killed {self._label} (pid {self._process.pid})")
        except ProcessLookupError:
            pass

    async def release(self, grace: float = 1.0):
        pending = [reader for reader in self._readers if not reader.done()]
        if not pending:
            return
        _, still_running = await asyncio.wait(pending, timeout=grace)
        for reader in still_running:
            reader.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)


class AsyncioProcessRunner(ProcessRunner):
    """Runs processes with ``asyncio.create_subprocess_exec``."""

    async def spawn(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> RunningProcess:
        if not args:
            raise ValueError("Cannot spawn an empty command")

        logger.info(f"Spawning {' '.join(args)} (cwd={cwd})")
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=_USE_PROCESS_GROUPS,
        )
        return AsyncioProcess(process, label=Path(args[0]).name)
