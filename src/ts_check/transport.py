"""Subprocess transport for tsserver.

Launches tsserver as a subprocess and talks to it over its standard streams:
- Requests: JSON object + newline to subprocess stdin
- Messages: Content-Length framed JSON from subprocess stdout
- stderr: forwarded to the debug log

A transport instance runs exactly one process. Once stopped, or once the
process exits, it is never restarted; the owner builds a new instance.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .config import ServerConfig
from .protocol.framing import FrameDecoder, encode_message

logger = logging.getLogger(__name__)

# Bytes requested from stdout per read
CHUNK_SIZE = 64 * 1024

# Type aliases
MessageCallback = Callable[[Any], None]
CloseCallback = Callable[["ServerProcessError | None"], None]


class ServerProcessError(RuntimeError):
    """Raised when the tsserver process cannot be started or fails."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class TransportState(str, Enum):
    """Process lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ProcessTransport:
    """Owns one tsserver subprocess.

    Decoded inbound messages are handed to `on_message` in arrival order.
    When the process ends on its own, `on_close` is called once with None
    (exit code 0) or a ServerProcessError. A stop requested through `stop()`
    does not call `on_close`.

    Usage:
        transport = ProcessTransport(config, on_message, on_close)
        await transport.start()
        transport.write(request)
        ...
        await transport.stop()
    """

    def __init__(
        self,
        config: ServerConfig,
        on_message: MessageCallback,
        on_close: CloseCallback,
    ) -> None:
        self.config = config
        self._on_message = on_message
        self._on_close = on_close
        self._state = TransportState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == TransportState.RUNNING

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    async def start(self) -> None:
        """Launch the subprocess and start reading its output.

        Raises:
            ServerProcessError: If the transport was already used or the
                process cannot be spawned
        """
        if self._state != TransportState.IDLE:
            raise ServerProcessError(f"Transport cannot be started from state {self._state.value}")

        cmd = self.config.command
        if not cmd:
            self._state = TransportState.STOPPED
            raise ServerProcessError("No tsserver command configured")

        env = None
        if self.config.env:
            env = {**os.environ, **self.config.env}

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.config.working_directory,
                env=env,
            )
        except OSError as e:
            self._state = TransportState.STOPPED
            raise ServerProcessError(f"Failed to launch {' '.join(cmd)}: {e}") from e

        self._state = TransportState.RUNNING
        self._reader_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())

        logger.info(f"Launched tsserver: {' '.join(cmd)} (pid={self._process.pid})")

    def write(self, message: BaseModel | dict[str, Any]) -> None:
        """Write one message to stdin. Fire-and-forget, no acknowledgment."""
        process = self._process
        if not self.is_running or not process or not process.stdin:
            logger.debug("tsserver not running, dropping outbound message")
            return
        if process.stdin.is_closing():
            logger.debug("tsserver stdin closed, dropping outbound message")
            return

        process.stdin.write(encode_message(message, self.config.encoding))

    async def stop(self) -> None:
        """Terminate the subprocess. Safe to call more than once."""
        previous = self._state
        self._state = TransportState.STOPPED
        if previous == TransportState.IDLE:
            return

        current = asyncio.current_task()
        for task in (self._reader_task, self._stderr_task):
            if task and task is not current and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reader_task = None
        self._stderr_task = None

        process = self._process
        if process is None:
            return
        self._process = None

        if process.stdin and not process.stdin.is_closing():
            process.stdin.close()

        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.config.shutdown_timeout)
            except TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
            logger.info(f"tsserver terminated (pid={process.pid})")

    async def _read_stdout(self) -> None:
        """Background task feeding stdout chunks through the frame decoder."""
        process = self._process
        if not process or not process.stdout:
            return

        decoder = FrameDecoder(encoding=self.config.encoding, verbose=self.config.verbose)
        try:
            while True:
                chunk = await process.stdout.read(CHUNK_SIZE)
                if not chunk:
                    # EOF - process exited
                    break
                for message in decoder.feed(chunk):
                    self._on_message(message)

            returncode = await process.wait()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Read loop error: {e}")
            self._finish(ServerProcessError(f"Error reading from tsserver: {e}"))
            return

        if decoder.pending:
            logger.debug(f"tsserver exited with {decoder.pending} undecoded bytes")

        if returncode == 0:
            logger.info(f"tsserver exited (pid={process.pid})")
            self._finish(None)
        else:
            self._finish(
                ServerProcessError(f"tsserver exited with code {returncode}", returncode=returncode)
            )

    async def _read_stderr(self) -> None:
        """Read and log stderr output."""
        process = self._process
        if not process or not process.stderr:
            return

        while True:
            line = await process.stderr.readline()
            if not line:
                break
            logger.debug(f"[tsserver stderr] {line.decode(self.config.encoding, 'replace').rstrip()}")

    def _finish(self, error: ServerProcessError | None) -> None:
        if self._state != TransportState.RUNNING:
            return
        self._state = TransportState.STOPPED
        self._on_close(error)
