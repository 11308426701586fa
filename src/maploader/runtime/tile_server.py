"""
Tile server subprocess management.

Wraps the external ``pmtiles`` binary:

    pmtiles serve <directory> --port <port> --cors=*

Lifecycle: STARTING -> RUNNING -> STOPPING -> STOPPED. ``stop`` sends the
terminate signal at most once per handle, waits a bounded time for the
process to exit and escalates to a hard kill if it does not.
"""

import logging
import os
import socket
import subprocess
import threading
import time
from enum import Enum
from pathlib import Path
from typing import IO, Callable, List, Optional, Sequence

from ..errors import SpawnError
from .ports import LOCALHOST

DEFAULT_BINARY = "pmtiles.exe" if os.name == "nt" else "pmtiles"

# Seconds to wait for a graceful exit before killing
DEFAULT_STOP_TIMEOUT = 5.0

TileServerFactory = Callable[[Path, int], "TileServerProcess"]
"""Builds a tile server for (directory, port)."""


class ServerState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class TileServerProcess:
    """One tile server process bound to a directory and a port.

    ``binary`` is the executable path, or a command prefix list when the
    server has to be started through an interpreter.
    """

    def __init__(
        self,
        binary: str | Sequence[str],
        directory: str | Path,
        port: int,
        host: str = LOCALHOST,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.binary: List[str] = [binary] if isinstance(binary, str) else list(binary)
        self.directory = Path(directory)
        self.port = port
        self.host = host

        self._process: Optional[subprocess.Popen[bytes]] = None
        self._state: Optional[ServerState] = None
        self._terminate_sent = False
        self._lock = threading.Lock()
        self._pumps: List[threading.Thread] = []

    def __enter__(self) -> "TileServerProcess":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        return (
            f"TileServerProcess(pid={self.pid}, port={self.port}, "
            f"directory={str(self.directory)!r}, state={self.state})"
        )

    @property
    def command(self) -> List[str]:
        return [
            *self.binary,
            "serve",
            str(self.directory),
            "--port",
            str(self.port),
            "--cors=*",
        ]

    @property
    def state(self) -> Optional[ServerState]:
        """Current lifecycle state, None before ``start``."""
        return self._state

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    def is_alive(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        """Spawn the server.

        Raises:
            SpawnError: If the binary cannot be executed
            RuntimeError: If this handle was already started
        """
        if self._state is not None:
            raise RuntimeError(f"Tile server already started: {self!r}")

        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            self._state = ServerState.STOPPED
            raise SpawnError(
                f"Error starting tile server: {e}", executable=self.binary[0]
            ) from e

        self._state = ServerState.STARTING
        self.logger.info(
            f"Started tile server with PID {self._process.pid} on port {self.port} "
            f"serving {self.directory}"
        )

        streams = [(self._process.stdout, logging.DEBUG), (self._process.stderr, logging.WARNING)]
        self._pumps = [
            threading.Thread(target=self._pump, args=(stream, level), daemon=True)
            for stream, level in streams
            if stream is not None
        ]
        for pump in self._pumps:
            pump.start()

    def _pump(self, stream: IO[bytes], level: int) -> None:
        """Forward one output stream of the server to the log."""
        with stream:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip()
                if line:
                    self.logger.log(level, f"pmtiles: {line}")

    def wait_ready(self, timeout: float = 10.0, interval: float = 0.1) -> bool:
        """Block until the server accepts connections.

        Returns:
            True once RUNNING, False if the process died or the timeout passed
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.is_alive():
                self.logger.error(
                    f"Tile server exited before becoming ready (code {self.returncode})"
                )
                with self._lock:
                    self._state = ServerState.STOPPED
                return False
            try:
                with socket.create_connection((self.host, self.port), timeout=interval):
                    pass
            except OSError:
                time.sleep(interval)
                continue
            with self._lock:
                if self._state is ServerState.STARTING:
                    self._state = ServerState.RUNNING
            self.logger.debug(f"Tile server ready on port {self.port}")
            return True

        self.logger.warning(f"Tile server not ready after {timeout}s on port {self.port}")
        return False

    def stop(self, timeout: float = DEFAULT_STOP_TIMEOUT) -> Optional[int]:
        """Terminate the server and wait for it to exit.

        Safe to call more than once and from several threads; only the
        first call signals the process.

        Returns:
            Process exit code, None if the server was never started
        """
        with self._lock:
            if self._process is None:
                return None
            if self._state is ServerState.STOPPED:
                return self._process.returncode
            first_request = not self._terminate_sent
            self._terminate_sent = True
            self._state = ServerState.STOPPING

        if first_request and self._process.poll() is None:
            self.logger.debug(f"Terminating tile server PID {self._process.pid}")
            self._process.terminate()

        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.logger.warning(
                f"Tile server PID {self._process.pid} did not exit after {timeout}s, killing"
            )
            self._process.kill()
            self._process.wait()

        with self._lock:
            self._state = ServerState.STOPPED
        self.logger.info(
            f"Tile server PID {self._process.pid} stopped (code {self._process.returncode})"
        )
        return self._process.returncode
