"""
Game process launch with a companion tile server.

The game is spawned first. Only when it is running is the persistent
tile server started on the port baked into the generated config. A
watcher thread waits for the game to exit and then stops the tile server;
that exit is the only thing that ever stops it.
"""

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import List, Optional

from ..errors import MapLoaderError, SpawnError
from .tile_server import DEFAULT_STOP_TIMEOUT, TileServerFactory, TileServerProcess


class GameSession:
    """A running game and the tile server that lives as long as it does."""

    def __init__(
        self,
        game: "subprocess.Popen[bytes]",
        tile_server: TileServerProcess,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.game = game
        self.tile_server = tile_server
        self.stop_timeout = stop_timeout
        self._finished = threading.Event()
        self._watcher = threading.Thread(
            target=self._watch, name=f"game-watcher-{game.pid}", daemon=True
        )
        self._watcher.start()

    @property
    def game_pid(self) -> int:
        return self.game.pid

    @property
    def exit_code(self) -> Optional[int]:
        return self.game.returncode

    def is_running(self) -> bool:
        return not self._finished.is_set()

    def _watch(self) -> None:
        exit_code = self.game.wait()
        self.logger.info(f"Game PID {self.game.pid} exited with code {exit_code}")
        try:
            self.tile_server.stop(timeout=self.stop_timeout)
        except OSError as e:
            self.logger.error(f"Error stopping tile server: {e}")
        finally:
            self._finished.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until the game exited and the tile server is stopped.

        Returns:
            True if teardown finished within ``timeout``
        """
        return self._finished.wait(timeout)


class GameLauncher:
    """Starts the game and its tile server."""

    def __init__(
        self,
        tile_server_factory: TileServerFactory,
        platform: str = sys.platform,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.tile_server_factory = tile_server_factory
        self.platform = platform
        self.stop_timeout = stop_timeout

    def build_command(self, game_path: str | Path) -> List[str]:
        """Command line that starts the game.

        macOS application bundles go through ``open -W`` so the spawned
        process lives exactly as long as the game.
        """
        if self.platform == "darwin":
            return ["open", "-W", "-a", str(game_path)]
        return [str(game_path)]

    def launch(self, game_path: str | Path, tile_cache_dir: Path, port: int) -> GameSession:
        """Spawn the game, then the tile server.

        Raises:
            SpawnError: The game or the tile server could not be started.
                Nothing is left running in either case.
        """
        command = self.build_command(game_path)
        try:
            game = subprocess.Popen(command, stdin=subprocess.DEVNULL)
        except OSError as e:
            self.logger.error(f"Error starting game: {e}")
            raise SpawnError(f"Error starting game: {e}", executable=str(game_path)) from e

        tile_server = self.tile_server_factory(tile_cache_dir, port)
        try:
            tile_server.start()
        except MapLoaderError:
            self.logger.error("Tile server failed to start, stopping game")
            self._stop_game(game)
            raise

        self.logger.info(
            f"Started game with PID {game.pid} and pmtiles with PID {tile_server.pid}"
        )
        return GameSession(game, tile_server, stop_timeout=self.stop_timeout)

    def _stop_game(self, game: "subprocess.Popen[bytes]") -> None:
        game.terminate()
        try:
            game.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            game.kill()
            game.wait()
