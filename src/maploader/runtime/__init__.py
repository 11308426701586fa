"""
Runtime side of maploader: ports, tile server processes, generated mod
configuration and game launch.
"""

from .ports import PortAllocator
from .tile_server import TileServerProcess, ServerState
from .config_generator import RuntimeConfigGenerator, RuntimeLaunchConfig, TILE_ZOOM_LEVEL
from .launcher import GameLauncher, GameSession

__all__ = [
    "PortAllocator",
    "TileServerProcess",
    "ServerState",
    "RuntimeConfigGenerator",
    "RuntimeLaunchConfig",
    "TILE_ZOOM_LEVEL",
    "GameLauncher",
    "GameSession",
]
