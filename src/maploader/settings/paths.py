"""
Path-related settings for maploader.
"""

import shlex
from pathlib import Path
from typing import List, Optional, Union, TYPE_CHECKING, cast

from PySide6.QtCore import QStandardPaths

from ..runtime.tile_server import DEFAULT_BINARY

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

APP_FOLDER_NAME = "maploader"
MAX_RECENT_PACKAGES = 10


def default_user_data_path() -> Path:
    """Platform data folder for maploader's tile cache and logs.

    - Windows: %LOCALAPPDATA%/maploader
    - Linux: ~/.local/share/maploader
    - macOS: ~/Library/Application Support/maploader
    """
    base = QStandardPaths.writableLocation(
        QStandardPaths.StandardLocation.GenericDataLocation
    )
    return Path(base) / APP_FOLDER_NAME


class PathSettings:
    """Manages path-related settings."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_str(self, key: str, default: str = "") -> str:
        """Type-safe string retrieval from settings."""
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    def _get_list(self, key: str, default: Optional[List[str]] = None) -> List[str]:
        """Type-safe list retrieval from settings."""
        if default is None:
            default = []
        value = self.settings.value(key, default)
        if isinstance(value, list):
            return [
                str(item) if item is not None else ""
                for item in cast(list[object], value)
            ]
        if isinstance(value, str) and value:
            # INI storage returns single-item lists as plain strings
            return [value]
        return default

    def _get_path(self, key: str) -> Optional[Path]:
        path_str = self._get_str(key, "")
        return Path(path_str) if path_str else None

    def _set_path(self, key: str, value: Optional[Path]) -> None:
        self.settings.setValue(key, str(value) if value else "")
        self.settings.sync()

    @property
    def game_path(self) -> Optional[Path]:
        """Get game executable (or application bundle) path."""
        return self._get_path("paths/game")

    @game_path.setter
    def game_path(self, value: Optional[Path]) -> None:
        self._set_path("paths/game", value)

    @property
    def app_data_path(self) -> Optional[Path]:
        """Get the game's app data folder (contains cities/ and mods/)."""
        return self._get_path("paths/app_data")

    @app_data_path.setter
    def app_data_path(self, value: Optional[Path]) -> None:
        self._set_path("paths/app_data", value)

    @property
    def user_data_path(self) -> Path:
        """Get maploader's own data folder, falling back to the platform default."""
        return self._get_path("paths/user_data") or default_user_data_path()

    @user_data_path.setter
    def user_data_path(self, value: Optional[Path]) -> None:
        self._set_path("paths/user_data", value)

    @property
    def tile_server_path(self) -> str:
        """Get tile server executable (name on PATH or full path)."""
        return self._get_str("paths/tile_server", DEFAULT_BINARY) or DEFAULT_BINARY

    @tile_server_path.setter
    def tile_server_path(self, value: str) -> None:
        self.settings.setValue("paths/tile_server", value)
        self.settings.sync()

    @property
    def renderer_command(self) -> List[str]:
        """Get thumbnail renderer command line, empty if not configured."""
        return shlex.split(self._get_str("paths/renderer_command", ""))

    @renderer_command.setter
    def renderer_command(self, value: Union[str, List[str]]) -> None:
        command = value if isinstance(value, str) else shlex.join(value)
        self.settings.setValue("paths/renderer_command", command)
        self.settings.sync()

    @property
    def recent_packages(self) -> List[str]:
        """Get list of recently imported map packages."""
        return self._get_list("paths/recent_packages", [])

    def add_recent_package(self, package_path: Union[str, Path]) -> None:
        """Add package to recent list (max 10 items)."""
        recent = self.recent_packages
        package_str = str(package_path)

        if package_str in recent:
            recent.remove(package_str)
        recent.insert(0, package_str)
        recent = recent[:MAX_RECENT_PACKAGES]

        self.settings.setValue("paths/recent_packages", recent)
        self.settings.sync()

    def clear_recent_packages(self) -> None:
        """Clear recent packages list."""
        self.settings.setValue("paths/recent_packages", [])
        self.settings.sync()
