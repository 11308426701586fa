"""
Settings validation system for maploader.
"""

import logging
import shutil
from pathlib import Path
from typing import List, TYPE_CHECKING

from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)

# Folders that identify the game's app data directory
APP_DATA_MARKERS = ("cities", "Local Storage")


def is_app_data_folder(path: Path) -> bool:
    """Check that ``path`` looks like the game's app data folder."""
    return all((path / marker).exists() for marker in APP_DATA_MARKERS)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        errors: List[str] = []
        warnings: List[str] = []

        # Game executable
        game_path = self.settings.paths.game_path
        if game_path:
            if not game_path.exists():
                errors.append(f"Game path does not exist: {game_path}")
        else:
            warnings.append("Game path not set")

        # Game app data folder
        app_data = self.settings.paths.app_data_path
        if app_data:
            if not app_data.exists():
                errors.append(f"App data path does not exist: {app_data}")
            elif not is_app_data_folder(app_data):
                errors.append(
                    f"App data path does not look like the game's data folder "
                    f"(needs {', '.join(APP_DATA_MARKERS)}): {app_data}"
                )
        else:
            warnings.append("App data path not set")

        # Tile server binary
        tile_server = self.settings.paths.tile_server_path
        if not Path(tile_server).is_file() and shutil.which(tile_server) is None:
            errors.append(f"Tile server executable not found: {tile_server}")

        if not self.settings.paths.renderer_command:
            warnings.append("Thumbnail renderer not set, missing thumbnails will not be generated")

        # Drop recent packages that no longer exist
        recent = self.settings.paths.recent_packages
        valid_recent = [p for p in recent if Path(p).exists()]
        if len(valid_recent) != len(recent):
            for stale in set(recent) - set(valid_recent):
                warnings.append(f"Recent package no longer exists: {stale}")
            self.settings.settings.setValue("paths/recent_packages", valid_recent)
            self.settings.settings.sync()

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
