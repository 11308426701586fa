"""
maploader: custom map importer and launcher for a city-building game

Installs map packages into the game's data folder and starts the game
with a local vector tile server and a generated mod that registers the
installed maps.
"""

__version__ = "0.1.0"
__author__ = "maploader Contributors"

# Core service imports
from .service import MapLoaderService, OperationResult, ImportResult, LaunchResult
from .utils.logging_config import setup_logging
from .settings import AppSettings

# Main data models
from .layout import MapLoaderLayout
from .packages.models import MapManifest, InstalledMapRecord

__all__ = [
    # Services
    'MapLoaderService',
    'OperationResult',
    'ImportResult',
    'LaunchResult',

    # Configuration
    'AppSettings',
    'setup_logging',

    # Data models
    'MapLoaderLayout',
    'MapManifest',
    'InstalledMapRecord',
]
