"""
On-disk layout used by the game and by maploader.

All paths are derived from two roots: the game's app data folder (holding
``cities``, ``public`` and ``mods``) and maploader's own user data folder
(holding the shared tile cache and log files).
"""

from dataclasses import dataclass
from pathlib import Path

TILE_ARCHIVE_EXTENSION = ".pmtiles"
THUMBNAIL_EXTENSION = ".svg"
MOD_FOLDER_NAME = "mapLoader"
VANILLA_CATALOG_FILE = "latest-cities.yml"

# Characters that would let a map code leave its folder
UNSAFE_CODE_CHARACTERS = frozenset("/\\:\0")


def is_safe_map_code(code: object) -> bool:
    """Check that ``code`` names a single folder directly under cities/data."""
    if not isinstance(code, str) or code.strip() in ("", ".", ".."):
        return False
    return not any(c in UNSAFE_CODE_CHARACTERS for c in code)


@dataclass(frozen=True)
class MapLoaderLayout:
    """Resolves every persisted location from the two root folders."""

    app_data_root: Path
    user_data_root: Path

    @property
    def cities_dir(self) -> Path:
        return self.app_data_root / "cities"

    @property
    def cities_data_dir(self) -> Path:
        """Directory holding one subdirectory per installed map."""
        return self.cities_dir / "data"

    @property
    def vanilla_catalog_path(self) -> Path:
        return self.cities_dir / VANILLA_CATALOG_FILE

    @property
    def public_assets_dir(self) -> Path:
        """Directory the game loads city thumbnails from."""
        return self.app_data_root / "public" / "data" / "city-maps"

    @property
    def mod_dir(self) -> Path:
        """Directory of the generated plugin-loader mod."""
        return self.app_data_root / "mods" / MOD_FOLDER_NAME

    @property
    def tile_cache_dir(self) -> Path:
        """Shared tile cache served by the tile server."""
        return self.user_data_root / "tiles"

    def map_dir(self, code: str) -> Path:
        return self.cities_data_dir / code

    def tile_archive_path(self, code: str) -> Path:
        return self.tile_cache_dir / f"{code}{TILE_ARCHIVE_EXTENSION}"

    def thumbnail_path(self, code: str) -> Path:
        return self.public_assets_dir / f"{code}{THUMBNAIL_EXTENSION}"
