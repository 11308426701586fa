"""
Data models for map packages.

Contains the manifest model, installed-map records and the constants that
describe what a map package must contain. No file-system logic here.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, TypeAlias

from ..layout import THUMBNAIL_EXTENSION, TILE_ARCHIVE_EXTENSION

ManifestData: TypeAlias = Dict[str, Any]
"""Manifest as authored in config.json."""


# =============================================================================
# Package contents
# =============================================================================

MANIFEST_ENTRY = "config.json"
COMPRESSED_SUFFIX = ".gz"

# Extensions of data files that get compressed into the map directory
DATA_EXTENSIONS = (".json", ".geojson")

# Category name reported for a missing tile archive
TILES_CATEGORY = "tiles"

# Entries that must sit at the package root under exactly these names
REQUIRED_FILES: Tuple[str, ...] = (
    "roads.geojson",
    "runways_taxiways.geojson",
    "demand_data.json",
    "buildings_index.json",
    MANIFEST_ENTRY,
)

# Required entry categories in the order they are reported; the tile
# archive is matched by extension only
REQUIRED_CATEGORIES: Tuple[str, ...] = (*REQUIRED_FILES, TILES_CATEGORY)

# Manifest fields that must be present, in the order they are reported
REQUIRED_MANIFEST_FIELDS: Tuple[str, ...] = (
    "name",
    "creator",
    "version",
    "description",
    "population",
    "code",
    "initialViewState",
)


@dataclass(frozen=True)
class MapManifest:
    """Metadata describing a single map.

    Attributes:
        code: Unique installation key
        name: Display name
        creator: Author of the map
        version: Map version as authored
        description: Short description for the city picker
        population: Population shown in the city picker
        initial_view_state: Camera state (longitude, latitude, zoom, bearing),
            kept as authored
        thumbnail_bbox: Bounding box used to render a missing thumbnail
        bbox: Map bounds, used when no initial view state is present
        country: ISO 3166 alpha-2 country code
        raw: The manifest mapping exactly as authored
    """

    code: str
    name: Any = None
    creator: Any = None
    version: Any = None
    description: Any = None
    population: Any = None
    initial_view_state: Any = None
    thumbnail_bbox: Optional[Tuple[float, float, float, float]] = None
    bbox: Optional[Tuple[float, float, float, float]] = None
    country: Optional[str] = None
    raw: ManifestData = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MapManifest":
        """Build a manifest from parsed config.json data.

        Does not check required fields; PackageValidator does that before
        calling this for imported packages.
        """
        return cls(
            code=str(data["code"]),
            name=data.get("name"),
            creator=data.get("creator"),
            version=data.get("version"),
            description=data.get("description"),
            population=data.get("population"),
            initial_view_state=data.get("initialViewState"),
            thumbnail_bbox=_as_bbox(data.get("thumbnailBbox")),
            bbox=_as_bbox(data.get("bbox")),
            country=data.get("country"),
            raw=dict(data),
        )

    def to_dict(self) -> ManifestData:
        """Return the manifest in its authored form."""
        return dict(self.raw)


def _as_bbox(value: Any) -> Optional[Tuple[float, float, float, float]]:
    """Convert a four-number sequence to a bbox tuple, else None."""
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    try:
        west, south, east, north = (float(v) for v in value)
    except (TypeError, ValueError):
        return None
    return (west, south, east, north)


@dataclass
class InstalledMapRecord:
    """A map present on disk.

    Attributes:
        code: Map code (directory name under cities/data)
        map_dir: Directory holding the compressed data files
        tile_archive: Tile archive in the shared tile cache
        thumbnail: Thumbnail asset, if one exists
    """

    code: str
    map_dir: Path
    tile_archive: Path
    thumbnail: Optional[Path] = None

    def __repr__(self) -> str:
        return f"InstalledMapRecord(code={self.code!r}, map_dir={str(self.map_dir)!r})"
