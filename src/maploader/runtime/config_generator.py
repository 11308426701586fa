"""
Generated plugin-loader configuration.

At each launch the game's mod loader picks up ``mods/mapLoader``. This
module writes three files there:

    manifest.json  - mod descriptor (id, name, version, entry point)
    config.json    - RuntimeLaunchConfig, the structured contract
    index.js       - ``const config = <config.json>;`` followed by the
                     static runtime script from maploader.resources

Everything the runtime script needs (thumbnail URLs, view states, tile
URLs, country tabs) is computed here, so the script only walks the
structure.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import orjson
from PySide6.QtCore import QLocale

from ..errors import ConfigGenerationError
from ..layout import MapLoaderLayout, is_safe_map_code
from ..packages.models import MapManifest
from ..resources import get_mod_runtime_script
from .ports import LOCALHOST

TILE_ZOOM_LEVEL = 15

# View state used when a manifest only provides a bbox
DEFAULT_VIEW_ZOOM = 12
DEFAULT_VIEW_BEARING = 0

FOUNDATION_TILES_URL = "https://a.basemaps.cartocdn.com/light_all/{z}/{x}/{y}.png"

# Countries that get no tab of their own
RESERVED_COUNTRIES = frozenset({"US", "GB"})

MOD_DESCRIPTOR: Dict[str, Any] = {
    "id": "com.kronifer.maploader",
    "name": "Map Loader",
    "description": "Patcher-like mod that allows easy loading of custom maps.",
    "version": "1.0.0",
    "author": {"name": "Kronifer"},
    "main": "index.js",
}

LAYER_OVERRIDES: List[Dict[str, Any]] = [
    {
        "layerId": "parks-large",
        "sourceLayer": "landuse",
        "filter": ["==", ["get", "kind"], "park"],
    },
    {
        "layerId": "airports",
        "sourceLayer": "landuse",
        "filter": ["==", ["get", "kind"], "aerodrome"],
    },
]

DEFAULT_LAYER_VISIBILITY = {"oceanFoundations": False, "trackElevations": False}


def flag_emoji(country_code: str) -> str:
    """Regional indicator pair for a two-letter country code."""
    return "".join(chr(127397 + ord(c)) for c in country_code.upper())


def country_name(country_code: str) -> str:
    """English country name, falling back to the code itself."""
    territory = QLocale.codeToTerritory(country_code.upper())
    if territory == QLocale.Country.AnyTerritory:
        return country_code.upper()
    return QLocale.territoryToString(territory)


def tiles_url(port: int, code: str) -> str:
    return f"http://{LOCALHOST}:{port}/{code}/{{z}}/{{x}}/{{y}}.mvt"


@dataclass
class RuntimeLaunchConfig:
    """Configuration handed to the plugin loader for one launch."""

    places: List[Dict[str, Any]]
    port: int
    tile_zoom_level: int = TILE_ZOOM_LEVEL
    cities: List[Dict[str, Any]] = field(default_factory=list)
    layer_overrides: List[Dict[str, Any]] = field(default_factory=list)
    tabs: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "places": self.places,
            "tileZoomLevel": self.tile_zoom_level,
            "port": self.port,
            "cities": self.cities,
            "layerOverrides": self.layer_overrides,
            "tabs": self.tabs,
        }


class RuntimeConfigGenerator:
    """Builds and writes the generated mod for a launch."""

    def __init__(self, layout: MapLoaderLayout, tile_zoom_level: int = TILE_ZOOM_LEVEL):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.layout = layout
        self.tile_zoom_level = tile_zoom_level

    def build(self, manifests: Sequence[MapManifest], port: int) -> RuntimeLaunchConfig:
        """Compute the launch configuration.

        Raises:
            ConfigGenerationError: A manifest has no usable view state or bbox
        """
        config = RuntimeLaunchConfig(
            places=[m.to_dict() for m in manifests],
            port=port,
            tile_zoom_level=self.tile_zoom_level,
            layer_overrides=[dict(o) for o in LAYER_OVERRIDES],
        )
        config.cities = [self._city_entry(m, port) for m in manifests]
        config.tabs = self._tabs(manifests)
        return config

    def _city_entry(self, manifest: MapManifest, port: int) -> Dict[str, Any]:
        code = manifest.code
        thumbnail = self.layout.thumbnail_path(code).absolute()
        return {
            "code": code,
            "name": manifest.name,
            "population": manifest.population,
            "description": manifest.description,
            "mapImageUrl": thumbnail.as_uri(),
            "initialViewState": self._initial_view_state(manifest),
            "defaultLayerVisibility": dict(DEFAULT_LAYER_VISIBILITY),
            "tiles": {
                "tilesUrl": tiles_url(port, code),
                "foundationTilesUrl": FOUNDATION_TILES_URL,
                "maxZoom": self.tile_zoom_level,
            },
            # The game appends .gz itself
            "dataFiles": {
                "buildingsIndex": f"/data/{code}/buildings_index.json",
                "demandData": f"/data/{code}/demand_data.json",
                "roads": f"/data/{code}/roads.geojson",
                "runwaysTaxiways": f"/data/{code}/runways_taxiways.geojson",
            },
        }

    @staticmethod
    def _initial_view_state(manifest: MapManifest) -> Dict[str, Any]:
        """Authored view state if present, else one centred on the bbox."""
        view_state = manifest.initial_view_state
        if isinstance(view_state, dict):
            return dict(view_state)
        if view_state is not None:
            raise ConfigGenerationError(
                f"Map {manifest.code} has an initialViewState that is not an object"
            )
        if manifest.bbox is None:
            raise ConfigGenerationError(
                f"Map {manifest.code} has neither initialViewState nor a valid bbox"
            )
        west, south, east, north = manifest.bbox
        return {
            "longitude": (west + east) / 2,
            "latitude": (south + north) / 2,
            "zoom": DEFAULT_VIEW_ZOOM,
            "bearing": DEFAULT_VIEW_BEARING,
        }

    @staticmethod
    def _tabs(manifests: Sequence[MapManifest]) -> List[Dict[str, Any]]:
        """Group maps by country, skipping unknown and reserved countries."""
        grouped: Dict[str, List[str]] = {}
        for manifest in manifests:
            if not manifest.country:
                continue
            country = str(manifest.country).upper()
            if country in RESERVED_COUNTRIES:
                continue
            grouped.setdefault(country, []).append(manifest.code)

        return [
            {
                "id": country,
                "label": country_name(country),
                "emoji": flag_emoji(country),
                "cityCodes": codes,
            }
            for country, codes in grouped.items()
        ]

    def write(self, config: RuntimeLaunchConfig) -> Path:
        """Replace the generated mod with one for ``config``.

        Returns:
            The mod directory
        """
        mod_dir = self.layout.mod_dir
        mod_dir.mkdir(parents=True, exist_ok=True)

        config_json = orjson.dumps(config.to_dict(), option=orjson.OPT_INDENT_2)
        (mod_dir / "manifest.json").write_bytes(
            orjson.dumps(MOD_DESCRIPTOR, option=orjson.OPT_INDENT_2)
        )
        (mod_dir / "config.json").write_bytes(config_json)
        script = (
            "const config = "
            + config_json.decode("utf-8")
            + ";\n\n"
            + get_mod_runtime_script()
        )
        (mod_dir / "index.js").write_text(script, encoding="utf-8")

        self.logger.info(
            f"Wrote map loader mod with {len(config.cities)} maps to {mod_dir} "
            f"(port {config.port})"
        )
        return mod_dir

    def generate(
        self, manifests: Sequence[MapManifest], port: int
    ) -> RuntimeLaunchConfig:
        """Build and write the configuration in one step."""
        config = self.build(manifests, port)
        self.write(config)
        return config


def manifests_from_dicts(data: Sequence[Dict[str, Any]]) -> List[MapManifest]:
    """Convert caller-supplied manifest mappings.

    Raises:
        ConfigGenerationError: An entry has no usable ``code``
    """
    manifests: List[MapManifest] = []
    for item in data:
        code: Optional[Any] = item.get("code") if isinstance(item, dict) else None
        if code is None:
            raise ConfigGenerationError("Selected map is missing its code")
        if not is_safe_map_code(str(code)):
            raise ConfigGenerationError(f"Selected map has an invalid code: {code!r}")
        manifests.append(MapManifest.from_dict(item))
    return manifests
