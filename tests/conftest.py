"""Shared fixtures for maploader tests."""

import logging
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

import orjson
import pytest

HELPERS_DIR = Path(__file__).parent / "helpers"

VANILLA_CATALOG = """\
cities:
  NYC:
    name: New York
    population: 8336817
  LON:
    name: London
    population: 8982000
"""


def make_manifest(**overrides: Any) -> Dict[str, Any]:
    """A complete manifest for map code TST."""
    manifest: Dict[str, Any] = {
        "name": "Testville",
        "creator": "tester",
        "version": "1.0.0",
        "description": "A small test map",
        "population": 12345,
        "code": "TST",
        "initialViewState": {"longitude": 10.0, "latitude": 50.0, "zoom": 11, "bearing": 0},
    }
    manifest.update(overrides)
    return manifest


def default_entries(manifest: Optional[Dict[str, Any]] = None) -> Dict[str, bytes]:
    """Entries of a valid package with a thumbnail."""
    return {
        "config.json": orjson.dumps(manifest if manifest is not None else make_manifest()),
        "roads.geojson": b'{"type": "FeatureCollection", "features": []}',
        "runways_taxiways.geojson": b'{"type": "FeatureCollection", "features": []}',
        "demand_data.json": b'{"points": [], "pops": []}',
        "buildings_index.json": b'{"cells": []}',
        "tiles.pmtiles": b"PMTiles\x03" + bytes(range(256)) * 4,
        "thumbnail.svg": b'<svg xmlns="http://www.w3.org/2000/svg"/>',
    }


def corrupt_entry(package: Path, marker: bytes) -> None:
    """Flip one byte of ``marker`` inside a stored package so its entry fails the CRC check."""
    raw = package.read_bytes()
    assert raw.count(marker) == 1
    damaged = marker[:-1] + bytes([marker[-1] ^ 0x01])
    package.write_bytes(raw.replace(marker, damaged))


@pytest.fixture
def app_data(tmp_path: Path) -> Path:
    """A game app data folder with the vanilla catalog and two vanilla maps."""
    root = tmp_path / "app_data"
    (root / "Local Storage").mkdir(parents=True)
    cities = root / "cities"
    (cities / "data" / "NYC").mkdir(parents=True)
    (cities / "data" / "LON").mkdir(parents=True)
    (cities / "latest-cities.yml").write_text(VANILLA_CATALOG, encoding="utf-8")
    return root


@pytest.fixture
def user_data(tmp_path: Path) -> Path:
    root = tmp_path / "user_data"
    root.mkdir()
    return root


@pytest.fixture
def layout(app_data: Path, user_data: Path):
    from maploader.layout import MapLoaderLayout

    return MapLoaderLayout(app_data, user_data)


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Build a map package zip.

    Args:
        entries: Entries to store, defaults to a complete package
        omit: Entry paths to leave out
        extra: Additional entries
        name: Zip file name
        compression: zipfile compression method
    """
    counter = {"n": 0}

    def build(
        entries: Optional[Dict[str, bytes]] = None,
        omit: Iterable[str] = (),
        extra: Optional[Dict[str, bytes]] = None,
        name: Optional[str] = None,
        compression: int = zipfile.ZIP_DEFLATED,
    ) -> Path:
        counter["n"] += 1
        contents = dict(entries if entries is not None else default_entries())
        for path in omit:
            contents.pop(path, None)
        contents.update(extra or {})

        package = tmp_path / "packages" / (name or f"package_{counter['n']}.zip")
        package.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(package, "w", compression) as zf:
            for path, data in contents.items():
                zf.writestr(path, data)
        return package

    return build


@pytest.fixture
def settings(tmp_path: Path):
    """AppSettings backed by a throwaway INI file."""
    from maploader.settings import AppSettings

    return AppSettings(settings_file=tmp_path / "settings.ini")


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way the test found it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
