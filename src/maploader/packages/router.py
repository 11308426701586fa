"""
Routing of map package entries to their destinations.

Routing policy, by entry path:
    * config.json        - parsed only, never written
    * *.pmtiles          - copied verbatim to <tile cache>/<code>.pmtiles
    * *.svg              - copied verbatim to <public assets>/<code>.svg
    * *.json, *.geojson  - gzip-compressed to <map dir>/<path>.gz
    * anything else      - ignored

Tile archives are never recompressed: the tile server reads the container
format directly. Data files are stored pre-compressed because the game
serves them as static gzip assets.

Writes run in parallel on a thread pool and are all joined before
``route`` returns.
"""

import gzip
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

from ..errors import RoutingError
from ..layout import MapLoaderLayout
from .archive import ARCHIVE_READ_ERRORS, ArchiveEntry, MapPackageArchive
from .models import (
    COMPRESSED_SUFFIX,
    DATA_EXTENSIONS,
    MANIFEST_ENTRY,
    THUMBNAIL_EXTENSION,
    TILE_ARCHIVE_EXTENSION,
    MapManifest,
)

# Chunk size for streamed copies
COPY_CHUNK_SIZE = 1024 * 1024


class RouteKind(Enum):
    MANIFEST = "manifest"
    TILE_ARCHIVE = "tile_archive"
    THUMBNAIL = "thumbnail"
    DATA = "data"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Route:
    """Where a single entry goes."""

    entry: ArchiveEntry
    kind: RouteKind
    destination: Optional[Path] = None

    @property
    def compress(self) -> bool:
        return self.kind is RouteKind.DATA

    @property
    def writes(self) -> bool:
        return self.destination is not None


@dataclass
class RoutingReport:
    """Outcome of a completed routing pass."""

    map_dir: Path
    tile_archive: Optional[Path] = None
    thumbnail: Optional[Path] = None
    data_files: List[Path] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


def _safe_relative_path(entry_path: str) -> Optional[PurePosixPath]:
    """Return the entry path if it stays inside its destination directory."""
    rel = PurePosixPath(entry_path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        return None
    return rel


class FileRouter:
    """Streams package entries to disk."""

    def __init__(self, layout: MapLoaderLayout, max_workers: int = 8):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.layout = layout
        self.max_workers = max_workers

    def plan(self, archive: MapPackageArchive, manifest: MapManifest) -> List[Route]:
        """Decide the destination of every entry without touching the disk."""
        map_dir = self.layout.map_dir(manifest.code)
        routes: List[Route] = []
        tile_routed = False
        thumbnail_routed = False

        for entry in archive:
            if entry.path == MANIFEST_ENTRY:
                routes.append(Route(entry, RouteKind.MANIFEST))
            elif entry.has_extension(TILE_ARCHIVE_EXTENSION):
                if tile_routed:
                    self.logger.warning(f"Ignoring extra tile archive {entry.path}")
                    routes.append(Route(entry, RouteKind.IGNORED))
                    continue
                tile_routed = True
                routes.append(
                    Route(
                        entry,
                        RouteKind.TILE_ARCHIVE,
                        self.layout.tile_archive_path(manifest.code),
                    )
                )
            elif entry.has_extension(THUMBNAIL_EXTENSION):
                if thumbnail_routed:
                    self.logger.warning(f"Ignoring extra thumbnail {entry.path}")
                    routes.append(Route(entry, RouteKind.IGNORED))
                    continue
                thumbnail_routed = True
                routes.append(
                    Route(
                        entry,
                        RouteKind.THUMBNAIL,
                        self.layout.thumbnail_path(manifest.code),
                    )
                )
            elif entry.has_extension(DATA_EXTENSIONS):
                rel = _safe_relative_path(entry.path)
                if rel is None:
                    self.logger.warning(f"Ignoring entry outside map directory: {entry.path}")
                    routes.append(Route(entry, RouteKind.IGNORED))
                    continue
                destination = map_dir.joinpath(*rel.parts)
                destination = destination.with_name(destination.name + COMPRESSED_SUFFIX)
                routes.append(Route(entry, RouteKind.DATA, destination))
            else:
                self.logger.debug(f"Ignoring unrecognized entry {entry.path}")
                routes.append(Route(entry, RouteKind.IGNORED))

        return routes

    def route(self, archive: MapPackageArchive, manifest: MapManifest) -> RoutingReport:
        """Write every routed entry and wait for all writes to finish.

        Raises:
            RoutingError: Wraps the first read or write error hit;
                anything this call wrote is removed again.
        """
        routes = self.plan(archive, manifest)
        map_dir = self.layout.map_dir(manifest.code)
        map_dir_existed = map_dir.exists()
        map_dir.mkdir(parents=True, exist_ok=True)

        report = RoutingReport(map_dir=map_dir)
        writes = [r for r in routes if r.writes]
        report.ignored = [r.entry.path for r in routes if r.kind is RouteKind.IGNORED]

        self.logger.info(
            f"Routing {len(writes)} entries for map {manifest.code} "
            f"({len(report.ignored)} ignored)"
        )

        first_error: Optional[RoutingError] = None
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_route: Dict = {
                executor.submit(self._write, archive, route): route for route in writes
            }
            # Every future is drained, failed or not
            for future in as_completed(future_to_route):
                route = future_to_route[future]
                try:
                    future.result()
                    self.logger.debug(f"Finished writing {route.entry.path}")
                except ARCHIVE_READ_ERRORS as e:
                    self.logger.error(f"Error routing {route.entry.path}: {e}")
                    if first_error is None:
                        first_error = RoutingError(route.entry.path, e)

        if first_error is not None:
            self._rollback(writes, map_dir, map_dir_existed)
            raise first_error

        for route in writes:
            if route.kind is RouteKind.TILE_ARCHIVE:
                report.tile_archive = route.destination
            elif route.kind is RouteKind.THUMBNAIL:
                report.thumbnail = route.destination
            elif route.destination is not None:
                report.data_files.append(route.destination)
        return report

    def _write(self, archive: MapPackageArchive, route: Route) -> None:
        """Stream one entry to its destination."""
        if route.destination is None:
            raise ValueError(f"Entry {route.entry.path} has no destination")
        route.destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(route.entry) as source:
            if route.compress:
                with gzip.open(route.destination, "wb") as target:
                    shutil.copyfileobj(source, target, COPY_CHUNK_SIZE)
            else:
                with route.destination.open("wb") as target:
                    shutil.copyfileobj(source, target, COPY_CHUNK_SIZE)

    def _rollback(self, writes: List[Route], map_dir: Path, map_dir_existed: bool) -> None:
        """Remove whatever a failed routing pass left behind."""
        self.logger.warning(f"Rolling back partial import into {map_dir}")
        for route in writes:
            if route.destination is None:
                continue
            try:
                route.destination.unlink(missing_ok=True)
            except OSError as e:
                self.logger.error(f"Could not remove {route.destination}: {e}")
        if not map_dir_existed:
            shutil.rmtree(map_dir, ignore_errors=True)
