"""
Caller-facing operations of maploader.

MapLoaderService wires the package pipeline and the launch pipeline
together and turns every failure into a result object, so callers (the
command line, a GUI) never have to catch exceptions themselves.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Collection, Dict, List, Optional, Sequence

from .errors import MapLoaderError, NotFoundError, ValidationError
from .layout import MapLoaderLayout, is_safe_map_code
from .packages.archive import MapPackageArchive
from .packages.conflicts import ConflictResolver, LoggingNotifier, Notifier, VanillaCatalog
from .packages.models import InstalledMapRecord, ManifestData
from .packages.router import FileRouter
from .packages.thumbnails import ThumbnailProvisioner, ThumbnailRenderer
from .packages.validator import PackageValidator
from .runtime.config_generator import RuntimeConfigGenerator, manifests_from_dicts
from .runtime.launcher import GameLauncher, GameSession
from .runtime.ports import PortAllocator
from .runtime.tile_server import DEFAULT_BINARY, TileServerProcess

STATUS_SUCCESS = "success"
STATUS_ERROR = "err"


@dataclass
class OperationResult:
    """Outcome of a caller-facing operation."""

    status: str
    message: str
    error: Optional[str] = None
    filepath: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "message": self.message}
        if self.error:
            data["error"] = self.error
        if self.filepath is not None:
            data["filepath"] = str(self.filepath)
        return data


@dataclass
class ImportResult(OperationResult):
    manifest: Optional[ManifestData] = None
    missing: List[str] = field(default_factory=list)
    thumbnail: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.manifest is not None:
            data["config"] = self.manifest
        if self.missing:
            data["missing"] = list(self.missing)
        return data


@dataclass
class LaunchResult(OperationResult):
    session: Optional[GameSession] = None
    port: Optional[int] = None


class MapLoaderService:
    """Imports, deletes and launches maps.

    Collaborators are created once here and shared by every call.
    """

    def __init__(
        self,
        user_data_root: str | Path,
        tile_server_binary: str | Sequence[str] = DEFAULT_BINARY,
        renderer: Optional[ThumbnailRenderer] = None,
        notifier: Optional[Notifier] = None,
        port_allocator: Optional[PortAllocator] = None,
        launcher: Optional[GameLauncher] = None,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.user_data_root = Path(user_data_root)
        self.tile_server_binary = tile_server_binary
        self.renderer = renderer
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.port_allocator = port_allocator or PortAllocator()
        self.validator = PackageValidator()
        self.launcher = launcher or GameLauncher(self.create_tile_server)

        self.logger.debug(
            f"MapLoaderService initialized (user data: {self.user_data_root}, "
            f"tile server: {tile_server_binary})"
        )

    def layout(self, app_data_root: str | Path) -> MapLoaderLayout:
        return MapLoaderLayout(Path(app_data_root), self.user_data_root)

    def create_tile_server(self, directory: Path, port: int) -> TileServerProcess:
        return TileServerProcess(self.tile_server_binary, directory, port)

    # === IMPORT ===

    def import_package(
        self,
        app_data_root: str | Path,
        existing_codes: Collection[str],
        package_path: str | Path,
    ) -> ImportResult:
        """Validate, check and install a map package."""
        layout = self.layout(app_data_root)
        self.logger.info(f"Importing map package {package_path}")

        try:
            with MapPackageArchive(package_path) as archive:
                validated = self.validator.validate(archive)
                manifest = validated.manifest

                resolver = ConflictResolver(
                    VanillaCatalog.load(layout.vanilla_catalog_path), self.notifier
                )
                resolver.check(manifest.code, existing_codes, self._map_dir_codes(layout))

                report = FileRouter(layout).route(archive, manifest)
        except ValidationError as e:
            self.logger.error(f"Map package rejected: {e}")
            return ImportResult(
                status=STATUS_ERROR,
                message=str(e),
                error=e.code,
                missing=list(getattr(e, "missing", [])),
            )
        except MapLoaderError as e:
            self.logger.error(f"Error importing map: {e}")
            return ImportResult(status=STATUS_ERROR, message=str(e), error=e.code)
        except OSError as e:
            self.logger.exception("Error importing map")
            return ImportResult(
                status=STATUS_ERROR, message=f"Error importing map: {e}", error="io"
            )

        thumbnail = report.thumbnail
        if ThumbnailProvisioner.needed(manifest, validated.thumbnail_found):
            if self.renderer is None:
                self.logger.warning("No thumbnail renderer configured, skipping thumbnail")
            else:
                provisioner = ThumbnailProvisioner(
                    layout, self.renderer, self.create_tile_server, self.port_allocator
                )
                thumbnail = provisioner.provision(manifest)

        self.logger.info(
            f"Imported map {manifest.code}: {len(report.data_files)} data files, "
            f"tiles at {report.tile_archive}"
        )
        return ImportResult(
            status=STATUS_SUCCESS,
            message="Map imported successfully!",
            manifest=manifest.to_dict(),
            thumbnail=thumbnail,
        )

    # === INSTALLED MAPS ===

    @staticmethod
    def _map_dir_codes(layout: MapLoaderLayout) -> List[str]:
        """Names of every directory under cities/data, vanilla maps included."""
        if not layout.cities_data_dir.is_dir():
            return []
        return [d.name for d in layout.cities_data_dir.iterdir() if d.is_dir()]

    def installed_codes(self, app_data_root: str | Path) -> List[str]:
        """Codes of maps installed by maploader (map dir plus tile archive)."""
        return [record.code for record in self.list_installed(app_data_root)]

    def list_installed(self, app_data_root: str | Path) -> List[InstalledMapRecord]:
        layout = self.layout(app_data_root)
        if not layout.cities_data_dir.is_dir():
            return []

        records: List[InstalledMapRecord] = []
        for map_dir in sorted(layout.cities_data_dir.iterdir()):
            if not map_dir.is_dir():
                continue
            tile_archive = layout.tile_archive_path(map_dir.name)
            if not tile_archive.exists():
                continue
            thumbnail = layout.thumbnail_path(map_dir.name)
            records.append(
                InstalledMapRecord(
                    code=map_dir.name,
                    map_dir=map_dir,
                    tile_archive=tile_archive,
                    thumbnail=thumbnail if thumbnail.exists() else None,
                )
            )
        return records

    def delete_map(self, code: str, app_data_root: str | Path) -> OperationResult:
        """Remove an installed map.

        The tile archive is removed whether or not the map directory exists;
        a missing map directory is still reported as not found. A code that
        does not name a single folder is reported as not found without
        touching the disk.
        """
        layout = self.layout(app_data_root)
        map_dir = layout.map_dir(code)
        try:
            if not is_safe_map_code(code):
                raise NotFoundError("Map not found")
            layout.tile_archive_path(code).unlink(missing_ok=True)
            if not map_dir.is_dir():
                raise NotFoundError("Map not found")
            shutil.rmtree(map_dir)
            layout.thumbnail_path(code).unlink(missing_ok=True)
        except NotFoundError as e:
            self.logger.warning(f"Cannot delete map {code}: {e}")
            return OperationResult(status=STATUS_ERROR, message=str(e), error=e.code)
        except OSError as e:
            self.logger.exception(f"Error deleting map {code}")
            return OperationResult(
                status=STATUS_ERROR, message=f"Error deleting map: {e}", error="io"
            )

        self.logger.info(f"Deleted map {code}")
        return OperationResult(status=STATUS_SUCCESS, message="Map deleted successfully!")

    # === LAUNCH ===

    def start_game(
        self,
        game_path: str | Path,
        app_data_root: str | Path,
        manifests: Sequence[Dict[str, Any]],
    ) -> LaunchResult:
        """Write the generated mod and start the game with its tile server."""
        layout = self.layout(app_data_root)
        try:
            selected = manifests_from_dicts(manifests)
            port = self.port_allocator.allocate()
            RuntimeConfigGenerator(layout).generate(selected, port)
            session = self.launcher.launch(game_path, layout.tile_cache_dir, port)
        except MapLoaderError as e:
            self.logger.error(f"Error starting game: {e}")
            return LaunchResult(status=STATUS_ERROR, message=str(e), error=e.code)
        except OSError as e:
            self.logger.exception("Error starting game")
            return LaunchResult(
                status=STATUS_ERROR, message=f"Error starting game: {e}", error="io"
            )

        return LaunchResult(
            status=STATUS_SUCCESS,
            message="Game started successfully!",
            session=session,
            port=port,
        )

    # === LOG FILES ===

    def write_log_file(self, message: str, filename: str) -> OperationResult:
        """Write a caller-supplied log dump into the logs folder."""
        logs_dir = self.user_data_root / "logs"
        target = logs_dir / Path(filename).name
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            target.write_text(message + "\n", encoding="utf-8")
        except OSError as e:
            self.logger.error(f"Error writing log file: {e}")
            return OperationResult(
                status=STATUS_ERROR, message="Error writing log file", error="io"
            )
        return OperationResult(
            status=STATUS_SUCCESS,
            message="Log file written successfully",
            filepath=target,
        )
