"""Tests for the caller-facing MapLoaderService operations."""

import sys
import zipfile
from pathlib import Path
from typing import Any, Callable, List

import orjson

from conftest import HELPERS_DIR, corrupt_entry, default_entries, make_manifest
from test_thumbnails import FakeRenderer


class FakeLauncher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[tuple] = []

    def launch(self, game_path, tile_cache_dir: Path, port: int) -> Any:
        from maploader.errors import SpawnError

        self.calls.append((game_path, tile_cache_dir, port))
        if self.fail:
            raise SpawnError("Error starting game: not found")
        return "session"


def make_service(user_data: Path, **kwargs):
    from maploader.service import MapLoaderService

    kwargs.setdefault("tile_server_binary", [sys.executable, str(HELPERS_DIR / "fake_pmtiles.py")])
    return MapLoaderService(user_data, **kwargs)


def all_files(root: Path) -> List[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())


class TestImportPackage:
    """Test importing map packages end to end."""

    def test_import_success(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test a valid package installs data, tiles and thumbnail."""
        service = make_service(user_data)

        result = service.import_package(app_data, [], make_package())

        assert result.ok
        assert result.message == "Map imported successfully!"
        assert result.manifest is not None and result.manifest["code"] == "TST"
        gz_files = list(layout.map_dir("TST").glob("*.gz"))
        assert len(gz_files) == 4
        assert layout.tile_archive_path("TST").is_file()
        assert layout.thumbnail_path("TST").is_file()

        data = result.to_dict()
        assert data["status"] == "success"
        assert data["config"]["name"] == "Testville"

    def test_missing_content_writes_nothing(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test a rejected package leaves both roots untouched."""
        service = make_service(user_data)
        before = all_files(app_data) + all_files(user_data)

        result = service.import_package(app_data, [], make_package(omit=["buildings_index.json"]))

        assert not result.ok
        assert result.error == "missing_content"
        assert result.missing == ["buildings_index.json"]
        assert result.to_dict()["missing"] == ["buildings_index.json"]
        assert all_files(app_data) + all_files(user_data) == before

    def test_schema_error(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test missing manifest fields are reported by name."""
        manifest = make_manifest()
        del manifest["population"]
        service = make_service(user_data)

        result = service.import_package(app_data, [], make_package(entries=default_entries(manifest)))

        assert not result.ok
        assert result.error == "manifest_schema"
        assert result.missing == ["population"]

    def test_vanilla_collision_writes_nothing(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test a vanilla map code is refused without touching disk."""
        notices: List[tuple] = []

        class Notifier:
            def advise(self, title: str, message: str) -> None:
                notices.append((title, message))

        service = make_service(user_data, notifier=Notifier())
        package = make_package(entries=default_entries(make_manifest(code="NYC")))
        before = all_files(app_data) + all_files(user_data)

        result = service.import_package(app_data, [], package)

        assert not result.ok
        assert result.error == "vanilla_collision"
        assert result.message == "Vanilla map already exists with this code."
        assert len(notices) == 1
        assert all_files(app_data) + all_files(user_data) == before
        assert list(layout.map_dir("NYC").iterdir()) == []

    def test_loaded_code_rejected(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test a code already loaded in the game is refused."""
        service = make_service(user_data)

        result = service.import_package(app_data, ["TST"], make_package())

        assert not result.ok
        assert result.error == "already_loaded"

    def test_second_import_rejected(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test importing the same code twice fails the second time."""
        service = make_service(user_data)

        assert service.import_package(app_data, [], make_package()).ok
        result = service.import_package(app_data, [], make_package())

        assert not result.ok
        assert result.error == "already_loaded"

    def test_thumbnail_generated(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test a missing thumbnail is rendered from a temporary tile server."""
        renderer = FakeRenderer(output=b"<svg>rendered</svg>")
        service = make_service(user_data, renderer=renderer)
        package = make_package(
            entries=default_entries(make_manifest(thumbnailBbox=[1, 2, 3, 4])),
            omit=["thumbnail.svg"],
        )

        result = service.import_package(app_data, [], package)

        assert result.ok
        assert result.thumbnail == layout.thumbnail_path("TST")
        assert layout.thumbnail_path("TST").read_bytes() == b"<svg>rendered</svg>"
        assert len(renderer.calls) == 1

    def test_thumbnail_failure_still_succeeds(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test a renderer failure does not fail the import."""
        service = make_service(user_data, renderer=FakeRenderer(fail=True))
        package = make_package(
            entries=default_entries(make_manifest(thumbnailBbox=[1, 2, 3, 4])),
            omit=["thumbnail.svg"],
        )

        result = service.import_package(app_data, [], package)

        assert result.ok
        assert result.thumbnail is None
        assert not layout.thumbnail_path("TST").exists()

    def test_renderer_exception_still_succeeds(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test an unexpected renderer exception does not fail the import."""
        service = make_service(user_data, renderer=FakeRenderer(error=ValueError("bad bbox")))
        package = make_package(
            entries=default_entries(make_manifest(thumbnailBbox=[1, 2, 3, 4])),
            omit=["thumbnail.svg"],
        )

        result = service.import_package(app_data, [], package)

        assert result.ok
        assert result.thumbnail is None
        assert layout.tile_archive_path("TST").is_file()

    def test_corrupt_entry_rolls_back_and_retry_succeeds(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test a damaged data entry leaves no map behind, so a good package imports afterwards."""
        service = make_service(user_data)
        entries = default_entries()
        entries["roads.geojson"] = b'{"type": "FeatureCollection", "name": "ROADS-MARKER"}'
        package = make_package(entries=entries, compression=zipfile.ZIP_STORED)
        corrupt_entry(package, b"ROADS-MARKER")

        result = service.import_package(app_data, [], package)

        assert not result.ok
        assert result.error == "routing"
        assert not layout.map_dir("TST").exists()
        assert not layout.tile_archive_path("TST").exists()
        assert not layout.thumbnail_path("TST").exists()

        retry = service.import_package(app_data, [], make_package())
        assert retry.ok

    def test_corrupt_manifest_entry(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test a damaged config.json is reported as a parse error."""
        service = make_service(user_data)
        package = make_package(
            entries=default_entries(make_manifest(description="MANIFEST-MARKER")),
            compression=zipfile.ZIP_STORED,
        )
        corrupt_entry(package, b"MANIFEST-MARKER")

        result = service.import_package(app_data, [], package)

        assert not result.ok
        assert result.error == "manifest_parse"

    def test_unsafe_code_rejected(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test codes that would escape cities/data are rejected before anything is written."""
        service = make_service(user_data)
        before = all_files(app_data) + all_files(user_data)

        for code in ["", "../../escaped"]:
            package = make_package(entries=default_entries(make_manifest(code=code)))
            result = service.import_package(app_data, [], package)

            assert not result.ok
            assert result.error == "invalid_code"

        assert all_files(app_data) + all_files(user_data) == before
        assert (layout.cities_data_dir / "NYC").is_dir()
        assert not (app_data / "escaped").exists()


class TestDeleteAndList:
    """Test listing and deleting installed maps."""

    def test_list_installed(self, app_data: Path, user_data: Path, make_package: Callable[..., Path]) -> None:
        """Test only maps with a tile archive are listed."""
        service = make_service(user_data)
        service.import_package(app_data, [], make_package())

        records = service.list_installed(app_data)

        assert [r.code for r in records] == ["TST"]
        assert records[0].thumbnail is not None
        assert service.installed_codes(app_data) == ["TST"]

    def test_delete_removes_everything(self, app_data: Path, user_data: Path, layout, make_package: Callable[..., Path]) -> None:
        """Test delete removes the map directory, tiles and thumbnail."""
        service = make_service(user_data)
        service.import_package(app_data, [], make_package())

        result = service.delete_map("TST", app_data)

        assert result.ok
        assert result.message == "Map deleted successfully!"
        assert not layout.map_dir("TST").exists()
        assert not layout.tile_archive_path("TST").exists()
        assert not layout.thumbnail_path("TST").exists()

    def test_delete_unknown_map(self, app_data: Path, user_data: Path) -> None:
        """Test deleting a map that is not installed reports not found."""
        result = make_service(user_data).delete_map("NOPE", app_data)

        assert not result.ok
        assert result.error == "not_found"
        assert result.message == "Map not found"

    def test_delete_orphan_tile_archive(self, app_data: Path, user_data: Path, layout) -> None:
        """Test an orphaned tile archive is removed but not found is still reported."""
        tile_archive = layout.tile_archive_path("ORP")
        tile_archive.parent.mkdir(parents=True)
        tile_archive.write_bytes(b"tiles")

        result = make_service(user_data).delete_map("ORP", app_data)

        assert not result.ok
        assert result.error == "not_found"
        assert not tile_archive.exists()


    def test_delete_unsafe_code_touches_nothing(self, app_data: Path, user_data: Path, layout) -> None:
        """Test codes that do not name one map folder are reported as not found."""
        service = make_service(user_data)
        before = all_files(app_data) + all_files(user_data)

        for code in ["", ".", "..", "../../escaped", "NYC/.."]:
            result = service.delete_map(code, app_data)

            assert not result.ok
            assert result.error == "not_found"

        assert (layout.cities_data_dir / "NYC").is_dir()
        assert (layout.cities_data_dir / "LON").is_dir()
        assert all_files(app_data) + all_files(user_data) == before

class TestStartGame:
    """Test the launch operation up to process spawning."""

    def test_start_writes_mod_and_launches(self, app_data: Path, user_data: Path, layout) -> None:
        """Test the generated mod is written before the launcher runs."""
        launcher = FakeLauncher()

        class Ports:
            def allocate(self) -> int:
                return 45678

        service = make_service(user_data, launcher=launcher, port_allocator=Ports())
        result = service.start_game("/games/city", app_data, [make_manifest()])

        assert result.ok
        assert result.message == "Game started successfully!"
        assert result.port == 45678
        assert result.session == "session"
        assert launcher.calls == [("/games/city", layout.tile_cache_dir, 45678)]

        config = orjson.loads((layout.mod_dir / "config.json").read_bytes())
        assert config["port"] == 45678
        assert [c["code"] for c in config["cities"]] == ["TST"]
        assert (layout.mod_dir / "index.js").is_file()
        assert (layout.mod_dir / "manifest.json").is_file()

    def test_manifest_without_code(self, app_data: Path, user_data: Path) -> None:
        """Test a selected map without a code fails before launching."""
        launcher = FakeLauncher()
        service = make_service(user_data, launcher=launcher)

        result = service.start_game("/games/city", app_data, [{"name": "No code"}])

        assert not result.ok
        assert result.error == "config_generation"
        assert launcher.calls == []

    def test_view_state_not_an_object(self, app_data: Path, user_data: Path) -> None:
        """Test a list initialViewState is reported instead of escaping as TypeError."""
        launcher = FakeLauncher()
        service = make_service(user_data, launcher=launcher)

        result = service.start_game(
            "/games/city", app_data, [make_manifest(initialViewState=[10.0, 50.0])]
        )

        assert not result.ok
        assert result.error == "config_generation"
        assert launcher.calls == []

    def test_unsafe_selected_code(self, app_data: Path, user_data: Path) -> None:
        """Test a selected map whose code would leave its folder is rejected."""
        launcher = FakeLauncher()
        service = make_service(user_data, launcher=launcher)

        result = service.start_game("/games/city", app_data, [make_manifest(code="../x")])

        assert not result.ok
        assert result.error == "config_generation"
        assert launcher.calls == []

    def test_spawn_failure_reported(self, app_data: Path, user_data: Path) -> None:
        """Test a launcher spawn error becomes an error result."""
        service = make_service(user_data, launcher=FakeLauncher(fail=True))

        result = service.start_game("/games/city", app_data, [make_manifest()])

        assert not result.ok
        assert result.error == "spawn"
        assert result.session is None


class TestWriteLogFile:
    """Test writing caller-supplied log dumps."""

    def test_write_log_file(self, user_data: Path) -> None:
        """Test the message lands in the logs folder under its base name."""
        result = make_service(user_data).write_log_file("line one", "../../renderer.log")

        assert result.ok
        assert result.filepath == user_data / "logs" / "renderer.log"
        assert result.filepath.read_text(encoding="utf-8") == "line one\n"
        assert result.to_dict()["filepath"] == str(result.filepath)
