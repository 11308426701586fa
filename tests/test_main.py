"""Tests for the command line entry point."""

import sys
from pathlib import Path
from typing import Callable, List

import orjson
import pytest

from conftest import HELPERS_DIR, make_manifest


@pytest.fixture
def cli(tmp_path: Path, user_data: Path, restore_root_logger) -> Callable[..., int]:
    """Run ``main`` against a throwaway settings file."""
    from maploader.__main__ import main
    from maploader.settings import AppSettings

    settings_file = tmp_path / "cli.ini"
    settings = AppSettings(settings_file=settings_file)
    settings.paths.user_data_path = user_data
    settings.paths.tile_server_path = str(HELPERS_DIR / "fake_pmtiles.py")
    settings.sync()

    def run(*args: str) -> int:
        return main(["--settings-file", str(settings_file), *args])

    return run


class TestCommands:
    """Test each subcommand."""

    def test_import_and_list(self, cli, app_data: Path, layout, make_package, capsys) -> None:
        """Test import installs a map that list then shows."""
        assert cli("--app-data", str(app_data), "import", str(make_package())) == 0
        output = capsys.readouterr().out
        assert '"status": "success"' in output
        assert layout.tile_archive_path("TST").is_file()

        assert cli("--app-data", str(app_data), "list") == 0
        assert capsys.readouterr().out.startswith("TST\t")

    def test_import_failure_exit_code(self, cli, app_data: Path, make_package) -> None:
        """Test a rejected package makes the command fail."""
        package = make_package(omit=["tiles.pmtiles"])
        assert cli("--app-data", str(app_data), "import", str(package)) == 1

    def test_import_without_app_data(self, cli, make_package) -> None:
        """Test import refuses to run without an app data folder."""
        assert cli("import", str(make_package())) == 1

    def test_delete(self, cli, app_data: Path, layout, make_package, capsys) -> None:
        """Test delete removes an imported map and reports unknown ones."""
        cli("--app-data", str(app_data), "import", str(make_package()))

        assert cli("--app-data", str(app_data), "delete", "TST") == 0
        assert not layout.map_dir("TST").exists()
        assert cli("--app-data", str(app_data), "delete", "TST") == 1
        assert "Map not found" in capsys.readouterr().out

    def test_start_requires_game(self, cli, app_data: Path, tmp_path: Path) -> None:
        """Test start fails when no game path is known."""
        manifests = tmp_path / "maps.json"
        manifests.write_bytes(orjson.dumps([make_manifest()]))

        assert cli("--app-data", str(app_data), "start", str(manifests)) == 1

    def test_start_unreadable_manifests(self, cli, app_data: Path, tmp_path: Path) -> None:
        """Test start fails on a manifest file that is not JSON."""
        manifests = tmp_path / "maps.json"
        manifests.write_text("not json", encoding="utf-8")

        assert cli(
            "--app-data", str(app_data), "start", str(manifests), "--game", sys.executable
        ) == 1

    def test_check(self, cli, capsys) -> None:
        """Test check prints the settings file and the validation outcome."""
        exit_code = cli("check")

        output = capsys.readouterr().out
        assert "Settings file:" in output
        assert "warning: Game path not set" in output
        assert exit_code == 0


def test_load_manifests(tmp_path: Path) -> None:
    """Test manifest files may hold one map or a list of maps."""
    from maploader.__main__ import load_manifests

    single = tmp_path / "one.json"
    single.write_bytes(orjson.dumps(make_manifest(code="ONE")))
    many = tmp_path / "many.json"
    many.write_bytes(orjson.dumps([make_manifest(code="TWO"), make_manifest(code="THR")]))

    loaded: List[dict] = load_manifests([single, many])
    assert [m["code"] for m in loaded] == ["ONE", "TWO", "THR"]
