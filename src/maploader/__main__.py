"""
Main entry point for maploader.
Usage: python -m maploader <command> [options]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson

from . import __version__
from .errors import MapLoaderError
from .packages.thumbnails import CommandThumbnailRenderer
from .service import MapLoaderService
from .settings import AppSettings, ConfigError
from .utils.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maploader",
        description="Import custom maps and launch the game with them.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--profile", default="default", help="Settings profile to use")
    parser.add_argument("--settings-file", type=Path, help="INI settings file to use")
    parser.add_argument(
        "--app-data", type=Path, help="Game app data folder (defaults to the stored setting)"
    )
    parser.add_argument(
        "--gui", action="store_true", help="Use dialogs for folder selection and notices"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import one or more map packages")
    p_import.add_argument("packages", nargs="*", type=Path, help="Map package .zip files")
    p_import.add_argument(
        "--existing", nargs="*", default=[], metavar="CODE", help="Codes already loaded in the game"
    )

    p_delete = sub.add_parser("delete", help="Delete an installed map")
    p_delete.add_argument("code", help="Map code")

    p_start = sub.add_parser("start", help="Start the game with the selected maps")
    p_start.add_argument(
        "manifests", nargs="+", type=Path, help="JSON files holding a map config or a list of them"
    )
    p_start.add_argument("--game", type=Path, help="Game executable (defaults to the stored setting)")
    p_start.add_argument(
        "--detach", action="store_true", help="Return right after launching instead of waiting"
    )

    sub.add_parser("list", help="List installed maps")
    sub.add_parser("check", help="Validate the stored settings")

    return parser


def create_service(settings: AppSettings, gui: bool) -> MapLoaderService:
    renderer = None
    if settings.renderer_command:
        renderer = CommandThumbnailRenderer(settings.renderer_command)

    notifier = None
    if gui:
        from .gui.dialogs import QtNotifier, ensure_application

        ensure_application()
        notifier = QtNotifier()

    return MapLoaderService(
        settings.user_data_path,
        tile_server_binary=settings.tile_server_path,
        renderer=renderer,
        notifier=notifier,
    )


def resolve_app_data(args: argparse.Namespace, settings: AppSettings) -> Optional[Path]:
    """Pick the app data folder from arguments, settings or a dialog."""
    if args.app_data:
        return args.app_data
    if settings.app_data_path:
        return settings.app_data_path
    if not args.gui:
        return None

    from .gui.dialogs import (
        ensure_application,
        pick_app_data_folder,
        qt_folder_chooser,
        show_invalid_folder,
    )

    ensure_application()
    result = pick_app_data_folder(qt_folder_chooser(), show_invalid_folder)
    if result.cancelled or result.path is None:
        return None
    settings.paths.app_data_path = result.path
    return result.path


def resolve_packages(args: argparse.Namespace) -> List[Path]:
    if args.packages:
        return list(args.packages)
    if not args.gui:
        return []

    from .gui.dialogs import ensure_application, pick_map_packages, qt_package_chooser

    ensure_application()
    result = pick_map_packages(qt_package_chooser())
    return [] if result.cancelled else result.paths


def load_manifests(paths: List[Path]) -> List[Dict[str, Any]]:
    manifests: List[Dict[str, Any]] = []
    for path in paths:
        data = orjson.loads(path.read_bytes())
        if isinstance(data, list):
            manifests.extend(data)
        else:
            manifests.append(data)
    return manifests


def print_json(data: Any) -> None:
    print(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8"))


# === COMMANDS ===


def cmd_import(args: argparse.Namespace, settings: AppSettings, service: MapLoaderService) -> int:
    app_data = resolve_app_data(args, settings)
    if app_data is None:
        print("App data folder not set", file=sys.stderr)
        return 1

    packages = resolve_packages(args)
    if not packages:
        print("No map packages selected", file=sys.stderr)
        return 1

    existing = set(args.existing)
    exit_code = 0
    for package in packages:
        result = service.import_package(app_data, existing, package)
        print_json({"package": str(package), **result.to_dict()})
        if result.ok and result.manifest:
            existing.add(result.manifest["code"])
            settings.paths.add_recent_package(package)
        else:
            exit_code = 1
    return exit_code


def cmd_delete(args: argparse.Namespace, settings: AppSettings, service: MapLoaderService) -> int:
    app_data = resolve_app_data(args, settings)
    if app_data is None:
        print("App data folder not set", file=sys.stderr)
        return 1

    result = service.delete_map(args.code, app_data)
    print_json(result.to_dict())
    return 0 if result.ok else 1


def cmd_start(args: argparse.Namespace, settings: AppSettings, service: MapLoaderService) -> int:
    app_data = resolve_app_data(args, settings)
    game = args.game or settings.game_path
    if app_data is None or game is None:
        print("App data folder and game path must be set", file=sys.stderr)
        return 1

    try:
        manifests = load_manifests(args.manifests)
    except (OSError, orjson.JSONDecodeError) as e:
        print(f"Could not read map configs: {e}", file=sys.stderr)
        return 1

    result = service.start_game(game, app_data, manifests)
    if not result.ok or result.session is None:
        print_json(result.to_dict())
        return 1
    print_json({**result.to_dict(), "port": result.port, "pid": result.session.game_pid})

    if not args.detach:
        result.session.wait()
    return 0


def cmd_list(args: argparse.Namespace, settings: AppSettings, service: MapLoaderService) -> int:
    app_data = resolve_app_data(args, settings)
    if app_data is None:
        print("App data folder not set", file=sys.stderr)
        return 1

    for record in service.list_installed(app_data):
        thumbnail = "yes" if record.thumbnail else "no"
        print(f"{record.code}\t{record.tile_archive}\tthumbnail: {thumbnail}")
    return 0


def cmd_check(args: argparse.Namespace, settings: AppSettings, service: MapLoaderService) -> int:
    validation = settings.validate()
    print(f"Settings file: {settings.get_settings_file_path()}")
    for warning in validation.warnings:
        print(f"warning: {warning}")
    for error in validation.errors:
        print(f"error: {error}")
    return 0 if validation.is_valid else 1


COMMANDS = {
    "import": cmd_import,
    "delete": cmd_delete,
    "start": cmd_start,
    "list": cmd_list,
    "check": cmd_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    logger = logging.getLogger(f"{__name__}.main")
    args = build_parser().parse_args(argv)
    try:
        settings = AppSettings(profile=args.profile, settings_file=args.settings_file)
        setup_logging(settings)

        logger.info(f"Starting maploader {__version__} ({args.command})")
        logger.debug(f"Configuration loaded from {settings.get_settings_file_path()}")

        service = create_service(settings, args.gui)
        exit_code = COMMANDS[args.command](args, settings, service)

        if settings.is_first_run:
            settings.set_first_run_complete()
        return exit_code

    except (MapLoaderError, ConfigError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except Exception:
        logger.exception("Unhandled exception in main")
        return 1


if __name__ == "__main__":
    sys.exit(main())
