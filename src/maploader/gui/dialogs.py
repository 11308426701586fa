"""
Picker dialogs and notices for maploader.

The selection loops are plain functions over a ``chooser`` callable so
they work with Qt's native dialogs as well as with scripted choosers.
A chooser returns the selected path(s), or None when the user cancels.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from PySide6.QtWidgets import QApplication, QFileDialog, QMessageBox, QWidget

from ..settings.validation import APP_DATA_MARKERS, is_app_data_folder

logger = logging.getLogger(__name__)

FolderChooser = Callable[[], Optional[str]]
FilesChooser = Callable[[], Optional[Sequence[str]]]

PACKAGE_EXTENSION = ".zip"

INVALID_FOLDER_TITLE = "Incorrect Folder"
INVALID_FOLDER_MESSAGE = (
    "The folder you selected does not appear to be a valid game data folder. "
    "Make sure you're selecting a folder that contains "
    + " and ".join(f"'{m}'" for m in APP_DATA_MARKERS)
    + "."
)


@dataclass
class PickResult:
    """Outcome of a picker: either cancelled or a list of paths."""

    cancelled: bool
    paths: List[Path] = field(default_factory=list)

    @classmethod
    def succeeded(cls, paths: Sequence[Path]) -> "PickResult":
        return cls(cancelled=False, paths=list(paths))

    @classmethod
    def user_cancelled(cls) -> "PickResult":
        return cls(cancelled=True)

    @property
    def path(self) -> Optional[Path]:
        return self.paths[0] if self.paths else None


def pick_app_data_folder(
    chooser: FolderChooser,
    on_invalid: Callable[[Path], None],
) -> PickResult:
    """Ask for the game's app data folder until a valid one is chosen.

    Args:
        chooser: Shows the folder dialog
        on_invalid: Called with each rejected folder before asking again
    """
    while True:
        selected = chooser()
        if not selected:
            logger.info("Folder selection cancelled")
            return PickResult.user_cancelled()

        folder = Path(selected)
        if is_app_data_folder(folder):
            logger.info(f"Selected app data folder: {folder}")
            return PickResult.succeeded([folder])

        logger.warning(f"Rejected app data folder: {folder}")
        on_invalid(folder)


def pick_map_packages(chooser: FilesChooser) -> PickResult:
    """Ask for one or more map package files."""
    selected = chooser()
    if not selected:
        logger.info("Map package selection cancelled")
        return PickResult.user_cancelled()
    packages = [Path(p) for p in selected if Path(p).suffix.lower() == PACKAGE_EXTENSION]
    if not packages:
        logger.warning("No map packages among the selected files")
        return PickResult.user_cancelled()
    return PickResult.succeeded(packages)


# === QT IMPLEMENTATIONS ===


def ensure_application() -> QApplication:
    """Return the running QApplication, creating one if needed."""
    app = QApplication.instance()
    if not isinstance(app, QApplication):
        app = QApplication([])
    return app


def qt_folder_chooser(
    parent: Optional[QWidget] = None, initial_dir: Optional[Path] = None
) -> FolderChooser:
    def choose() -> Optional[str]:
        selected = QFileDialog.getExistingDirectory(
            parent,
            "Select Game Data Folder",
            str(initial_dir or Path.home()),
            QFileDialog.Option.ShowDirsOnly | QFileDialog.Option.DontResolveSymlinks,
        )
        return selected or None

    return choose


def qt_package_chooser(parent: Optional[QWidget] = None) -> FilesChooser:
    def choose() -> Optional[Sequence[str]]:
        files, _ = QFileDialog.getOpenFileNames(
            parent, "Select Map Packages", str(Path.home()), "Map Packages (*.zip)"
        )
        return files or None

    return choose


def show_invalid_folder(folder: Path, parent: Optional[QWidget] = None) -> None:
    QMessageBox.critical(
        parent, INVALID_FOLDER_TITLE, f"{INVALID_FOLDER_MESSAGE}\n\nSelected: {folder}"
    )


class QtNotifier:
    """Shows advisory notices as warning message boxes."""

    def __init__(self, parent: Optional[QWidget] = None):
        self.parent = parent

    def advise(self, title: str, message: str) -> None:
        logger.warning(f"{title}: {message}")
        QMessageBox.warning(self.parent, title, message)
