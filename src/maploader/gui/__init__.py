"""
Qt dialogs used by maploader: folder and package pickers and advisory
notices.
"""

from .dialogs import (
    PickResult,
    QtNotifier,
    pick_app_data_folder,
    pick_map_packages,
)

__all__ = [
    "PickResult",
    "QtNotifier",
    "pick_app_data_folder",
    "pick_map_packages",
]
