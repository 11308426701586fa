"""
Map code conflict checks.

A new map must not reuse the code of a loaded map, an installed map or a
map that ships with the game (the vanilla catalog).
"""

import logging
from pathlib import Path
from typing import Any, Collection, FrozenSet, Iterable, Optional, Protocol

import yaml

from ..errors import AlreadyLoaded, VanillaCollision


class Notifier(Protocol):
    """Shows non-blocking advisory notices to the user."""

    def advise(self, title: str, message: str) -> None: ...


class LoggingNotifier:
    """Notifier for headless use: notices go to the log."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def advise(self, title: str, message: str) -> None:
        self.logger.warning(f"{title}: {message}")


class VanillaCatalog:
    """Codes of the maps that ship with the game."""

    def __init__(self, codes: Iterable[str] = ()):
        self._codes: FrozenSet[str] = frozenset(codes)

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    @property
    def codes(self) -> FrozenSet[str]:
        return self._codes

    @classmethod
    def load(cls, catalog_path: Path) -> "VanillaCatalog":
        """Read the game's cities YAML file.

        The file maps ``cities`` to a mapping keyed by map code. A missing
        file yields an empty catalog.
        """
        logger = logging.getLogger(f"{__name__}.VanillaCatalog")
        if not catalog_path.exists():
            logger.warning(f"Vanilla catalog not found: {catalog_path}")
            return cls()

        try:
            with catalog_path.open("r", encoding="utf-8") as f:
                data: Any = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Could not parse vanilla catalog {catalog_path}: {e}")
            return cls()

        cities = data.get("cities") if isinstance(data, dict) else None
        if not isinstance(cities, dict):
            logger.warning(f"Vanilla catalog has no 'cities' mapping: {catalog_path}")
            return cls()

        logger.debug(f"Loaded {len(cities)} vanilla map codes from {catalog_path}")
        return cls(str(code) for code in cities)


class ConflictResolver:
    """Decides whether a map code may be installed."""

    VANILLA_NOTICE_TITLE = "Map already exists"

    def __init__(self, catalog: VanillaCatalog, notifier: Optional[Notifier] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.catalog = catalog
        self.notifier: Notifier = notifier or LoggingNotifier()

    def check(
        self,
        code: str,
        loaded_codes: Collection[str],
        installed_codes: Collection[str] = (),
    ) -> None:
        """Raise a ConflictError if ``code`` may not be installed.

        Comparison is exact and case-sensitive.

        Raises:
            AlreadyLoaded: Code is loaded or already installed
            VanillaCollision: Code belongs to a vanilla map
        """
        self.logger.info(
            f"Checking if map code {code} already exists in cities/data and in currently loaded maps"
        )
        if code in loaded_codes:
            raise AlreadyLoaded(code)

        if code in self.catalog:
            self.logger.info(f"Map code {code} already exists in cities/data.")
            self.notifier.advise(
                self.VANILLA_NOTICE_TITLE,
                f"A vanilla map with the code {code} already exists, and will not be "
                "overwritten. If you really want to install this, you can do so manually "
                "yourself, but know that you may brick the vanilla map.",
            )
            raise VanillaCollision(code)

        if code in installed_codes:
            raise AlreadyLoaded(code)
