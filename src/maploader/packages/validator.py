"""
Map package validation.

Checks that a package carries every required file and that its manifest
parses and names every required field. Nothing is written to disk here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

import orjson

from ..errors import InvalidMapCode, ManifestParseError, ManifestSchemaError, MissingContent
from ..layout import is_safe_map_code
from .archive import ARCHIVE_READ_ERRORS, ArchiveEntry, MapPackageArchive
from .models import (
    MANIFEST_ENTRY,
    REQUIRED_CATEGORIES,
    REQUIRED_FILES,
    REQUIRED_MANIFEST_FIELDS,
    THUMBNAIL_EXTENSION,
    TILE_ARCHIVE_EXTENSION,
    TILES_CATEGORY,
    MapManifest,
)


@dataclass
class ScanResult:
    """What a single pass over the archive entries found."""

    found: Set[str]
    manifest_entry: Optional[ArchiveEntry]
    thumbnail_found: bool

    @property
    def missing(self) -> List[str]:
        return [c for c in REQUIRED_CATEGORIES if c not in self.found]


@dataclass
class ValidatedPackage:
    """A package that passed validation, ready for routing."""

    manifest: MapManifest
    thumbnail_found: bool


class PackageValidator:
    """Validates map package contents and manifest."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @staticmethod
    def categorize(entry: ArchiveEntry) -> Optional[str]:
        """Return the required category an entry satisfies, if any."""
        if entry.path in REQUIRED_FILES:
            return entry.path
        if entry.has_extension(TILE_ARCHIVE_EXTENSION):
            return TILES_CATEGORY
        return None

    def scan(self, archive: MapPackageArchive) -> ScanResult:
        """Scan entries once, stopping early when nothing is left to find."""
        found: Set[str] = set()
        manifest_entry: Optional[ArchiveEntry] = None
        thumbnail_found = False

        for entry in archive:
            category = self.categorize(entry)
            if category is not None:
                found.add(category)
                if category == MANIFEST_ENTRY:
                    manifest_entry = entry
            elif entry.has_extension(THUMBNAIL_EXTENSION):
                thumbnail_found = True

            if thumbnail_found and len(found) == len(REQUIRED_CATEGORIES):
                break

        return ScanResult(
            found=found, manifest_entry=manifest_entry, thumbnail_found=thumbnail_found
        )

    @staticmethod
    def parse_manifest(raw: bytes) -> Dict[str, Any]:
        """Parse manifest bytes into a mapping.

        Raises:
            ManifestParseError: If the bytes are not a JSON object
        """
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise ManifestParseError(f"Error parsing {MANIFEST_ENTRY}: {e}") from e
        if not isinstance(data, dict):
            raise ManifestParseError(
                f"Error parsing {MANIFEST_ENTRY}: expected an object, got {type(data).__name__}"
            )
        return data

    @staticmethod
    def check_fields(data: Dict[str, Any]) -> None:
        """Raise ManifestSchemaError listing every missing required field.

        A code that is present but unusable as a folder name raises
        InvalidMapCode.
        """
        missing = [f for f in REQUIRED_MANIFEST_FIELDS if f not in data]
        if missing:
            raise ManifestSchemaError(missing)
        if not is_safe_map_code(data["code"]):
            raise InvalidMapCode(data["code"])

    def validate(self, archive: MapPackageArchive) -> ValidatedPackage:
        """Validate a package.

        Raises:
            MissingContent: Required entries are absent
            ManifestParseError: config.json is malformed
            ManifestSchemaError: config.json lacks required fields
            InvalidMapCode: The code cannot be used as a folder name
        """
        scan = self.scan(archive)
        if scan.missing:
            self.logger.warning(
                f"{archive.package_path.name} is missing required entries: {scan.missing}"
            )
            raise MissingContent(scan.missing)

        if scan.manifest_entry is None:
            raise MissingContent([MANIFEST_ENTRY])
        try:
            raw = archive.read(scan.manifest_entry)
        except ARCHIVE_READ_ERRORS as e:
            raise ManifestParseError(f"Error reading {MANIFEST_ENTRY}: {e}") from e
        data = self.parse_manifest(raw)
        self.check_fields(data)

        manifest = MapManifest.from_dict(data)
        self.logger.info(
            f"Validated map package {archive.package_path.name} (code: {manifest.code})"
        )
        return ValidatedPackage(manifest=manifest, thumbnail_found=scan.thumbnail_found)
