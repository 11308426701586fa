"""
Map package handling.

Validation, conflict checks, routing of archive entries to disk and the
thumbnail fallback.
"""

from .models import MapManifest, InstalledMapRecord, REQUIRED_CATEGORIES, REQUIRED_MANIFEST_FIELDS
from .archive import MapPackageArchive, ArchiveEntry
from .validator import PackageValidator, ValidatedPackage
from .conflicts import ConflictResolver, VanillaCatalog, Notifier, LoggingNotifier
from .router import FileRouter, RoutingReport
from .thumbnails import ThumbnailProvisioner, ThumbnailRenderer, CommandThumbnailRenderer

__all__ = [
    "MapManifest",
    "InstalledMapRecord",
    "REQUIRED_CATEGORIES",
    "REQUIRED_MANIFEST_FIELDS",
    "MapPackageArchive",
    "ArchiveEntry",
    "PackageValidator",
    "ValidatedPackage",
    "ConflictResolver",
    "VanillaCatalog",
    "Notifier",
    "LoggingNotifier",
    "FileRouter",
    "RoutingReport",
    "ThumbnailProvisioner",
    "ThumbnailRenderer",
    "CommandThumbnailRenderer",
]
