"""
Exception hierarchy for maploader.

Components raise these; MapLoaderService converts them into result
objects for the caller.
"""

from typing import List, Optional, Sequence


class MapLoaderError(Exception):
    """Base class for all maploader failures."""

    code = "error"


class ValidationError(MapLoaderError):
    """Map package failed validation before anything was written."""

    code = "validation"


class MissingContent(ValidationError):
    """Archive lacks one or more required entry categories."""

    code = "missing_content"

    def __init__(self, missing: Sequence[str]):
        self.missing: List[str] = list(missing)
        super().__init__(
            "The selected map package is missing the following required files: "
            + ", ".join(self.missing)
        )


class ManifestParseError(ValidationError):
    """Manifest entry is not a valid JSON object."""

    code = "manifest_parse"


class ManifestSchemaError(ValidationError):
    """Manifest parsed but required fields are absent."""

    code = "manifest_schema"

    def __init__(self, missing: Sequence[str]):
        self.missing: List[str] = list(missing)
        super().__init__(
            "The config.json file is missing the following required fields: "
            + ", ".join(self.missing)
        )


class InvalidMapCode(ValidationError):
    """Manifest code cannot be used as a map folder name."""

    code = "invalid_code"

    def __init__(self, map_code: object):
        self.map_code = map_code
        super().__init__(
            f"The map code {map_code!r} is not valid. Codes must be non-empty and "
            "must not contain path separators or be \".\" or \"..\"."
        )


class ConflictError(MapLoaderError):
    """Map code clashes with existing content."""

    code = "conflict"

    def __init__(self, message: str, map_code: str):
        self.map_code = map_code
        super().__init__(message)


class AlreadyLoaded(ConflictError):
    code = "already_loaded"

    def __init__(self, map_code: str):
        super().__init__(
            f"A map with the code {map_code} already exists. Please choose a "
            "different map code or delete the existing map.",
            map_code,
        )


class VanillaCollision(ConflictError):
    code = "vanilla_collision"

    def __init__(self, map_code: str):
        super().__init__("Vanilla map already exists with this code.", map_code)


class RoutingError(MapLoaderError):
    """Reading a package entry or writing it to disk failed."""

    code = "routing"

    def __init__(self, entry_path: str, cause: Exception):
        self.entry_path = entry_path
        self.cause = cause
        super().__init__(f"Error routing {entry_path}: {cause}")


class RenderError(MapLoaderError):
    """External thumbnail renderer failed."""

    code = "render"


class SpawnError(MapLoaderError):
    """An external executable could not be started."""

    code = "spawn"

    def __init__(self, message: str, executable: Optional[str] = None):
        self.executable = executable
        super().__init__(message)


class NotFoundError(MapLoaderError):
    code = "not_found"


class ConfigGenerationError(MapLoaderError):
    """Runtime configuration could not be built from the selected maps."""

    code = "config_generation"
