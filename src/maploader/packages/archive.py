"""
Read access to map package archives.

A map package is a zip file. MapPackageArchive lists its file entries in
archive order and opens them as binary streams; it never extracts
anything by itself.
"""

import logging
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple

from ..errors import ValidationError

# Errors raised while reading a damaged entry
ARCHIVE_READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error)


@dataclass(frozen=True)
class ArchiveEntry:
    """A file inside a map package."""

    path: str
    size: int

    def has_extension(self, extension: str | Tuple[str, ...]) -> bool:
        return self.path.endswith(extension)


class MapPackageArchive:
    """Opened map package.

    Use as a context manager so the underlying zip file is closed once
    the import is done.
    """

    def __init__(self, package_path: str | Path):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.package_path = Path(package_path)
        try:
            self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(self.package_path, "r")
        except zipfile.BadZipFile as e:
            raise ValidationError(
                f"The selected file is not a valid map package: {self.package_path.name}"
            ) from e

        # Directory entries carry no content
        self._entries: List[ArchiveEntry] = [
            ArchiveEntry(path=info.filename, size=info.file_size)
            for info in self._zip.infolist()
            if not info.is_dir()
        ]
        self.logger.debug(
            f"Opened {self.package_path} with {len(self._entries)} entries"
        )

    def __enter__(self) -> "MapPackageArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def open(self, entry: ArchiveEntry) -> IO[bytes]:
        """Open an entry for streaming reads."""
        if self._zip is None:
            raise ValueError("Archive is closed")
        return self._zip.open(entry.path, "r")

    def read(self, entry: ArchiveEntry) -> bytes:
        with self.open(entry) as stream:
            return stream.read()

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
