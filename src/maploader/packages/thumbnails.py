"""
Thumbnail fallback for packages that ship without a preview image.

When the manifest declares ``thumbnailBbox`` and the package has no SVG,
a short-lived tile server is started on the tile cache and an external
renderer draws the preview from it. This is best effort: every failure is
logged and the import carries on without a thumbnail.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import orjson

from ..errors import MapLoaderError, RenderError
from ..layout import MapLoaderLayout
from ..runtime.ports import PortAllocator
from ..runtime.tile_server import DEFAULT_STOP_TIMEOUT, TileServerFactory
from .models import MapManifest


class ThumbnailRenderer(Protocol):
    """Draws a map preview from tiles served on localhost."""

    def render(self, code: str, manifest: MapManifest, port: int) -> bytes: ...


class CommandThumbnailRenderer:
    """Runs an external renderer command.

    The command is called as ``<command> <code> <port>`` with the manifest
    JSON on stdin and must print the SVG document on stdout.
    """

    def __init__(self, command: str | Sequence[str], timeout: float = 120.0):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.command: List[str] = [command] if isinstance(command, str) else list(command)
        self.timeout = timeout

    def render(self, code: str, manifest: MapManifest, port: int) -> bytes:
        args = [*self.command, code, str(port)]
        self.logger.debug(f"Running thumbnail renderer: {args}")
        try:
            completed = subprocess.run(
                args,
                input=orjson.dumps(manifest.to_dict()),
                capture_output=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RenderError(f"Thumbnail renderer failed: {e}") from e

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            raise RenderError(
                f"Thumbnail renderer exited with code {completed.returncode}: {stderr}"
            )
        if not completed.stdout.strip():
            raise RenderError("Thumbnail renderer produced no output")
        return completed.stdout


class ThumbnailProvisioner:
    """Generates a missing thumbnail with an ephemeral tile server."""

    def __init__(
        self,
        layout: MapLoaderLayout,
        renderer: ThumbnailRenderer,
        tile_server_factory: TileServerFactory,
        port_allocator: Optional[PortAllocator] = None,
        ready_timeout: float = 10.0,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.layout = layout
        self.renderer = renderer
        self.tile_server_factory = tile_server_factory
        self.port_allocator = port_allocator or PortAllocator()
        self.ready_timeout = ready_timeout
        self.stop_timeout = stop_timeout

    @staticmethod
    def needed(manifest: MapManifest, thumbnail_found: bool) -> bool:
        return manifest.thumbnail_bbox is not None and not thumbnail_found

    def provision(self, manifest: MapManifest) -> Optional[Path]:
        """Render and store ``<code>.svg``.

        Returns:
            Path of the written thumbnail, or None if anything failed
        """
        self.logger.info("No thumbnail found, generating one using the bbox in config.json")
        try:
            port = self.port_allocator.allocate()
            server = self.tile_server_factory(self.layout.tile_cache_dir, port)
            server.start()
        except (MapLoaderError, OSError) as e:
            self.logger.error(f"Error generating thumbnail: {e}")
            return None

        try:
            if not server.wait_ready(timeout=self.ready_timeout):
                self.logger.error("Error generating thumbnail: tile server did not come up")
                return None
            svg = self.renderer.render(manifest.code, manifest, port)
            destination = self.layout.thumbnail_path(manifest.code)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(svg)
            self.logger.info("Finished writing generated thumbnail")
            return destination
        except (MapLoaderError, OSError) as e:
            self.logger.error(f"Error generating thumbnail: {e}")
            return None
        except Exception:
            self.logger.exception("Error generating thumbnail")
            return None
        finally:
            server.stop(timeout=self.stop_timeout)
