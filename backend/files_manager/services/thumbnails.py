"""Thumbnail rendering for image records.

Each thumbnail is written next to the original as ``<local_path>_<width>``,
which is the path content delivery resolves for ``?size=<width>``.
"""
import asyncio
import io
import logging
from typing import Sequence

from PIL import Image as PILImage

from files_manager.services.file_storage import FileStorageService

logger = logging.getLogger(__name__)


def thumbnail_path(local_path: str, width: int) -> str:
    return f"{local_path}_{width}"


def render_thumbnail(source: bytes, width: int) -> bytes:
    """Scale ``source`` to ``width`` pixels wide, keeping the aspect ratio."""
    with PILImage.open(io.BytesIO(source)) as img:
        fmt = img.format or "PNG"
        height = max(1, round(img.height * width / img.width))
        resized = img.resize((width, height))
        buffer = io.BytesIO()
        resized.save(buffer, format=fmt)
        return buffer.getvalue()


async def generate_thumbnails(
    blobs: FileStorageService, local_path: str, widths: Sequence[int]
) -> list[str]:
    """Render and store one thumbnail per width. Returns the written paths.

    Re-running overwrites existing thumbnails, so duplicate job delivery is
    harmless.
    """
    source = await blobs.read(local_path)
    written = []
    for width in widths:
        data = await asyncio.to_thread(render_thumbnail, source, width)
        path = thumbnail_path(local_path, width)
        await blobs.write(path, data)
        written.append(path)
        logger.debug(f"Wrote thumbnail {path} ({len(data)} bytes)")
    return written
