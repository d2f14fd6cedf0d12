"""
Media download and re-encoding with httpx and Pillow.

Images are cropped to fill the platform's target box ("cover"), never
enlarged, and re-encoded as JPEG. Pillow work runs in a worker thread so
it does not block the event loop.
"""

import asyncio
import io
from dataclasses import dataclass

import httpx
import structlog
from PIL import Image, ImageOps

from ...domain.ports import MediaProcessor, ProcessedImage

logger = structlog.get_logger()


@dataclass(frozen=True)
class ImagePreset:
    width: int | None = None
    height: int | None = None
    quality: int = 85


PLATFORM_PRESETS: dict[str, ImagePreset] = {
    "facebook": ImagePreset(width=1200, height=630, quality=85),
    "instagram": ImagePreset(width=1080, height=1080, quality=90),
    "linkedin": ImagePreset(width=1200, height=627, quality=85),
}

DEFAULT_PRESET = ImagePreset(quality=85)


class MediaProcessingError(Exception):
    """Raised when downloaded bytes cannot be decoded or re-encoded."""


class HttpMediaProcessor(MediaProcessor):
    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    async def fetch(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            data = response.content

        logger.debug("Media downloaded", url=url, size=len(data))
        return data

    async def process_image(self, data: bytes, platform: str) -> ProcessedImage:
        preset = PLATFORM_PRESETS.get(platform.lower(), DEFAULT_PRESET)
        processed = await asyncio.to_thread(_render, data, preset)
        logger.debug(
            "Image processed",
            platform=platform,
            width=processed.width,
            height=processed.height,
            size=processed.size,
        )
        return processed


def _render(data: bytes, preset: ImagePreset) -> ProcessedImage:
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            if image.mode != "RGB":
                image = image.convert("RGB")

            if preset.width and preset.height:
                image = _cover(image, preset.width, preset.height)

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=preset.quality, optimize=True)
    except (OSError, ValueError) as e:
        raise MediaProcessingError(f"Image processing failed: {e}") from e

    return ProcessedImage(
        buffer=buffer.getvalue(),
        width=image.width,
        height=image.height,
        format="jpeg",
    )


def _cover(image: Image.Image, width: int, height: int) -> Image.Image:
    """Center-crop to the target box, scaling down only."""
    box = (min(width, image.width), min(height, image.height))
    if box == image.size:
        return image
    return ImageOps.fit(image, box, Image.Resampling.LANCZOS)
