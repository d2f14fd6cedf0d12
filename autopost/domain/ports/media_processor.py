"""Outbound port for downloading and re-encoding media."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessedImage:
    buffer: bytes
    width: int
    height: int
    format: str

    @property
    def size(self) -> int:
        return len(self.buffer)


class MediaProcessor(ABC):
    @abstractmethod
    async def fetch(self, url: str) -> bytes:
        """Download a media URL to bytes."""
        ...

    @abstractmethod
    async def process_image(self, data: bytes, platform: str) -> ProcessedImage:
        """
        Re-encode an image for a platform's size and format constraints.

        Args:
            data: Original image bytes
            platform: Lower-case platform name selecting the preset

        Returns:
            ProcessedImage with the encoded buffer
        """
        ...
