"""Base classes for background image providers."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import ClassVar

from PIL import Image, ImageOps, UnidentifiedImageError

from shared.exceptions import ProviderError


class ImageDriver(ABC):
    """Abstract provider that turns a text prompt into a local image file."""

    name: ClassVar[str] = "image"

    def __init__(self, width: int = 1080, height: int = 1920, quality: int = 85) -> None:
        self.width = width
        self.height = height
        self.quality = quality

    @abstractmethod
    async def generate(self, prompt: str, output_dir: str, filename: str) -> str:
        """Write ``<output_dir>/<filename>.jpg`` and return its path."""

    def save_normalized(self, data: bytes | Image.Image, output_path: str) -> None:
        """Center-crop to the target frame size and save as JPEG."""
        try:
            image = data if isinstance(data, Image.Image) else Image.open(io.BytesIO(data))
            image = ImageOps.fit(image.convert("RGB"), (self.width, self.height), centering=(0.5, 0.5))
        except (UnidentifiedImageError, OSError) as exc:
            raise ProviderError(self.name, f"Unreadable image data: {exc}") from exc
        image.save(output_path, format="JPEG", quality=self.quality)
