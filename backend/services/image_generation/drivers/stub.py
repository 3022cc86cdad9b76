"""Stub background provider producing deterministic gradients."""

from __future__ import annotations

import hashlib
import os

from PIL import Image, ImageOps

from shared.file_utils import ensure_directory

from .base import ImageDriver


class StubImageDriver(ImageDriver):
    """Render a two-color gradient derived from the prompt; no network access."""

    name = "stub-image"

    @staticmethod
    def _palette(prompt: str) -> tuple[tuple[int, int, int], tuple[int, int, int]]:
        digest = hashlib.md5(prompt.encode()).digest()
        return (digest[0], digest[1], digest[2]), (digest[3], digest[4], digest[5])

    async def generate(self, prompt: str, output_dir: str, filename: str) -> str:
        dark, light = self._palette(prompt)
        gradient = Image.linear_gradient("L").resize((self.width, self.height))
        image = ImageOps.colorize(gradient, black=dark, white=light)

        ensure_directory(output_dir)
        output_path = os.path.join(output_dir, f"{filename}.jpg")
        self.save_normalized(image, output_path)
        return output_path
