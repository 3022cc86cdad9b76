"""Fal.ai Ideogram v3 background provider."""

from __future__ import annotations

import asyncio
import os

from shared.exceptions import ProviderError
from shared.file_utils import ensure_directory
from shared.http_client import AsyncHTTPClient
from shared.logging_utils import setup_logging

from .base import ImageDriver

logger = setup_logging("fal-image-driver")

FAL_IDEOGRAM_URL = "https://fal.run/fal-ai/ideogram/v3"


class FalImageDriver(ImageDriver):
    """Generate vertical backgrounds through Fal.ai and store them locally."""

    name = "Ideogram v3"

    def __init__(
        self,
        api_key: str,
        model_url: str = FAL_IDEOGRAM_URL,
        timeout: int = 30,
        download_timeout: int = 15,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        if not api_key:
            raise ValueError("FAL_API_KEY is required for the Fal.ai driver")
        self.api_key = api_key
        self.model_url = model_url
        self.timeout = timeout
        self.download_timeout = download_timeout

    async def generate(self, prompt: str, output_dir: str, filename: str) -> str:
        payload = {
            "prompt": prompt,
            "image_size": "portrait_16_9",
            "num_images": 1,
            "expand_prompt": True,
            "rendering_speed": "BALANCED",
            "style": "DESIGN",
        }
        headers = {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info("Generating image for: %s", filename)
        async with AsyncHTTPClient(provider=self.name, timeout=self.timeout) as client:
            data = await client.post_json(self.model_url, data=payload, headers=headers)
            images = data.get("images") or []
            if not images:
                raise ProviderError(self.name, "No images generated")
            image_url = images[0].get("url") if isinstance(images[0], dict) else None
            if not image_url:
                raise ProviderError(self.name, "Invalid image response")
            content = await client.get_bytes(image_url, timeout=self.download_timeout)

        ensure_directory(output_dir)
        output_path = os.path.join(output_dir, f"{filename}.jpg")
        await asyncio.to_thread(self.save_normalized, content, output_path)

        logger.info("Image saved: %s", output_path)
        return output_path
