import os
from typing import Any

from shared.exceptions import ProviderError
from shared.file_utils import ensure_directory
from shared.http_client import AsyncHTTPClient
from shared.logging_utils import setup_logging

from .base import TTSEngine

logger = setup_logging("elevenlabs-tts")

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"


class ElevenLabsTTSEngine(TTSEngine):
    """ElevenLabs text-to-speech over its REST API."""

    name = "ElevenLabs"

    def __init__(
        self,
        api_key: str,
        voice_id: str = "pNInz6obpgDQGcFmaJgB",
        model_id: str = "eleven_multilingual_v2",
        timeout: int = 30,
        api_base: str = ELEVENLABS_API_BASE,
    ) -> None:
        """
        Initialize ElevenLabs engine.

        Args:
            api_key: ElevenLabs API key
            voice_id: Voice used for every segment
            model_id: Synthesis model
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("ELEVENLABS_API_KEY is required for the ElevenLabs driver")
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

    async def synthesize(self, text: str, output_dir: str, filename: str) -> dict[str, Any]:
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.8,
                "style": 0.3,
                "use_speaker_boost": True,
            },
        }

        logger.info("Generating audio for: %s", filename)
        async with AsyncHTTPClient(provider=self.name, timeout=self.timeout) as client:
            audio = await client.post_for_bytes(
                f"{self.api_base}/text-to-speech/{self.voice_id}",
                data=payload,
                headers=self._headers(),
            )

        if not audio:
            raise ProviderError(self.name, "Empty audio response")

        ensure_directory(output_dir)
        file_path = os.path.join(output_dir, f"{filename}.mp3")
        with open(file_path, "wb") as f:
            f.write(audio)

        logger.info("Audio saved: %s", file_path)
        return {
            "file_path": file_path,
            "output_format": "mp3",
            "voice_used": self.voice_id,
            "file_size": len(audio),
        }
