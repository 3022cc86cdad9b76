import os
from typing import Any, ClassVar

import openai
from openai import AsyncOpenAI

from shared.exceptions import ProviderError
from shared.file_utils import ensure_directory

from .base import TTSEngine


class OpenAITTSEngine(TTSEngine):
    """OpenAI TTS implementation using their text-to-speech API."""

    name = "OpenAI TTS"

    SUPPORTED_MODELS: ClassVar[list[str]] = ["tts-1", "tts-1-hd"]
    SUPPORTED_VOICES: ClassVar[list[str]] = ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]

    def __init__(self, api_key: str, voice: str = "alloy", model: str = "tts-1", timeout: int = 30):
        """
        Initialize OpenAI TTS engine.

        Args:
            api_key: OpenAI API key
            voice: Voice to use (alloy, echo, fable, onyx, nova, shimmer)
            model: TTS model to use ("tts-1" or "tts-1-hd")
        """
        if not api_key:
            raise ValueError("OPENAI_API_KEY is required for the OpenAI TTS driver")
        self.voice = voice if voice in self.SUPPORTED_VOICES else "alloy"
        self.model = model if model in self.SUPPORTED_MODELS else "tts-1"
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def synthesize(self, text: str, output_dir: str, filename: str) -> dict[str, Any]:
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                response_format="mp3",
            )
        except openai.APIStatusError as e:
            raise ProviderError(self.name, e.message, status=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError(self.name, str(e)) from e

        ensure_directory(output_dir)
        file_path = os.path.join(output_dir, f"{filename}.mp3")
        content = response.content
        with open(file_path, "wb") as f:
            f.write(content)

        return {
            "file_path": file_path,
            "output_format": "mp3",
            "voice_used": self.voice,
            "model": self.model,
            "file_size": len(content),
        }
