"""Offline TTS driver that writes silent audio of the estimated spoken length."""

from __future__ import annotations

import os
from typing import Any

from shared.media_utils import estimate_speech_duration, write_silent_wav

from .base import TTSEngine


class StubTTSEngine(TTSEngine):
    """Generate deterministic placeholder narration without external services."""

    name = "stub-tts"

    def __init__(self, words_per_minute: int = 150) -> None:
        self.words_per_minute = words_per_minute

    async def synthesize(self, text: str, output_dir: str, filename: str) -> dict[str, Any]:
        duration = estimate_speech_duration(text, self.words_per_minute)
        file_path = os.path.join(output_dir, f"{filename}.wav")
        write_silent_wav(file_path, duration)
        return {
            "file_path": file_path,
            "output_format": "wav",
            "duration": duration,
            "file_size": os.path.getsize(file_path),
        }
