from abc import ABC, abstractmethod
from typing import Any, ClassVar


class TTSEngine(ABC):
    """Abstract base class for TTS engines."""

    name: ClassVar[str] = "tts"

    @abstractmethod
    async def synthesize(self, text: str, output_dir: str, filename: str) -> dict[str, Any]:
        """
        Synthesize ``text`` into ``<output_dir>/<filename>.<ext>``.

        Returns a dict with at least ``file_path``; drivers that know the exact
        length of what they wrote may also return ``duration`` in seconds.
        Raises ProviderError on upstream failure.
        """
