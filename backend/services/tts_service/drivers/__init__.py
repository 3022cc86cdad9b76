"""TTS driver implementations"""

from .base import TTSEngine
from .elevenlabs import ElevenLabsTTSEngine
from .openai_tts import OpenAITTSEngine
from .stub import StubTTSEngine

__all__ = ["ElevenLabsTTSEngine", "OpenAITTSEngine", "StubTTSEngine", "TTSEngine"]
