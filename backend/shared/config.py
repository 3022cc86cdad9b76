"""
Configuration management for services.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv


class ServiceConfig:
    """Configuration management for services using environment variables."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        # Always load .env from backend directory (where app.py is located)
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.env"))
        load_dotenv(dotenv_path=env_path)
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv(
            "PIPELINE_CONFIG_PATH",
            os.path.join(os.path.dirname(__file__), "../../config/pipeline.yaml"),
        )
        self.load_from_env()
        self.load_pipeline_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "media_root": os.getenv("MEDIA_ROOT", "./generated-videos"),
            "image_provider": os.getenv("IMAGE_PROVIDER", "fal"),
            "tts_provider": os.getenv("TTS_PROVIDER", "elevenlabs"),
            "fal_api_key": os.getenv("FAL_API_KEY"),
            "fal_model_url": os.getenv("FAL_MODEL_URL", "https://fal.run/fal-ai/ideogram/v3"),
            "elevenlabs_api_key": os.getenv("ELEVENLABS_API_KEY"),
            "elevenlabs_voice_id": os.getenv("ELEVENLABS_VOICE_ID", "pNInz6obpgDQGcFmaJgB"),
            "elevenlabs_model": os.getenv("ELEVENLABS_MODEL", "eleven_multilingual_v2"),
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "openai_tts_voice": os.getenv("OPENAI_TTS_VOICE", "alloy"),
            "openai_tts_model": os.getenv("OPENAI_TTS_MODEL", "tts-1"),
            "provider_timeout": int(os.getenv("PROVIDER_TIMEOUT", "30")),
            "download_timeout": int(os.getenv("DOWNLOAD_TIMEOUT", "15")),
            "provider_concurrency": int(os.getenv("PROVIDER_CONCURRENCY", "3")),
            "job_retention_hours": float(os.getenv("JOB_RETENTION_HOURS", "24")),
            "retention_sweep_interval": int(os.getenv("RETENTION_SWEEP_INTERVAL_SECONDS", "3600")),
            "ffmpeg_binary": os.getenv("FFMPEG_BINARY", "ffmpeg"),
            "ffprobe_binary": os.getenv("FFPROBE_BINARY", "ffprobe"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "allowed_origins": json.loads(
                os.getenv("ALLOWED_ORIGINS", '["http://localhost:4321", "http://127.0.0.1:4321"]')
            ),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def reload(self) -> None:
        """Reload configuration from environment variables."""
        self.load_from_env()
        self.load_pipeline_config()

    def load_pipeline_config(self) -> None:
        """Load pipeline configuration from YAML file."""
        path = os.path.abspath(self.pipeline_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.pipeline_config = data

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a pipeline configuration value via dotted path."""
        env_override_key = f"PIPELINE_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


# Global configuration instance
config = ServiceConfig()
