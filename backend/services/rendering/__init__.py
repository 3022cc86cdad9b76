"""Video renderers."""

from .base import ProgressCallback, Renderer
from .ffmpeg import FFmpegRenderer

__all__ = [
    "FFmpegRenderer",
    "ProgressCallback",
    "Renderer",
]
