"""Background image driver registry."""

from .base import ImageDriver
from .fal import FalImageDriver
from .stub import StubImageDriver

__all__ = [
    "FalImageDriver",
    "ImageDriver",
    "StubImageDriver",
]
