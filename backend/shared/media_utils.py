"""
Media helpers: duration probing, duration estimates, placeholder audio.
"""

import asyncio
import math
import wave
from pathlib import Path

from shared.file_utils import ensure_directory
from shared.logging_utils import setup_logging

logger = setup_logging("media-utils")


async def probe_duration(path: str | Path, ffprobe_binary: str = "ffprobe") -> float | None:
    """Return the decoded duration of a media file in seconds, or None if it cannot be read."""
    try:
        process = await asyncio.create_subprocess_exec(
            ffprobe_binary,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, _ = await process.communicate()
    except (FileNotFoundError, PermissionError) as exc:
        logger.debug("ffprobe unavailable (%s), cannot probe %s", exc, path)
        return None

    if process.returncode != 0:
        logger.debug("ffprobe exited with %s for %s", process.returncode, path)
        return None

    try:
        duration = float(stdout.decode().strip())
    except ValueError:
        return None
    return duration if duration > 0 else None


def estimate_speech_duration(text: str, words_per_minute: int = 150) -> float:
    """Rough spoken length of ``text``; never less than one second."""
    words = len(text.split())
    minutes = words / words_per_minute
    return float(max(1, math.ceil(minutes * 60)))


def write_silent_wav(path: str | Path, duration_seconds: float, sample_rate: int = 16000) -> None:
    duration_seconds = max(duration_seconds, 0.1)
    total_frames = int(sample_rate * duration_seconds)
    ensure_directory(Path(path).parent)

    with wave.open(str(path), "w") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(sample_rate)
        wf.writeframes(b"\x00\x00" * total_frames)


def seconds_to_frames(seconds: float, fps: int) -> int:
    """Convert seconds to a whole frame count (rounded)."""
    return int(round(seconds * fps))
