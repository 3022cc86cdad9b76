"""Scene timing derived from narration durations."""

from __future__ import annotations

from shared.media_utils import seconds_to_frames
from shared.models import NarrationAudio, SceneTiming

DEFAULT_TIMER_SECONDS = 3.0
DEFAULT_INTRO_SECONDS = 3.0
DEFAULT_OUTRO_SECONDS = 4.0


def calculate_scene_timing(
    audio_files: NarrationAudio,
    timer_seconds: float = DEFAULT_TIMER_SECONDS,
    default_intro: float = DEFAULT_INTRO_SECONDS,
    default_outro: float = DEFAULT_OUTRO_SECONDS,
) -> SceneTiming:
    """
    Map each narration clip to the duration of its scene.

    Question and answer durations are taken as-is. A missing intro or outro
    clip falls back to the given default. The timer applies once per
    question but is reported once.
    """
    return SceneTiming(
        intro=audio_files.intro.duration if audio_files.intro else default_intro,
        questions=[clip.duration for clip in audio_files.questions],
        timer=timer_seconds,
        answers=[clip.duration for clip in audio_files.answers],
        outro=audio_files.outro.duration if audio_files.outro else default_outro,
    )


def total_duration(timing: SceneTiming) -> float:
    return timing.total_duration


__all__ = [
    "DEFAULT_INTRO_SECONDS",
    "DEFAULT_OUTRO_SECONDS",
    "DEFAULT_TIMER_SECONDS",
    "calculate_scene_timing",
    "seconds_to_frames",
    "total_duration",
]
