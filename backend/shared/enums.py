"""
Enums and constants used across the application.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle states of a video generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class ProcessingStep(str, Enum):
    """Pipeline stages, in execution order."""

    STARTING = "starting"
    BACKGROUNDS = "backgrounds"
    VOICE = "voice"
    COMPOSITION = "composition"
    RENDERING = "rendering"
    DONE = "done"


class SegmentKind(str, Enum):
    """Narration segments of a quiz video."""

    INTRO = "intro"
    QUESTION = "question"
    ANSWER = "answer"
    OUTRO = "outro"


# Progress checkpoints written before each stage starts
STAGE_PROGRESS = {
    ProcessingStep.STARTING: 10,
    ProcessingStep.BACKGROUNDS: 20,
    ProcessingStep.VOICE: 40,
    ProcessingStep.COMPOSITION: 60,
    ProcessingStep.RENDERING: 80,
    ProcessingStep.DONE: 100,
}

STAGE_MESSAGES = {
    ProcessingStep.STARTING: "Starting generation...",
    ProcessingStep.BACKGROUNDS: "Generating AI background images...",
    ProcessingStep.VOICE: "Synthesizing voice narration...",
    ProcessingStep.COMPOSITION: "Composing video elements...",
    ProcessingStep.RENDERING: "Rendering final video...",
    ProcessingStep.DONE: "Video ready for download!",
}

MIN_QUESTIONS = 2
MAX_QUESTIONS = 5
