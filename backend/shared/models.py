from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.enums import MAX_QUESTIONS, MIN_QUESTIONS, JobStatus


def utc_now() -> datetime:
    return datetime.now(UTC)


class Question(BaseModel):
    question: str = Field(..., min_length=5, max_length=200, description="Question text")
    answer: str = Field(..., min_length=2, max_length=100, description="Correct answer")


# Request/Response Models
class VideoGenerationRequest(BaseModel):
    topic: str = Field(..., min_length=3, max_length=100, description="Quiz topic")
    questions: list[Question] = Field(
        ...,
        min_length=MIN_QUESTIONS,
        max_length=MAX_QUESTIONS,
        description="Question/answer pairs shown in order",
    )


class VideoGenerationResponse(BaseModel):
    success: bool = True
    message: str
    video_id: str | None = None
    error: str | None = None


class VideoStatusResponse(BaseModel):
    """What a polling client sees for one job."""

    video_id: str
    status: JobStatus
    step: str | None = None
    progress: int = 0
    video_url: str | None = None
    error: str | None = None


class AudioWithDuration(BaseModel):
    path: str
    duration: float = Field(..., ge=0.0, description="Spoken duration in seconds")


class NarrationAudio(BaseModel):
    """Generated narration, one clip per segment."""

    intro: AudioWithDuration | None = None
    questions: list[AudioWithDuration] = Field(default_factory=list)
    answers: list[AudioWithDuration] = Field(default_factory=list)
    outro: AudioWithDuration | None = None

    def all_paths(self) -> list[str]:
        clips = [self.intro, *self.questions, *self.answers, self.outro]
        return [clip.path for clip in clips if clip is not None]


class VideoAssets(BaseModel):
    background_images: list[str] = Field(..., description="Intro background followed by one per question")
    audio_files: NarrationAudio


class VideoJob(BaseModel):
    """One end-to-end video generation request and its lifecycle."""

    id: str
    status: JobStatus = JobStatus.PENDING
    topic: str
    questions: list[Question]
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str | None = None
    error: str | None = None
    file_path: str | None = None
    assets: VideoAssets | None = None


class SceneTiming(BaseModel):
    """Per-segment durations in seconds. Derived, never stored on a job."""

    intro: float
    questions: list[float]
    timer: float
    answers: list[float]
    outro: float

    @property
    def total_duration(self) -> float:
        return (
            self.intro
            + sum(self.questions)
            + len(self.questions) * self.timer
            + sum(self.answers)
            + self.outro
        )


class CompositionInput(BaseModel):
    """Everything the renderer needs to produce one video."""

    topic: str
    questions: list[Question]
    background_images: list[str]
    audio_files: NarrationAudio
    timing: SceneTiming


class ProgressUpdate(BaseModel):
    """Progress event published on every job mutation made by the pipeline."""

    job_id: str
    status: JobStatus
    progress: int
    current_step: str | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    def to_message(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
