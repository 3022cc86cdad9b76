"""Video job orchestrator driving each quiz through the generation pipeline."""

import asyncio
from datetime import timedelta
from pathlib import Path

from services.jobs.store import JobStore
from services.jobs.timing import calculate_scene_timing
from services.progress import ProgressBroker
from shared.config import config
from shared.enums import STAGE_MESSAGES, STAGE_PROGRESS, JobStatus, ProcessingStep
from shared.exceptions import JobNotFoundError
from shared.file_utils import ensure_directory, remove_directory, remove_file, resolve_within
from shared.logging_utils import setup_logging
from shared.models import CompositionInput, ProgressUpdate, Question, VideoAssets, VideoJob, utc_now

logger = setup_logging("video-orchestrator")

CANCELLED_MESSAGE = "Job cancelled"
RENDER_START = STAGE_PROGRESS[ProcessingStep.RENDERING]
RENDER_SPAN = STAGE_PROGRESS[ProcessingStep.DONE] - RENDER_START


def render_progress(fraction: float, previous: int) -> int:
    """Map a renderer fraction onto 80..99, never moving backwards."""
    mapped = RENDER_START + round(max(0.0, min(1.0, fraction)) * RENDER_SPAN)
    return min(99, max(previous, mapped))


class VideoJobOrchestrator:
    """Runs video jobs in the background and owns their on-disk artifacts."""

    def __init__(
        self,
        store: JobStore | None = None,
        broker: ProgressBroker | None = None,
        media_root: str | Path | None = None,
    ):
        self.store = store or JobStore()
        self.broker = broker
        configured_root = Path(media_root or config.get("media_root", "./generated-videos"))
        self.media_root = self._initialize_media_root(configured_root)
        self._tasks: dict[str, asyncio.Task] = {}

        # Services are created on first use so tests can swap them in
        self._image_service = None
        self._tts_service = None
        self._renderer = None

    def _initialize_media_root(self, configured_root: Path) -> Path:
        """Ensure media root is writable, falling back to a local directory if needed."""
        try:
            return ensure_directory(configured_root)
        except PermissionError:
            fallback_root = Path("./generated-videos")
            logger.warning(
                "Unable to create media directory at %s due to permissions; falling back to %s",
                configured_root,
                fallback_root,
            )
            return ensure_directory(fallback_root)

    @property
    def image_service(self):
        """Lazy load background image service."""
        if self._image_service is None:
            from services.image_generation.service import ImageGenerationService

            self._image_service = ImageGenerationService()
        return self._image_service

    @image_service.setter
    def image_service(self, service):
        self._image_service = service

    @property
    def tts_service(self):
        """Lazy load TTS service."""
        if self._tts_service is None:
            from services.tts_service.service import TTSService

            self._tts_service = TTSService()
        return self._tts_service

    @tts_service.setter
    def tts_service(self, service):
        self._tts_service = service

    @property
    def renderer(self):
        """Lazy load the ffmpeg renderer."""
        if self._renderer is None:
            from services.rendering import FFmpegRenderer

            self._renderer = FFmpegRenderer()
        return self._renderer

    @renderer.setter
    def renderer(self, renderer):
        self._renderer = renderer

    def job_dir(self, job_id: str) -> Path:
        return self.media_root / job_id

    def output_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / f"quiz-{job_id}.mp4"

    async def submit(self, topic: str, questions: list[Question]) -> str:
        """Register a job and start it in the background. Returns before any generation work."""
        job_id = self.store.create(topic, questions)
        self.start(job_id)
        await self._publish(job_id)
        logger.info("Queued video job %s with %d questions", job_id, len(questions))
        return job_id

    def start(self, job_id: str) -> asyncio.Task:
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            raise RuntimeError(f"Job {job_id} is already running")

        task = asyncio.create_task(self._run_job(job_id), name=f"video-job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda finished: self._forget_task(job_id, finished))
        return task

    def _forget_task(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            self._tasks.pop(job_id, None)

    async def _run_job(self, job_id: str) -> None:
        job = self.store.get(job_id)
        if job is None:
            logger.warning("Job %s disappeared before it started", job_id)
            return

        job_dir = self.job_dir(job_id)
        try:
            await self._advance(job_id, ProcessingStep.STARTING)
            ensure_directory(job_dir)

            await self._advance(job_id, ProcessingStep.BACKGROUNDS)
            backgrounds = await self.image_service.generate_backgrounds(job.topic, job.questions, str(job_dir))

            await self._advance(job_id, ProcessingStep.VOICE)
            narration = await self.tts_service.generate_narration(job.topic, job.questions, str(job_dir))

            self.store.set_assets(job_id, VideoAssets(background_images=backgrounds, audio_files=narration))

            await self._advance(job_id, ProcessingStep.COMPOSITION)
            timing = calculate_scene_timing(
                narration,
                timer_seconds=float(config.get_pipeline_value("timing.timer_seconds", 3)),
                default_intro=float(config.get_pipeline_value("timing.default_intro_seconds", 3)),
                default_outro=float(config.get_pipeline_value("timing.default_outro_seconds", 4)),
            )
            composition = CompositionInput(
                topic=job.topic,
                questions=job.questions,
                background_images=backgrounds,
                audio_files=narration,
                timing=timing,
            )
            await self.renderer.prepare(composition)

            await self._advance(job_id, ProcessingStep.RENDERING)
            output_path = str(self.output_path(job_id))
            await self._render_with_progress(job_id, composition, output_path)

            self.store.mark_completed(job_id, output_path, STAGE_MESSAGES[ProcessingStep.DONE])
            await self._publish(job_id)
            logger.info("Video job %s completed (%.1fs of video)", job_id, timing.total_duration)

        except asyncio.CancelledError:
            logger.info("Video job %s cancelled", job_id)
            await self._fail(job_id, CANCELLED_MESSAGE)
            raise
        except Exception as exc:
            logger.error("Video job %s failed: %s", job_id, exc)
            await self._fail(job_id, str(exc) or type(exc).__name__)
            await self._publish(job_id)

    async def _advance(self, job_id: str, step: ProcessingStep) -> None:
        """Record the checkpoint for a stage about to start."""
        job = self.store.get(job_id)
        if job is None or job.status.is_terminal:
            return
        self.store.update_status(
            job_id,
            JobStatus.PROCESSING,
            progress=STAGE_PROGRESS[step],
            current_step=STAGE_MESSAGES[step],
        )
        await self._publish(job_id)

    async def _render_with_progress(self, job_id: str, composition: CompositionInput, output_path: str) -> None:
        """Render while a consumer task turns renderer fractions into job progress."""
        channel: asyncio.Queue[float | None] = asyncio.Queue()
        consumer = asyncio.create_task(self._consume_render_progress(job_id, channel))
        try:
            await self.renderer.render(composition, output_path, channel.put_nowait)
        except BaseException:
            consumer.cancel()
            raise
        channel.put_nowait(None)
        await consumer

    async def _consume_render_progress(self, job_id: str, channel: asyncio.Queue) -> None:
        current = RENDER_START
        while (fraction := await channel.get()) is not None:
            updated = render_progress(fraction, current)
            if updated == current:
                continue
            current = updated
            self.store.update_status(
                job_id,
                JobStatus.PROCESSING,
                progress=current,
                current_step=f"Rendering video... {round(fraction * 100)}%",
            )
            await self._publish(job_id)

    async def _fail(self, job_id: str, message: str) -> None:
        """Mark the job failed and delete whatever it produced."""
        job = self.store.get(job_id)
        if job is not None and job.status.is_terminal:
            return
        self.store.update_status(job_id, JobStatus.FAILED, error=message)
        try:
            await asyncio.to_thread(remove_directory, self.job_dir(job_id))
        except Exception as cleanup_error:
            logger.warning("Cleanup of job %s failed: %s", job_id, cleanup_error)

    async def _publish(self, job_id: str) -> None:
        """Send the job's current state to progress subscribers."""
        if self.broker is None:
            return
        job = self.store.get(job_id)
        if job is None:
            return
        update = ProgressUpdate(
            job_id=job.id,
            status=job.status,
            progress=job.progress,
            current_step=job.current_step,
            error=job.error,
        )
        try:
            await self.broker.publish(update)
        except Exception as exc:
            logger.warning("Failed to publish progress for job %s: %s", job_id, exc)

    def get_job(self, job_id: str) -> VideoJob | None:
        return self.store.get(job_id)

    def get_video_file_path(self, job_id: str) -> str | None:
        """Path of the rendered video, if the job completed and the file is still there."""
        job = self.store.get(job_id)
        if job is None or job.status != JobStatus.COMPLETED or not job.file_path:
            return None
        return job.file_path if Path(job.file_path).is_file() else None

    def resolve_asset_path(self, job_id: str, filename: str) -> Path:
        """
        Locate a generated asset of a job.

        Raises:
            JobNotFoundError: if the job is unknown.
            ValueError: if ``filename`` points outside the job directory.
        """
        if job_id not in self.store:
            raise JobNotFoundError(job_id)
        return resolve_within(self.job_dir(job_id), filename)

    async def _stop_task(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def cancel_job(self, job_id: str) -> bool:
        """Cancel a job that has not finished yet."""
        job = self.store.get(job_id)
        if job is None or job.status.is_terminal:
            return False

        await self._stop_task(job_id)
        # A task cancelled before its first step never records the failure itself
        await self._fail(job_id, CANCELLED_MESSAGE)
        await self._publish(job_id)
        return True

    async def delete_job(self, job_id: str) -> bool:
        """Stop the job if needed and remove its video, directory and record."""
        job = self.store.get(job_id)
        if job is None:
            return False

        await self._stop_task(job_id)
        if job.file_path:
            remove_file(job.file_path)
        await asyncio.to_thread(remove_directory, self.job_dir(job_id))
        self.store.delete(job_id)
        if self.broker is not None:
            await self.broker.forget(job_id)
        logger.info("Deleted video job %s", job_id)
        return True

    async def cleanup_old_jobs(self, max_age_hours: float) -> int:
        """Delete every job created more than ``max_age_hours`` ago. Returns how many were removed."""
        cutoff = utc_now() - timedelta(hours=max_age_hours)
        removed = 0
        for job in self.store.list_jobs():
            if job.created_at >= cutoff:
                continue
            try:
                if await self.delete_job(job.id):
                    removed += 1
            except Exception as exc:
                logger.error("Retention cleanup of job %s failed: %s", job.id, exc)
        if removed:
            logger.info("Retention sweep removed %d job(s)", removed)
        return removed

    async def shutdown(self) -> None:
        """Cancel every running job and close progress subscriptions."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self.broker is not None:
            await self.broker.reset()
        logger.info("Orchestrator stopped (%d running job(s) cancelled)", len(tasks))


def build_orchestrator() -> VideoJobOrchestrator:
    """Wire the orchestrator used by the application."""
    return VideoJobOrchestrator(store=JobStore(), broker=ProgressBroker())
