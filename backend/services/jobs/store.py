"""In-memory job registry."""

from __future__ import annotations

import threading
from uuid import uuid4

from shared.enums import JobStatus
from shared.exceptions import AssetsAlreadySetError
from shared.logging_utils import setup_logging
from shared.models import Question, VideoAssets, VideoJob, utc_now

logger = setup_logging("job-store")

INITIAL_STEP = "Initializing..."


class JobStore:
    """
    Thread-safe map of job ID to job record.

    Every read returns a deep copy, so callers never observe a record while
    another caller is halfway through updating it. The lock is never held
    across an ``await``.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, VideoJob] = {}
        self._lock = threading.Lock()

    def create(self, topic: str, questions: list[Question]) -> str:
        job = VideoJob(
            id=str(uuid4()),
            status=JobStatus.PENDING,
            topic=topic,
            questions=[item.model_copy() for item in questions],
            progress=0,
            current_step=INITIAL_STEP,
        )
        with self._lock:
            self._jobs[job.id] = job
        logger.info("Created job %s for topic '%s'", job.id, topic)
        return job.id

    def get(self, job_id: str) -> VideoJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
        progress: int | None = None,
        current_step: str | None = None,
    ) -> None:
        """Apply a partial update. Unknown jobs are ignored."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.status = status
            if error is not None:
                job.error = error
            if progress is not None:
                job.progress = max(0, min(100, int(progress)))
            if current_step is not None:
                job.current_step = current_step
            job.updated_at = utc_now()

    def set_assets(self, job_id: str, assets: VideoAssets) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            if job.assets is not None:
                raise AssetsAlreadySetError(f"Assets already attached to job {job_id}")
            job.assets = assets.model_copy(deep=True)
            job.updated_at = utc_now()

    def mark_completed(self, job_id: str, file_path: str, current_step: str | None = None) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.file_path = file_path
            job.status = JobStatus.COMPLETED
            job.progress = 100
            if current_step is not None:
                job.current_step = current_step
            job.updated_at = utc_now()

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def list_jobs(self) -> list[VideoJob]:
        with self._lock:
            return [job.model_copy(deep=True) for job in self._jobs.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs
