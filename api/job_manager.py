"""
Job Manager for Async Processing

Manages background jobs for the ARTEX extraction pipeline.
Tracks progress and cancellation per job and stores results.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from api.models import JobStatus, ProcessingPhase
from shared.models import DialectKind

logger = logging.getLogger(__name__)

FINISHED = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """Represents an extraction job"""

    job_id: str
    status: JobStatus = JobStatus.PENDING
    phase: ProcessingPhase = ProcessingPhase.QUEUED
    progress: int = 0
    message: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    cancel_requested: bool = False

    # Input
    name: str = ""
    text: str = ""
    dialect: DialectKind = DialectKind.LAW
    headings: Optional[list[str]] = None

    # Result
    result: Optional[dict[str, Any]] = None

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED

    def update(
        self,
        status: Optional[JobStatus] = None,
        phase: Optional[ProcessingPhase] = None,
        progress: Optional[int] = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
    ):
        """Update job state"""
        if status is not None:
            self.status = status
        if phase is not None:
            self.phase = phase
        if progress is not None:
            self.progress = max(self.progress, progress)
        if message is not None:
            self.message = message
        if error is not None:
            self.error = error
        self.updated_at = datetime.now()

        if status in FINISHED:
            self.completed_at = datetime.now()


class JobManager:
    """
    Manages async extraction jobs.

    Stores jobs in memory. Provides progress tracking and cancellation for
    the running pipelines.
    """

    def __init__(self, max_jobs: int = 100):
        self.jobs: dict[str, Job] = {}
        self.max_jobs = max_jobs
        self._lock = asyncio.Lock()

    async def create_job(
        self,
        name: str,
        text: str,
        dialect: DialectKind = DialectKind.LAW,
        headings: Optional[list[str]] = None,
    ) -> str:
        """Create a new extraction job and return its ID"""
        async with self._lock:
            # Clean up old finished jobs if we have too many
            if len(self.jobs) >= self.max_jobs:
                self._cleanup_old_jobs()

            job_id = str(uuid4())
            self.jobs[job_id] = Job(
                job_id=job_id,
                name=name,
                text=text,
                dialect=dialect,
                headings=headings,
                message="Job queued for processing...",
            )

            logger.info(f"Created job {job_id} for '{name}' ({dialect.value})")
            return job_id

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID (thread-safe read)"""
        async with self._lock:
            return self.jobs.get(job_id)

    async def start(self, job_id: str):
        """Mark a job as running"""
        async with self._lock:
            job = self.jobs.get(job_id)
            if job and not job.is_finished:
                job.update(
                    status=JobStatus.RUNNING,
                    phase=ProcessingPhase.EXTRACTION,
                    message="Extracting articles...",
                )

    async def update_progress(self, job_id: str, progress: int):
        """Record pipeline progress (0-100, never decreasing)"""
        async with self._lock:
            job = self.jobs.get(job_id)
            if job:
                job.update(progress=progress, message=f"Validating articles ({progress}%)")
                logger.debug(f"Job {job_id}: progress={job.progress}%")
            else:
                logger.warning(f"Job {job_id} not found for progress update")

    async def cancel_job(self, job_id: str) -> bool:
        """
        Request cancellation of a job.

        Returns False if the job does not exist or already finished.
        """
        async with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.is_finished:
                return False
            job.cancel_requested = True
            if job.status == JobStatus.PENDING:
                job.update(status=JobStatus.CANCELLED, message="Job cancelled")
            logger.info(f"Cancellation requested for job {job_id}")
            return True

    async def is_cancelled(self, job_id: str) -> bool:
        """Poll-style cancellation check used by the running pipeline"""
        async with self._lock:
            job = self.jobs.get(job_id)
            return job is None or job.cancel_requested

    async def set_result(self, job_id: str, result: dict[str, Any]):
        """Set the job result and mark as completed"""
        async with self._lock:
            job = self.jobs.get(job_id)
            if job:
                job.result = result
                job.update(
                    status=JobStatus.COMPLETED,
                    phase=ProcessingPhase.COMPLETE,
                    progress=100,
                    message="Extraction complete",
                )
                logger.info(f"Job {job_id} completed")
            else:
                logger.warning(f"Job {job_id} not found for result update")

    async def set_cancelled(self, job_id: str):
        """Mark job as cancelled"""
        async with self._lock:
            job = self.jobs.get(job_id)
            if job:
                job.update(status=JobStatus.CANCELLED, message="Job cancelled")
                logger.info(f"Job {job_id} cancelled")

    async def set_error(self, job_id: str, error: str):
        """Mark job as failed with error message"""
        async with self._lock:
            job = self.jobs.get(job_id)
            if job:
                job.update(
                    status=JobStatus.FAILED,
                    error=error,
                    message=f"Error: {error[:100]}",
                )
                logger.error(f"Job {job_id} failed: {error}")
            else:
                logger.warning(f"Job {job_id} not found for error update")

    def _cleanup_old_jobs(self):
        """Remove oldest finished jobs"""
        finished_jobs = [
            (job_id, job)
            for job_id, job in self.jobs.items()
            if job.is_finished
        ]
        # Sort by completion time
        finished_jobs.sort(key=lambda x: x[1].completed_at or x[1].created_at)

        # Remove oldest half
        for job_id, _ in finished_jobs[: len(finished_jobs) // 2]:
            del self.jobs[job_id]
            logger.debug(f"Cleaned up old job {job_id}")


# Global job manager instance
job_manager = JobManager()
