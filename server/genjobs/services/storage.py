"""In-memory job store. Replace with a transactional DB in production.

Every job lives in one mapping keyed by id and carries an explicit status.
Leaving ``queued`` goes through a compare-and-set, so a job is completed,
cancelled or failed exactly once, and credits are only spent on completion.
"""

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field

from pydantic import ValidationError

from genjobs.config import settings
from genjobs.models.jobs import GeneratedImage, GenerationRequest, JobStatus
from genjobs.services.generation_service import ContentGenerator, build_generator

logger = logging.getLogger(__name__)


class JobStoreError(Exception):
    """Base class for errors surfaced to API callers."""


class InvalidRequestError(JobStoreError):
    pass


class InsufficientCreditsError(JobStoreError):
    pass


class JobNotFoundError(JobStoreError):
    pass


@dataclass
class Job:
    id: str
    request: GenerationRequest
    status: JobStatus = JobStatus.QUEUED
    result: list[GeneratedImage] | None = None
    error: str | None = None
    task: asyncio.Task | None = None
    created_at: float = field(default_factory=time.time)


class JobStore:
    """Owns queued/finished jobs and the credit balance.

    Mutations run under a lock and never await, so on a single event loop the
    adapter call in ``_process`` is the only place another handler can
    interleave.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        initial_credits: int = 10,
        credits_in_bundle: int = 10,
        processing_delay: float = 5.0,
        generation_timeout: float | None = 60.0,
    ) -> None:
        self.generator = generator
        self.credits_in_bundle = credits_in_bundle
        self.processing_delay = processing_delay
        self.generation_timeout = generation_timeout
        self._credits = initial_credits
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    @property
    def credits(self) -> int:
        with self._lock:
            return self._credits

    def get_credits(self) -> int:
        return self.credits

    def purchase_credits(self) -> int:
        with self._lock:
            self._credits += self.credits_in_bundle
            logger.info("Purchased %d credits, balance %d", self.credits_in_bundle, self._credits)
            return self._credits

    def submit(
        self,
        prompt: str | None,
        width: int | None = None,
        height: int | None = None,
        count: int = 1,
    ) -> str:
        """Queue a job and return its id without waiting for the generator.

        Must be called from a running event loop.
        """
        with self._lock:
            if self._available_credits() <= 0:
                raise InsufficientCreditsError("Not enough credits required to generate images.")
            request = _build_request(prompt, width, height, count)

            job_id = uuid.uuid4().hex
            while job_id in self._jobs:
                job_id = uuid.uuid4().hex

            job = Job(id=job_id, request=request)
            self._jobs[job_id] = job
            job.task = asyncio.get_running_loop().create_task(self._process(job_id))

        logger.info("Queued job %s for prompt %.80s", job_id, request.prompt)
        return job_id

    def get_job(self, job_id: str | None) -> Job:
        if not job_id:
            raise InvalidRequestError("Missing jobId parameter.")
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError("Job not found.")
        return job

    def cancel(self, job_id: str | None) -> None:
        """Cancel a queued job. Finished or unknown jobs raise JobNotFoundError."""
        if not job_id:
            raise InvalidRequestError("Missing jobId parameter.")
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not self._transition(job, JobStatus.CANCELLED):
                raise JobNotFoundError("Job not found.")
            task, job.task = job.task, None

        if task is not None:
            task.cancel()
        logger.info("Cancelled job %s", job_id)

    def shutdown(self) -> None:
        """Cancel every pending task. Jobs keep their current status."""
        with self._lock:
            tasks = [job.task for job in self._jobs.values() if job.task is not None]
            for job in self._jobs.values():
                job.task = None
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelled %d pending job task(s) on shutdown", len(tasks))

    def _available_credits(self) -> int:
        """Balance minus one credit held by each queued job. Caller must hold the lock."""
        queued = sum(1 for job in self._jobs.values() if job.status is JobStatus.QUEUED)
        return self._credits - queued

    def _transition(self, job: Job, new_status: JobStatus) -> bool:
        """Move a queued job to ``new_status``. Caller must hold the lock."""
        if job.status is not JobStatus.QUEUED:
            return False
        job.status = new_status
        return True

    async def _process(self, job_id: str) -> None:
        await asyncio.sleep(self.processing_delay)

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.QUEUED:
                return
            request = job.request

        try:
            assets = await asyncio.wait_for(
                self.generator.generate(request), timeout=self.generation_timeout,
            )
        except asyncio.CancelledError:
            logger.info("Discarding in-flight generation for job %s", job_id)
            raise
        except TimeoutError:
            logger.warning("Generation timed out for job %s", job_id)
            self._fail(job_id, "Content generation timed out")
            return
        except Exception as e:
            logger.exception("Generation failed for job %s", job_id)
            self._fail(job_id, str(e) or type(e).__name__)
            return

        images = [
            GeneratedImage(label=request.prompt, **asset.model_dump())
            for asset in assets
        ]
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not self._transition(job, JobStatus.COMPLETED):
                logger.info("Job %s left the queue before completing, result dropped", job_id)
                return
            job.result = images
            job.task = None
            self._credits -= 1
            balance = self._credits

        logger.info("Completed job %s with %d image(s), balance %d", job_id, len(images), balance)

    def _fail(self, job_id: str, error: str) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not self._transition(job, JobStatus.FAILED):
                return
            job.error = error
            job.task = None


def _build_request(
    prompt: str | None,
    width: int | None,
    height: int | None,
    count: int,
) -> GenerationRequest:
    if not prompt or not prompt.strip():
        raise InvalidRequestError("Missing prompt parameter.")
    if len(prompt) > settings.max_prompt_length:
        raise InvalidRequestError(
            f"Prompt too long. Maximum length: {settings.max_prompt_length} characters"
        )
    width = settings.default_width if width is None else width
    height = settings.default_height if height is None else height
    if width > settings.max_dimension or height > settings.max_dimension:
        raise InvalidRequestError(f"Dimensions may not exceed {settings.max_dimension} pixels")
    if count > settings.max_images_per_job:
        raise InvalidRequestError(f"At most {settings.max_images_per_job} images per job")

    try:
        return GenerationRequest(prompt=prompt, width=width, height=height, count=count)
    except ValidationError as e:
        raise InvalidRequestError(str(e)) from e


# Singleton instance
job_store = JobStore(
    generator=build_generator(settings),
    initial_credits=settings.initial_credits,
    credits_in_bundle=settings.credits_in_bundle,
    processing_delay=settings.processing_delay_seconds,
    generation_timeout=settings.generation_timeout_seconds,
)
