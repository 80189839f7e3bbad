import asyncio
import functools
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Protocol

from loguru import logger

from site_analyzer.core.config import settings
from site_analyzer.core.logging import setup_logging
from site_analyzer.core.urls import validate_target_url
from site_analyzer.schemas.analysis import AnalysisPatch, AnalysisResult
from site_analyzer.services.analyzer.seo_analyzer import PageAnalyzer

PENDING = "pending"
ANALYZING = "analyzing"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"


class ResultWriter(Protocol):
    """Storage collaborator that persists the outcome of an analysis job."""

    async def save(self, job_id: str, url: str, patch: AnalysisPatch) -> None:
        ...


@dataclass
class AnalysisJob:
    id: str
    url: str
    status: str = PENDING
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (COMPLETED, FAILED, CANCELLED)


class AnalysisScheduler:
    """
    Runs page analyses on the current event loop with a hard cap on how many
    are in flight at once.

    Jobs are submitted by URL and can be polled, awaited or cancelled by id.
    When a writer is given, every finished job hands it an AnalysisPatch.

    Only the ``history_limit`` most recently finished jobs stay queryable;
    older ones are dropped, and ``forget`` drops a finished job at once.
    """

    def __init__(
        self,
        max_concurrent: Optional[int] = None,
        analyzer: Optional[PageAnalyzer] = None,
        writer: Optional[ResultWriter] = None,
        history_limit: Optional[int] = None,
    ):
        self.max_concurrent = max_concurrent or settings.ANALYZER_MAX_CONCURRENT_RUNS
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.analyzer = analyzer or PageAnalyzer()
        self.history_limit = history_limit or settings.ANALYZER_JOB_HISTORY_LIMIT
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.writer = writer
        self.jobs: Dict[str, AnalysisJob] = {}
        self.active_count = 0
        self._finished: Deque[str] = deque()
        # Created on first submit so it binds to the loop that runs the jobs
        self._semaphore: Optional[asyncio.Semaphore] = None
        setup_logging()

    def submit(self, url: str) -> str:
        """
        Queue one analysis. Must be called with a running event loop.

        Raises:
            InvalidURLError: if ``url`` is not an absolute URL; nothing is queued
        """
        validate_target_url(url)
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)

        job = AnalysisJob(id=str(uuid.uuid4()), url=url)
        self.jobs[job.id] = job
        job.task = asyncio.create_task(self._run(job), name=f"analysis-{job.id}")
        job.task.add_done_callback(functools.partial(self._on_done, job))
        logger.debug(f"Queued analysis job {job.id} for {url}")
        return job.id

    def submit_many(self, urls: Iterable[str]) -> List[str]:
        """
        Queue several analyses. Every URL is validated before any is queued.
        """
        urls = list(urls)
        for url in urls:
            validate_target_url(url)
        return [self.submit(url) for url in urls]

    def get_job(self, job_id: str) -> AnalysisJob:
        try:
            return self.jobs[job_id]
        except KeyError:
            raise KeyError(f"Unknown analysis job: {job_id}") from None

    def status(self, job_id: str) -> str:
        return self.get_job(job_id).status

    def result(self, job_id: str) -> Optional[AnalysisResult]:
        return self.get_job(job_id).result

    async def wait(self, job_id: str) -> Optional[AnalysisResult]:
        """Wait for one job to finish and return its result (None if it had none)."""
        job = self.get_job(job_id)
        if job.task is not None:
            await asyncio.wait({job.task})
        return job.result

    async def join(self) -> None:
        """Wait for every job submitted so far."""
        tasks = [job.task for job in self.jobs.values() if job.task is not None]
        if tasks:
            await asyncio.wait(tasks)

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not finished; returns False if it already had."""
        job = self.get_job(job_id)
        if job.done or job.task is None:
            return False
        return job.task.cancel()

    def forget(self, job_id: str) -> bool:
        """Drop a finished job and its result; returns False if it is still running."""
        job = self.get_job(job_id)
        if job.task is None or not job.task.done():
            return False
        del self.jobs[job_id]
        if job_id in self._finished:
            self._finished.remove(job_id)
        return True

    async def _run(self, job: AnalysisJob) -> None:
        async with self._semaphore:
            job.status = ANALYZING
            self.active_count += 1
            try:
                await self._analyze(job)
            finally:
                self.active_count -= 1

    def _on_done(self, job: AnalysisJob, task: "asyncio.Task[None]") -> None:
        # Covers jobs cancelled before they ever started running
        if task.cancelled():
            job.status = CANCELLED
            logger.info(f"Analysis job {job.id} for {job.url} was cancelled")

        if job.id not in self.jobs:
            return
        self._finished.append(job.id)
        while len(self._finished) > self.history_limit:
            self.jobs.pop(self._finished.popleft(), None)

    async def _analyze(self, job: AnalysisJob) -> None:
        logger.info(f"Starting analysis job {job.id} for {job.url}")

        try:
            result = await self.analyzer.analyze(job.url)
        except Exception as e:
            logger.exception(f"Analysis job {job.id} for {job.url} crashed")
            job.status = FAILED
            job.error = f"Analysis failed: {e}"
            await self._save(job, AnalysisPatch.failed(job.error))
            return

        patch = AnalysisPatch.from_result(result)
        job.result = result
        job.error = result.error_message
        job.status = COMPLETED if patch.status == "completed" else FAILED
        await self._save(job, patch)

        logger.info(f"Analysis job {job.id} for {job.url} finished as {job.status}")

    async def _save(self, job: AnalysisJob, patch: AnalysisPatch) -> None:
        if self.writer is None:
            return
        try:
            await self.writer.save(job.id, job.url, patch)
        except Exception as e:
            logger.exception(f"Failed to save results of analysis job {job.id}")
            job.status = FAILED
            job.error = f"Failed to save results: {e}"
