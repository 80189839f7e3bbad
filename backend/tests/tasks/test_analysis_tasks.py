import asyncio
from typing import List, Tuple

import pytest

from site_analyzer.core.exceptions import InvalidURLError
from site_analyzer.schemas.analysis import AnalysisPatch, AnalysisResult
from site_analyzer.tasks.analysis_tasks import AnalysisScheduler


class FakeAnalyzer:
    """Stands in for PageAnalyzer and records how many runs overlap."""

    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self.seen: List[str] = []

    async def analyze(self, url: str) -> AnalysisResult:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        self.seen.append(url)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if "down" in url:
            return AnalysisResult(url=url, error_message="Failed to fetch URL: refused")
        if "crash" in url:
            raise RuntimeError("analyzer bug")
        return AnalysisResult(url=url, status_code=200, meta_title="ok")


class MemoryWriter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: List[Tuple[str, str, AnalysisPatch]] = []

    async def save(self, job_id: str, url: str, patch: AnalysisPatch) -> None:
        if self.fail:
            raise ConnectionError("database unavailable")
        self.saved.append((job_id, url, patch))


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    analyzer = FakeAnalyzer()
    scheduler = AnalysisScheduler(max_concurrent=3, analyzer=analyzer)

    job_ids = scheduler.submit_many(f"https://site{i}.example.com/" for i in range(10))
    await scheduler.join()

    assert analyzer.peak == 3
    assert len(analyzer.seen) == 10
    assert scheduler.active_count == 0
    assert all(scheduler.status(job_id) == "completed" for job_id in job_ids)


@pytest.mark.asyncio
async def test_status_transitions_and_result():
    analyzer = FakeAnalyzer(delay=0.05)
    scheduler = AnalysisScheduler(max_concurrent=1, analyzer=analyzer)

    first = scheduler.submit("https://a.example.com/")
    second = scheduler.submit("https://b.example.com/")
    assert scheduler.status(first) == "pending"

    await asyncio.sleep(0.01)
    assert scheduler.status(first) == "analyzing"
    assert scheduler.status(second) == "pending"

    result = await scheduler.wait(first)
    assert result.meta_title == "ok"
    assert scheduler.status(first) == "completed"
    assert scheduler.result(first) is result

    await scheduler.join()
    assert scheduler.status(second) == "completed"


@pytest.mark.asyncio
async def test_failed_and_crashed_runs():
    writer = MemoryWriter()
    scheduler = AnalysisScheduler(max_concurrent=2, analyzer=FakeAnalyzer(), writer=writer)

    down = scheduler.submit("https://down.example.com/")
    crash = scheduler.submit("https://crash.example.com/")
    await scheduler.join()

    assert scheduler.status(down) == "failed"
    assert scheduler.get_job(down).error == "Failed to fetch URL: refused"
    assert scheduler.result(down) is not None

    assert scheduler.status(crash) == "failed"
    assert scheduler.result(crash) is None
    assert scheduler.get_job(crash).error == "Analysis failed: analyzer bug"

    patches = {job_id: patch for job_id, _, patch in writer.saved}
    assert patches[down].status == "failed"
    assert patches[crash].status == "failed"
    assert patches[crash].error_message == "Analysis failed: analyzer bug"


@pytest.mark.asyncio
async def test_writer_receives_patch():
    writer = MemoryWriter()
    scheduler = AnalysisScheduler(analyzer=FakeAnalyzer(), writer=writer)

    job_id = scheduler.submit("https://ok.example.com/")
    await scheduler.wait(job_id)

    assert len(writer.saved) == 1
    saved_id, url, patch = writer.saved[0]
    assert saved_id == job_id
    assert url == "https://ok.example.com/"
    assert patch.status == "completed"
    assert patch.status_code == 200
    assert patch.meta_title == "ok"


@pytest.mark.asyncio
async def test_writer_failure_marks_job_failed():
    scheduler = AnalysisScheduler(analyzer=FakeAnalyzer(), writer=MemoryWriter(fail=True))

    job_id = scheduler.submit("https://ok.example.com/")
    await scheduler.wait(job_id)

    assert scheduler.status(job_id) == "failed"
    assert scheduler.get_job(job_id).error == "Failed to save results: database unavailable"


@pytest.mark.asyncio
async def test_invalid_url_is_rejected_up_front():
    analyzer = FakeAnalyzer()
    scheduler = AnalysisScheduler(analyzer=analyzer)

    with pytest.raises(InvalidURLError):
        scheduler.submit("not a url")

    with pytest.raises(InvalidURLError):
        scheduler.submit_many(["https://ok.example.com/", "example.com"])

    assert scheduler.jobs == {}


@pytest.mark.asyncio
async def test_cancel_pending_job():
    analyzer = FakeAnalyzer(delay=0.05)
    scheduler = AnalysisScheduler(max_concurrent=1, analyzer=analyzer)

    first = scheduler.submit("https://a.example.com/")
    second = scheduler.submit("https://b.example.com/")
    await asyncio.sleep(0)

    assert scheduler.cancel(second) is True
    await scheduler.join()

    assert scheduler.status(first) == "completed"
    assert scheduler.status(second) == "cancelled"
    assert scheduler.result(second) is None
    assert scheduler.cancel(first) is False
    assert analyzer.seen == ["https://a.example.com/"]


@pytest.mark.asyncio
async def test_unknown_job():
    scheduler = AnalysisScheduler(analyzer=FakeAnalyzer())

    with pytest.raises(KeyError):
        scheduler.status("missing")


def test_rejects_non_positive_bound():
    with pytest.raises(ValueError):
        AnalysisScheduler(max_concurrent=-1, analyzer=FakeAnalyzer())


@pytest.mark.asyncio
async def test_finished_jobs_beyond_history_limit_are_dropped():
    analyzer = FakeAnalyzer(delay=0)
    scheduler = AnalysisScheduler(max_concurrent=5, analyzer=analyzer, history_limit=10)

    job_ids = scheduler.submit_many(f"https://site{i}.example.com/" for i in range(100))
    await scheduler.join()

    assert len(analyzer.seen) == 100
    assert len(scheduler.jobs) == 10
    assert set(scheduler.jobs) <= set(job_ids)
    assert all(job.status == "completed" for job in scheduler.jobs.values())


@pytest.mark.asyncio
async def test_forget_drops_only_finished_jobs():
    scheduler = AnalysisScheduler(max_concurrent=1, analyzer=FakeAnalyzer(delay=0.05))

    first = scheduler.submit("https://a.example.com/")
    await asyncio.sleep(0)
    assert scheduler.forget(first) is False

    result = await scheduler.wait(first)
    assert result.meta_title == "ok"
    assert scheduler.forget(first) is True
    assert scheduler.jobs == {}

    with pytest.raises(KeyError):
        scheduler.status(first)


def test_scheduler_built_outside_running_loop():
    analyzer = FakeAnalyzer()
    scheduler = AnalysisScheduler(max_concurrent=1, analyzer=analyzer)

    async def run_all():
        job_ids = scheduler.submit_many(f"https://site{i}.example.com/" for i in range(3))
        await scheduler.join()
        return job_ids

    job_ids = asyncio.run(run_all())

    assert analyzer.peak == 1
    assert [scheduler.status(job_id) for job_id in job_ids] == ["completed"] * 3


def test_rejects_non_positive_history_limit():
    with pytest.raises(ValueError):
        AnalysisScheduler(history_limit=-5, analyzer=FakeAnalyzer())
