"""Job acquisition and dispatch.

This module turns raw CodePipeline jobs into JobDescriptors and runs one
JobExecution per job on a thread pool. The acquisition loop polls the
pipeline at a fixed interval, acknowledges the first pending job and hands
it to the dispatcher. The pipeline is only polled while a worker slot is
free, so an acknowledged job never waits in the pool queue. A failing job
is logged and never stops the loop.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Mapping, Protocol

from cpworker.core.builds import (
    TRAVIS_STATES,
    BuildClient,
    JobDescriptor,
    JobOutcome,
    PipelineError,
    ResultReporter,
    StateTable,
)
from cpworker.core.executor import JobExecution
from cpworker.core.polling import PollSettings

log = logging.getLogger(__name__)

DEFAULT_JOB_INTERVAL = 30.0


class JobSource(Protocol):
    """Interface for acquiring pipeline jobs."""

    def poll(self) -> list[dict]:
        """Return pending jobs."""
        ...

    def acknowledge(self, job: Mapping[str, Any]) -> None:
        """Acknowledge a job before it is processed."""
        ...


def descriptor_from_job(job: Mapping[str, Any]) -> JobDescriptor:
    """
    Build a JobDescriptor from a job returned by `poll_for_jobs`.

    Missing configuration values become empty strings; the execution
    reports them as a configuration error.
    """
    data = job.get("data") or {}
    config = (data.get("actionConfiguration") or {}).get("configuration") or {}
    context = data.get("pipelineContext") or {}
    return JobDescriptor(
        job_id=str(job["id"]),
        continuation_token=data.get("continuationToken") or "",
        branch=config.get("Branch", ""),
        owner=config.get("Owner", ""),
        repo=config.get("ProjectName", ""),
        api_token=config.get("APIToken", ""),
        pipeline_name=context.get("pipelineName", ""),
    )


class TravisDispatcher:
    """
    Run one JobExecution per dispatched job on a thread pool.

    Each job gets its own build client from `builds_factory`; the reporter
    is shared. Callers that want to bound in-flight jobs take a slot with
    `reserve` before acquiring a job and give it back with `release`.
    """

    def __init__(
        self,
        builds_factory: Callable[[], BuildClient],
        reporter: ResultReporter,
        *,
        max_workers: int = 8,
        states: StateTable = TRAVIS_STATES,
        settings: PollSettings = PollSettings(),
        executor: ThreadPoolExecutor | None = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.builds_factory = builds_factory
        self.reporter = reporter
        self.states = states
        self.settings = settings
        self._slots = threading.BoundedSemaphore(max_workers)
        self._pool = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cpworker-job"
        )

    def dispatch(self, job: Mapping[str, Any]) -> Future:
        """Start executing a job in the background and return its future."""
        descriptor = descriptor_from_job(job)
        log.info(
            "Kicking off job %s for Travis action in pipeline '%s'",
            descriptor.job_id,
            descriptor.pipeline_name or "?",
        )
        execution = JobExecution(
            descriptor,
            self.builds_factory(),
            self.reporter,
            states=self.states,
            settings=self.settings,
        )
        future = self._pool.submit(execution.execute)
        future.add_done_callback(
            lambda f, job_id=descriptor.job_id: _log_result(job_id, f)
        )
        return future

    def reserve(self) -> bool:
        """Take a worker slot without blocking; False when all are busy."""
        return self._slots.acquire(blocking=False)

    def release(self) -> None:
        """Give back a slot taken with `reserve`."""
        self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; optionally wait for running ones."""
        self._pool.shutdown(wait=wait)


def _log_result(job_id: str, future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        log.error("Job %s ended with an error: %s", job_id, exc)
        return
    outcome: JobOutcome = future.result()
    if outcome.succeeded and outcome.in_progress:
        log.info("Job %s handed back to pipeline (build %s)", job_id, outcome.execution_id)
    elif outcome.succeeded:
        log.info("Job %s succeeded (build %s)", job_id, outcome.execution_id)
    else:
        log.info("Job %s failed: %s", job_id, outcome.message)


class JobPoller:
    """Poll the pipeline for jobs and pass them to a dispatcher."""

    def __init__(
        self,
        source: JobSource,
        dispatcher: TravisDispatcher,
        *,
        interval: float = DEFAULT_JOB_INTERVAL,
        sleep: Callable[[float], None] | None = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.source = source
        self.dispatcher = dispatcher
        self.interval = interval
        self._sleep = sleep

    def poll_once(self) -> str | None:
        """
        Check for one pending job and dispatch it.

        Returns:
            The dispatched job id, or None if nothing was dispatched.
        """
        if not self.dispatcher.reserve():
            log.debug("All workers busy. Trying again in %gs", self.interval)
            return None

        try:
            job = self._acquire()
            if job is None:
                self.dispatcher.release()
                return None
            future = self.dispatcher.dispatch(job)
        except BaseException:
            self.dispatcher.release()
            raise

        # The slot is held until the job's execution finishes.
        future.add_done_callback(lambda _f: self.dispatcher.release())
        return str(job["id"])

    def _acquire(self) -> Mapping[str, Any] | None:
        """Poll for jobs and acknowledge the first one, if any."""
        try:
            jobs = self.source.poll()
        except PipelineError as exc:
            log.error("%s", exc)
            return None

        if not jobs:
            log.debug("No jobs found. Trying again in %gs", self.interval)
            return None

        # Only one job per batch is supported.
        job = jobs[0]
        log.debug("Acknowledging job %s", job["id"])
        try:
            self.source.acknowledge(job)
        except PipelineError as exc:
            log.error("%s", exc)
            return None
        return job

    def run(self, stop: threading.Event) -> None:
        """Poll every interval until the stop event is set."""
        log.info("Polling for Travis jobs every %gs", self.interval)
        wait = self._sleep or stop.wait
        while not stop.is_set():
            wait(self.interval)
            if stop.is_set():
                break
            self.poll_once()
        log.info("Job polling stopped")
