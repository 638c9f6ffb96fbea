"""Per-job execution state machine.

A JobExecution owns one pipeline job from invocation to its single result
report. On the first invocation it submits a Travis build and hands the
request id back to the pipeline as a continuation token; on later
invocations it polls the build until it reaches a terminal state and
reports success or failure.

Failures never escape as a silent drop: submission errors, invalid job
configuration and polling timeouts are reported to the pipeline as job
failures. Only a failure to report is raised to the caller, and it is
confined to the thread running this job.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from cpworker.core.builds import (
    TRAVIS_STATES,
    BuildClient,
    BuildClientError,
    BuildStatus,
    FailureType,
    JobDescriptor,
    JobOutcome,
    JobPhase,
    PollTimeout,
    ReportError,
    ResultReporter,
    StateTable,
)
from cpworker.core.polling import EndCondition, PollSettings, accept_any, poll_for_build

log = logging.getLogger(__name__)

BUILD_FAILED_MESSAGE = "Travis build failed."
TIMEOUT_MESSAGE = "Timed out waiting for Travis build result."


class JobExecution:
    """Drive one pipeline job through submission, polling and reporting."""

    def __init__(
        self,
        descriptor: JobDescriptor,
        builds: BuildClient,
        reporter: ResultReporter,
        *,
        states: StateTable = TRAVIS_STATES,
        settings: PollSettings = PollSettings(),
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.descriptor = descriptor
        self.builds = builds
        self.reporter = reporter
        self.states = states
        self.settings = settings
        self._clock = clock
        self._sleep = sleep
        self.phase = JobPhase.RESUMING if descriptor.is_resume else JobPhase.NEW
        self._started = False

    def execute(self) -> JobOutcome:
        """
        Run the job to its terminal phase and report the result once.

        Returns:
            The outcome that was reported to the pipeline.

        Raises:
            ReportError: If the result could not be reported.
            RuntimeError: If called more than once.
        """
        if self._started:
            raise RuntimeError(f"job {self.descriptor.job_id} was already executed")
        self._started = True

        missing = self.descriptor.missing_fields()
        if missing:
            return self._fail(
                None,
                f"Missing action configuration: {', '.join(missing)}",
                FailureType.CONFIGURATION_ERROR,
            )

        if self.descriptor.is_resume:
            return self._resume(self.descriptor.continuation_token)
        return self._start()

    def _start(self) -> JobOutcome:
        d = self.descriptor
        self.phase = JobPhase.AWAITING_SUBMISSION
        log.info("Job %s: submitting Travis build for '%s'", d.job_id, d.branch)
        try:
            request_id = self.builds.submit_build(d.owner, d.repo, d.branch, d.api_token)
        except BuildClientError as exc:
            log.error("Job %s: build submission failed: %s", d.job_id, exc)
            return self._fail(
                None,
                f"Could not submit Travis build: {exc}",
                FailureType.SYSTEM_UNAVAILABLE,
            )

        try:
            build = self._poll(request_id, accept_any)
        except PollTimeout as exc:
            return self._timed_out(exc)
        return self._succeed(request_id, build, in_progress=True)

    def _resume(self, request_id: str) -> JobOutcome:
        try:
            build = self._poll(request_id, lambda b: self.states.is_terminal(b.state))
        except PollTimeout as exc:
            return self._timed_out(exc)
        if self.states.is_success(build.state):
            return self._succeed(request_id, build, in_progress=False)
        log.info(
            "Job %s: build %s finished with state '%s'",
            self.descriptor.job_id,
            build.build_id,
            build.state,
        )
        return self._fail(build.build_id, BUILD_FAILED_MESSAGE, FailureType.JOB_FAILED)

    def _poll(self, request_id: str, end_condition: EndCondition) -> BuildStatus:
        self.phase = JobPhase.POLLING
        return poll_for_build(
            self.builds,
            self.descriptor,
            request_id,
            end_condition,
            self.settings,
            clock=self._clock,
            sleep=self._sleep,
        )

    def _succeed(
        self, request_id: str, build: BuildStatus, *, in_progress: bool
    ) -> JobOutcome:
        log.info(
            "Job %s: reporting success for build %s (in progress: %s)",
            self.descriptor.job_id,
            build.build_id,
            in_progress,
        )
        self._report(
            self.reporter.report_success,
            self.descriptor.job_id,
            build.build_id,
            request_id if in_progress else None,
            in_progress,
        )
        self.phase = JobPhase.SUCCEEDED
        return JobOutcome(
            succeeded=True,
            execution_id=build.build_id,
            in_progress=in_progress,
            continuation_token=request_id if in_progress else None,
        )

    def _fail(
        self, execution_id: str | None, message: str, failure_type: FailureType
    ) -> JobOutcome:
        log.info(
            "Job %s: reporting failure (%s): %s",
            self.descriptor.job_id,
            failure_type.value,
            message,
        )
        self._report(
            self.reporter.report_failure,
            self.descriptor.job_id,
            execution_id,
            message,
            failure_type,
        )
        self.phase = JobPhase.FAILED
        return JobOutcome(
            succeeded=False,
            execution_id=execution_id,
            message=message,
            failure_type=failure_type,
        )

    def _timed_out(self, exc: PollTimeout) -> JobOutcome:
        log.error("Job %s: %s", self.descriptor.job_id, exc)
        # The build may exist even though it never reached an accepted state.
        execution_id = exc.last_status.build_id if exc.last_status else None
        outcome = self._fail(execution_id, TIMEOUT_MESSAGE, FailureType.JOB_FAILED)
        self.phase = JobPhase.TIMED_OUT
        return outcome

    def _report(self, fn: Callable[..., None], *args) -> None:
        try:
            fn(*args)
        except ReportError:
            self.phase = JobPhase.REPORTING_FAILED
            log.error("Job %s: could not report result", self.descriptor.job_id)
            raise
