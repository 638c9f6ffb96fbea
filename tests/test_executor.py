import pytest

from conftest import StubBuilds, StubReporter

from cpworker.core.builds import (
    BuildClientError,
    BuildStatus,
    FailureType,
    JobDescriptor,
    JobPhase,
    ReportError,
)
from cpworker.core.executor import BUILD_FAILED_MESSAGE, TIMEOUT_MESSAGE, JobExecution
from cpworker.core.polling import PollSettings

NEW_JOB = JobDescriptor("job-1", "", "main", "acme", "app", "tok")
RESUMED_JOB = JobDescriptor("job-1", "req-7", "main", "acme", "app", "tok")


def _execution(descriptor, builds, reporter, clock, **kwargs) -> JobExecution:
    return JobExecution(
        descriptor, builds, reporter, clock=clock, sleep=clock.sleep, **kwargs
    )


def test_new_job_reports_in_progress_with_request_id(clock):
    builds = StubBuilds([BuildStatus(build_id="42", state="created")], request_id="req-9")
    reporter = StubReporter()
    execution = _execution(NEW_JOB, builds, reporter, clock)

    assert execution.phase == JobPhase.NEW
    outcome = execution.execute()

    assert builds.submitted == [("acme", "app", "main", "tok")]
    assert builds.queries == ["req-9"]
    assert reporter.successes == [("job-1", "42", "req-9", True)]
    assert reporter.failures == []
    assert outcome.in_progress is True
    assert outcome.continuation_token == "req-9"
    assert execution.phase == JobPhase.SUCCEEDED


@pytest.mark.parametrize("state", ["created", "failed", "something-new"])
def test_new_job_accepts_any_first_snapshot(clock, state):
    builds = StubBuilds([state])
    reporter = StubReporter()

    _execution(NEW_JOB, builds, reporter, clock).execute()

    assert len(builds.queries) == 1
    assert len(reporter.successes) == 1


def test_resumed_job_reports_success_once_when_build_passes(clock):
    builds = StubBuilds(["received", "started", "started", "passed"])
    reporter = StubReporter()
    execution = _execution(RESUMED_JOB, builds, reporter, clock)

    assert execution.phase == JobPhase.RESUMING
    outcome = execution.execute()

    assert builds.submitted == []
    assert builds.queries == ["req-7"] * 4
    assert reporter.successes == [("job-1", "b-1", None, False)]
    assert reporter.failures == []
    assert outcome.succeeded is True
    assert outcome.in_progress is False


@pytest.mark.parametrize("state", ["failed", "errored", "canceled"])
def test_resumed_job_reports_failure_with_build_id(clock, state):
    builds = StubBuilds(["started", BuildStatus(build_id="77", state=state)])
    reporter = StubReporter()
    execution = _execution(RESUMED_JOB, builds, reporter, clock)

    outcome = execution.execute()

    assert reporter.successes == []
    assert reporter.failures == [
        ("job-1", "77", BUILD_FAILED_MESSAGE, FailureType.JOB_FAILED)
    ]
    assert outcome.succeeded is False
    assert execution.phase == JobPhase.FAILED


def test_query_errors_are_not_terminal(clock, query_error):
    builds = StubBuilds([query_error] * 5 + ["passed"])
    reporter = StubReporter()

    _execution(RESUMED_JOB, builds, reporter, clock).execute()

    assert len(reporter.successes) == 1
    assert reporter.failures == []


def test_timeout_never_claims_completion(clock):
    builds = StubBuilds(["started"] * 10)
    reporter = StubReporter()
    execution = _execution(
        RESUMED_JOB, builds, reporter, clock, settings=PollSettings(30, 90)
    )

    outcome = execution.execute()

    assert len(builds.queries) == 3
    assert reporter.successes == []
    assert reporter.failures == [
        ("job-1", "b-1", TIMEOUT_MESSAGE, FailureType.JOB_FAILED)
    ]
    assert outcome.succeeded is False
    assert outcome.execution_id == "b-1"
    assert execution.phase == JobPhase.TIMED_OUT


def test_timeout_without_any_status_reports_no_build(clock, query_error):
    builds = StubBuilds([query_error] * 10)
    reporter = StubReporter()
    execution = _execution(
        RESUMED_JOB, builds, reporter, clock, settings=PollSettings(30, 90)
    )

    execution.execute()

    assert reporter.failures == [
        ("job-1", None, TIMEOUT_MESSAGE, FailureType.JOB_FAILED)
    ]
    assert execution.phase == JobPhase.TIMED_OUT


def test_submission_error_is_reported_as_failure(clock):
    builds = StubBuilds(submit_error=BuildClientError("503 Service Unavailable"))
    reporter = StubReporter()
    execution = _execution(NEW_JOB, builds, reporter, clock)

    outcome = execution.execute()

    assert builds.queries == []
    assert len(reporter.failures) == 1
    job_id, execution_id, message, failure_type = reporter.failures[0]
    assert (job_id, execution_id) == ("job-1", None)
    assert "503" in message
    assert failure_type == FailureType.SYSTEM_UNAVAILABLE
    assert outcome.failure_type == FailureType.SYSTEM_UNAVAILABLE


def test_missing_configuration_fails_without_calling_travis(clock):
    descriptor = JobDescriptor("job-1", "", "", "acme", "app", "")
    builds = StubBuilds()
    reporter = StubReporter()

    outcome = _execution(descriptor, builds, reporter, clock).execute()

    assert builds.submitted == []
    assert outcome.failure_type == FailureType.CONFIGURATION_ERROR
    assert "Branch" in outcome.message
    assert "APIToken" in outcome.message


def test_reporting_error_is_raised_and_marks_phase(clock):
    builds = StubBuilds(["passed"])
    reporter = StubReporter(error=ReportError("throttled"))
    execution = _execution(RESUMED_JOB, builds, reporter, clock)

    with pytest.raises(ReportError, match="throttled"):
        execution.execute()

    assert len(reporter.successes) == 1
    assert reporter.failures == []
    assert execution.phase == JobPhase.REPORTING_FAILED


def test_execute_runs_only_once(clock):
    execution = _execution(RESUMED_JOB, StubBuilds(["passed"]), StubReporter(), clock)
    execution.execute()

    with pytest.raises(RuntimeError, match="already executed"):
        execution.execute()
