"""Core build domain models, state classification and collaborator interfaces.

This module defines the data structures shared by the job execution state
machine (JobDescriptor, BuildStatus, JobOutcome) together with the Travis
state lookup table and the Protocols the core uses to talk to the CI
provider and to the pipeline service. It is intentionally free of HTTP and
AWS concerns so that it can be reused by the worker, the CLI and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class WorkerError(RuntimeError):
    """Base class for all worker errors."""


class BuildClientError(WorkerError):
    """Raised when a call to the CI provider fails."""


class ReportError(WorkerError):
    """Raised when reporting a job result to the pipeline service fails."""


class PipelineError(WorkerError):
    """Raised when polling or acknowledging pipeline jobs fails."""


class PollTimeout(WorkerError):
    """Raised when no acceptable build status was seen before the deadline."""

    def __init__(self, message: str, last_status: BuildStatus | None = None):
        super().__init__(message)
        self.last_status = last_status


@dataclass(frozen=True)
class JobDescriptor:
    """
    Represents one pipeline job handed to the worker.

    Attributes:
        job_id: Pipeline job identifier.
        continuation_token: Opaque token from a previous invocation. Empty
            on the first invocation of a job.
        branch: Branch to build.
        owner: Repository owner.
        repo: Repository name.
        api_token: Travis API token.
        pipeline_name: Name of the pipeline the job belongs to (logging only).
    """

    job_id: str
    continuation_token: str
    branch: str
    owner: str
    repo: str
    api_token: str
    pipeline_name: str = ""

    @property
    def is_resume(self) -> bool:
        """True when the job continues a previously submitted build."""
        return bool(self.continuation_token)

    def missing_fields(self) -> list[str]:
        """Return the names of required configuration values that are empty."""
        required = {
            "Branch": self.branch,
            "Owner": self.owner,
            "ProjectName": self.repo,
            "APIToken": self.api_token,
        }
        return [name for name, value in required.items() if not value]


@dataclass(frozen=True)
class BuildStatus:
    """
    Snapshot of a Travis build returned by a status query.

    Attributes:
        build_id: Travis build identifier.
        state: Current build state (e.g. "started", "passed").
        previous_state: State of the previous build on the branch, if any.
    """

    build_id: str
    state: str
    previous_state: str | None = None


@dataclass(frozen=True)
class StateTable:
    """
    Fixed lookup table classifying CI provider build states.

    A state that is not success-compatible is treated as a failure.
    """

    success: frozenset[str]
    failure: frozenset[str]
    terminal: frozenset[str]

    def __post_init__(self) -> None:
        if not self.failure <= self.terminal:
            raise ValueError("every failure state must be terminal")
        if not self.terminal <= (self.success | self.failure):
            raise ValueError("terminal states must be success or failure states")

    def is_success(self, state: str) -> bool:
        """Return True if the state does not indicate a failed build."""
        return state in self.success

    def is_failure(self, state: str) -> bool:
        """Return True if the state indicates a failed build."""
        return not self.is_success(state)

    def is_terminal(self, state: str) -> bool:
        """Return True if the build will not progress beyond this state."""
        return state in self.terminal


TRAVIS_STATES = StateTable(
    success=frozenset({"created", "received", "started", "passed"}),
    failure=frozenset({"failed", "errored", "canceled"}),
    terminal=frozenset({"passed", "failed", "errored", "canceled"}),
)


class FailureType(str, Enum):
    """Failure classifications understood by CodePipeline."""

    JOB_FAILED = "JobFailed"
    CONFIGURATION_ERROR = "ConfigurationError"
    SYSTEM_UNAVAILABLE = "SystemUnavailable"


class JobPhase(str, Enum):
    """
    States of a single job execution.

    Values:
        NEW: First invocation, no build submitted yet.
        RESUMING: Invocation carrying a continuation token.
        AWAITING_SUBMISSION: A build request is being submitted.
        POLLING: Waiting for an acceptable build status.
        SUCCEEDED: A success result was reported.
        FAILED: A failure result was reported.
        TIMED_OUT: Polling hit the deadline; a failure result was reported.
        REPORTING_FAILED: The result could not be reported.
    """

    NEW = "NEW"
    RESUMING = "RESUMING"
    AWAITING_SUBMISSION = "AWAITING_SUBMISSION"
    POLLING = "POLLING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    REPORTING_FAILED = "REPORTING_FAILED"


@dataclass(frozen=True)
class JobOutcome:
    """
    Result reported back to the pipeline for one job invocation.

    Attributes:
        succeeded: Whether a success result was reported.
        execution_id: External execution id (the Travis build id), if known.
        in_progress: True when the job must be invoked again with
            continuation_token.
        continuation_token: Token handed back to the pipeline, if any.
        message: Failure message, if any.
        failure_type: Failure classification, if any.
    """

    succeeded: bool
    execution_id: str | None = None
    in_progress: bool = False
    continuation_token: str | None = None
    message: str | None = None
    failure_type: FailureType | None = None


class BuildClient(Protocol):
    """Interface for submitting and inspecting CI builds."""

    def submit_build(self, owner: str, repo: str, branch: str, token: str) -> str:
        """Submit a build request for a branch and return its request id."""
        ...

    def get_status(
        self, owner: str, repo: str, request_id: str, token: str
    ) -> BuildStatus:
        """Return the current status of the build created by a request."""
        ...


class ResultReporter(Protocol):
    """Interface for reporting job results to the pipeline service."""

    def report_success(
        self,
        job_id: str,
        execution_id: str,
        continuation_token: str | None,
        in_progress: bool,
    ) -> None:
        """Report a successful (or still running) job."""
        ...

    def report_failure(
        self,
        job_id: str,
        execution_id: str | None,
        message: str = ...,
        failure_type: FailureType = ...,
    ) -> None:
        """Report a failed job."""
        ...
