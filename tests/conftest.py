from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from cpworker.core.builds import BuildClientError, BuildStatus  # noqa: E402


class FakeClock:
    """Monotonic clock advanced only by `sleep`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubBuilds:
    """Build client returning scripted statuses (or raising scripted errors)."""

    def __init__(self, statuses=(), request_id: str = "req-1", submit_error=None):
        self.statuses = list(statuses)
        self.request_id = request_id
        self.submit_error = submit_error
        self.submitted: list[tuple[str, str, str, str]] = []
        self.queries: list[str] = []

    def submit_build(self, owner: str, repo: str, branch: str, token: str) -> str:
        self.submitted.append((owner, repo, branch, token))
        if self.submit_error is not None:
            raise self.submit_error
        return self.request_id

    def get_status(self, owner: str, repo: str, request_id: str, token: str) -> BuildStatus:
        self.queries.append(request_id)
        if not self.statuses:
            return BuildStatus(build_id="b-0", state="started")
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return BuildStatus(build_id="b-1", state=item)
        return item


class StubReporter:
    """Result reporter recording every call."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.successes: list[tuple] = []
        self.failures: list[tuple] = []

    def report_success(self, job_id, execution_id, continuation_token, in_progress):
        self.successes.append((job_id, execution_id, continuation_token, in_progress))
        if self.error is not None:
            raise self.error

    def report_failure(self, job_id, execution_id, message="", failure_type=None):
        self.failures.append((job_id, execution_id, message, failure_type))
        if self.error is not None:
            raise self.error


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def query_error() -> BuildClientError:
    return BuildClientError("connection reset")
