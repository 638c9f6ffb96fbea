from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from botocore.exceptions import BotoCoreError, ClientError

from cpworker.core.builds import FailureType, PipelineError, ReportError

log = logging.getLogger(__name__)

_MAX_MESSAGE_LENGTH = 5000
DEFAULT_FAILURE_MESSAGE = "Travis build failed."


@dataclass(frozen=True)
class ActionType:
    """
    Identifies the custom pipeline action served by this worker.

    Must match the action type registered in CodePipeline.
    """

    provider: str = "Travis"
    category: str = "Test"
    owner: str = "Custom"
    version: str = "1"

    def as_dict(self) -> dict[str, str]:
        """Return the `actionTypeId` shape expected by the CodePipeline API."""
        return {
            "category": self.category,
            "owner": self.owner,
            "provider": self.provider,
            "version": self.version,
        }


class CodePipelineReporter:
    """Report job results to CodePipeline."""

    def __init__(self, client):
        """Wrap a boto3 `codepipeline` client (shared, read-only)."""
        self.client = client

    def report_success(
        self,
        job_id: str,
        execution_id: str,
        continuation_token: str | None,
        in_progress: bool,
    ) -> None:
        """
        Report a job as successful.

        When in_progress is True the continuation token and execution id
        are attached so the pipeline invokes the job again later.
        """
        log.debug(
            "Reporting success for job %s, build '%s', continuing=%s",
            job_id,
            execution_id,
            in_progress,
        )
        kwargs: dict[str, Any] = {"jobId": job_id}
        if in_progress:
            kwargs["continuationToken"] = continuation_token
            kwargs["executionDetails"] = {"externalExecutionId": execution_id}
        try:
            self.client.put_job_success_result(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise ReportError(f"Could not report success for job {job_id}: {exc}") from exc

    def report_failure(
        self,
        job_id: str,
        execution_id: str | None,
        message: str = DEFAULT_FAILURE_MESSAGE,
        failure_type: FailureType = FailureType.JOB_FAILED,
    ) -> None:
        """Report a job as permanently failed."""
        log.debug("Reporting failure for job %s, build '%s'", job_id, execution_id)
        details: dict[str, str] = {
            "type": FailureType(failure_type).value,
            "message": message[:_MAX_MESSAGE_LENGTH],
        }
        if execution_id:
            details["externalExecutionId"] = execution_id
        try:
            self.client.put_job_failure_result(jobId=job_id, failureDetails=details)
        except (ClientError, BotoCoreError) as exc:
            raise ReportError(f"Could not report failure for job {job_id}: {exc}") from exc


class CodePipelineJobSource:
    """Poll CodePipeline for pending jobs of one action type."""

    def __init__(
        self,
        client,
        action_type: ActionType = ActionType(),
        batch_size: int = 1,
        query_param: Mapping[str, str] | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.client = client
        self.action_type = action_type
        self.batch_size = batch_size
        self.query_param = dict(query_param) if query_param else None

    def poll(self) -> list[dict]:
        """Return the jobs currently waiting for this action (may be empty)."""
        kwargs: dict[str, Any] = {
            "actionTypeId": self.action_type.as_dict(),
            "maxBatchSize": self.batch_size,
        }
        if self.query_param:
            kwargs["queryParam"] = self.query_param
        try:
            resp = self.client.poll_for_jobs(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise PipelineError(f"Polling for jobs failed: {exc}") from exc
        return list(resp.get("jobs") or [])

    def acknowledge(self, job: Mapping[str, Any]) -> None:
        """Acknowledge a job so that no other worker picks it up."""
        try:
            self.client.acknowledge_job(jobId=job["id"], nonce=job["nonce"])
        except (ClientError, BotoCoreError) as exc:
            raise PipelineError(f"Could not acknowledge job {job['id']}: {exc}") from exc
