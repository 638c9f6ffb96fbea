"""Application context management for the CLI."""

from dataclasses import dataclass

from cpworker.cli.common.exits import die
from cpworker.core.adapters.codepipeline import (
    CodePipelineJobSource,
    CodePipelineReporter,
)
from cpworker.core.adapters.travis import TravisClient
from cpworker.core.auth import AuthError, get_client


@dataclass
class TravisAppContext:
    """Application context holding the Travis client."""

    travis: TravisClient


@dataclass
class WorkerAppContext:
    """Application context holding the CodePipeline client and adapters."""

    profile: str | None
    region: str | None
    client: object
    reporter: CodePipelineReporter
    source: CodePipelineJobSource
    travis: TravisClient
    travis_url: str

    def new_travis_client(self) -> TravisClient:
        """Return a Travis client with its own HTTP session."""
        return TravisClient(base_url=self.travis_url)


def build_travis_context(travis_url: str) -> TravisAppContext:
    """Build the context for commands that only talk to Travis."""
    return TravisAppContext(travis=TravisClient(base_url=travis_url))


def build_worker_context(
    profile: str | None, region: str | None, travis_url: str
) -> WorkerAppContext:
    """Build and return the application context with AWS client and adapters.

    Args:
        profile: Optional AWS profile name to use for authentication.
        region: Optional AWS region; falls back to boto3's configuration.
        travis_url: Travis API base url.

    Returns:
        WorkerAppContext: Application context with configured client and adapters.
    """
    try:
        client = get_client(profile, region)
    except AuthError as exc:
        die(str(exc), code=1)
    return WorkerAppContext(
        profile=profile,
        region=region,
        client=client,
        reporter=CodePipelineReporter(client),
        source=CodePipelineJobSource(client),
        travis=TravisClient(base_url=travis_url),
        travis_url=travis_url,
    )
