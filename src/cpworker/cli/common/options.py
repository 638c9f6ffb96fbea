"""Common CLI options for the CLI."""

import typer

from cpworker.core.adapters.travis import DEFAULT_TRAVIS_URL
from cpworker.core.dispatch import DEFAULT_JOB_INTERVAL
from cpworker.core.polling import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    envvar="AWS_PROFILE",
    help="AWS profile (from ~/.aws/config)",
)

RegionOpt = typer.Option(
    None,
    "--region",
    "-r",
    envvar="AWS_REGION",
    help="AWS region of the pipeline",
)

TravisUrlOpt = typer.Option(
    DEFAULT_TRAVIS_URL,
    "--travis-url",
    envvar="CPWORKER_TRAVIS_URL",
    help="Travis API base url (api.travis-ci.org or api.travis-ci.com)",
)

JobIntervalOpt = typer.Option(
    DEFAULT_JOB_INTERVAL,
    "--job-interval",
    envvar="CPWORKER_JOB_INTERVAL",
    min=1.0,
    help="Seconds between checks for new pipeline jobs",
)

PollIntervalOpt = typer.Option(
    DEFAULT_POLL_INTERVAL,
    "--poll-interval",
    envvar="CPWORKER_POLL_INTERVAL",
    min=1.0,
    help="Seconds between Travis build status checks",
)

TimeoutOpt = typer.Option(
    DEFAULT_POLL_TIMEOUT,
    "--timeout",
    envvar="CPWORKER_POLL_TIMEOUT",
    min=1.0,
    help="Seconds to wait for a build result before failing the job",
)

MaxWorkersOpt = typer.Option(
    8,
    "--max-workers",
    "-n",
    envvar="CPWORKER_MAX_WORKERS",
    min=1,
    help="Number of jobs executed concurrently",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)

OwnerOpt = typer.Option(..., "--owner", help="Repository owner")

ProjectOpt = typer.Option(..., "--project", help="Repository name")

TokenOpt = typer.Option(
    ...,
    "--token",
    envvar="TRAVIS_API_TOKEN",
    help="Travis API token",
)

BranchOpt = typer.Option("master", "--branch", "-b", help="Branch to build")
