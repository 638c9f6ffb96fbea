"""Commands for running the CodePipeline job worker."""

import signal
import threading

import typer

from cpworker.cli.common.context import WorkerAppContext, build_worker_context
from cpworker.cli.common.exits import die, exit_from_exc
from cpworker.cli.common.logs import setup_logging
from cpworker.cli.common.options import (
    BranchOpt,
    JobIntervalOpt,
    MaxWorkersOpt,
    OwnerOpt,
    PollIntervalOpt,
    ProfileOpt,
    ProjectOpt,
    RegionOpt,
    TimeoutOpt,
    TokenOpt,
    TravisUrlOpt,
    VerboseOpt,
)
from cpworker.cli.common.output import out
from cpworker.core.builds import JobDescriptor, ReportError
from cpworker.core.dispatch import JobPoller, TravisDispatcher
from cpworker.core.executor import JobExecution
from cpworker.core.polling import PollSettings

app = typer.Typer(
    help="Run the CodePipeline job worker",
    no_args_is_help=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    profile: str | None = ProfileOpt,
    region: str | None = RegionOpt,
    travis_url: str = TravisUrlOpt,
    verbose: bool = VerboseOpt,
):
    """Initialize worker context (AWS client + adapters)."""
    setup_logging(verbose)
    ctx.obj = build_worker_context(profile, region, travis_url)


def _poll_settings(poll_interval: float, timeout: float) -> PollSettings:
    try:
        return PollSettings(interval=poll_interval, timeout=timeout)
    except ValueError as e:
        die(str(e), code=2)


@app.command()
def run(
    ctx: typer.Context,
    job_interval: float = JobIntervalOpt,
    poll_interval: float = PollIntervalOpt,
    timeout: float = TimeoutOpt,
    max_workers: int = MaxWorkersOpt,
):
    """
    Poll CodePipeline for Travis jobs until interrupted.
    """
    appctx: WorkerAppContext = ctx.obj
    settings = _poll_settings(poll_interval, timeout)

    dispatcher = TravisDispatcher(
        appctx.new_travis_client,
        appctx.reporter,
        max_workers=max_workers,
        settings=settings,
    )
    poller = JobPoller(appctx.source, dispatcher, interval=job_interval)

    stop = threading.Event()

    def _handle_signal(signum, frame):
        out.warn(f"Received signal {signum}, shutting down...")
        stop.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    out.info("Starting worker service...")
    try:
        poller.run(stop)
    finally:
        out.info("Waiting for running jobs to finish...")
        dispatcher.shutdown(wait=True)
    out.success("Worker stopped")


@app.command()
def execute(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="CodePipeline job id"),
    owner: str = OwnerOpt,
    project: str = ProjectOpt,
    token: str = TokenOpt,
    branch: str = BranchOpt,
    continuation_token: str = typer.Option(
        "",
        "--continuation-token",
        "-c",
        help="Travis request id from a previous invocation",
    ),
    poll_interval: float = PollIntervalOpt,
    timeout: float = TimeoutOpt,
):
    """
    Execute a single job in the foreground and report its result.
    """
    appctx: WorkerAppContext = ctx.obj
    descriptor = JobDescriptor(
        job_id=job_id,
        continuation_token=continuation_token,
        branch=branch,
        owner=owner,
        repo=project,
        api_token=token,
    )
    execution = JobExecution(
        descriptor,
        appctx.travis,
        appctx.reporter,
        settings=_poll_settings(poll_interval, timeout),
    )

    try:
        outcome = execution.execute()
    except ReportError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    out.outcome(job_id, outcome)
    if not outcome.succeeded:
        raise typer.Exit(1)
