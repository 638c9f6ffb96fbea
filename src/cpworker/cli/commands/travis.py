"""Commands for inspecting Travis builds."""

import typer

from cpworker.cli.common.context import TravisAppContext, build_travis_context
from cpworker.cli.common.exits import exit_from_exc
from cpworker.cli.common.options import (
    BranchOpt,
    OwnerOpt,
    ProjectOpt,
    TokenOpt,
    TravisUrlOpt,
)
from cpworker.cli.common.output import out
from cpworker.core.builds import BuildClientError

app = typer.Typer(
    help="Inspect and trigger Travis builds",
    no_args_is_help=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    travis_url: str = TravisUrlOpt,
):
    """Initialize Travis context."""
    ctx.obj = build_travis_context(travis_url)


@app.command()
def status(
    ctx: typer.Context,
    request_id: str = typer.Argument(..., help="Travis request id (continuation token)"),
    owner: str = OwnerOpt,
    project: str = ProjectOpt,
    token: str = TokenOpt,
):
    """
    Show the current build status of a Travis request.
    """
    appctx: TravisAppContext = ctx.obj

    try:
        with out.status("Fetching build status..."):
            build = appctx.travis.get_status(owner, project, request_id, token)
    except BuildClientError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    out.build_status_table([(request_id, build)])


@app.command()
def trigger(
    ctx: typer.Context,
    owner: str = OwnerOpt,
    project: str = ProjectOpt,
    token: str = TokenOpt,
    branch: str = BranchOpt,
):
    """
    Submit a Travis build request for a branch.
    """
    appctx: TravisAppContext = ctx.obj

    try:
        with out.status("Submitting build request..."):
            request_id = appctx.travis.submit_build(owner, project, branch, token)
    except BuildClientError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    out.success(f"Build requested for {owner}/{project}@{branch}")
    out.kv({"request id": request_id})
