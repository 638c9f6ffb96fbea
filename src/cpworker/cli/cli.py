"""CLI application for the CodePipeline Travis worker."""

import typer

from cpworker.cli.commands.travis import app as travis_app
from cpworker.cli.commands.worker import app as worker_app

app = typer.Typer(
    help="cpworker - run Travis CI builds for AWS CodePipeline custom actions",
    no_args_is_help=True,
)

app.add_typer(worker_app, name="worker", help="Run / execute CodePipeline jobs.")
app.add_typer(travis_app, name="travis", help="Inspect / trigger Travis builds.")


if __name__ == "__main__":
    app()
