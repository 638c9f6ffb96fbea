"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from cpworker.core.builds import TRAVIS_STATES, BuildStatus, JobOutcome, StateTable

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)


def state_style(state: str, states: StateTable = TRAVIS_STATES) -> str:
    """Return the theme style used to render a build state."""
    if states.is_failure(state):
        return "err"
    if states.is_terminal(state):
        return "ok"
    return "warn"


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def build_status_table(
        self, rows: Iterable[tuple[str, BuildStatus]], title: str = "Build status"
    ) -> None:
        """
        Expects tuples of (request id, BuildStatus)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Request ID", style="ok", no_wrap=True)
        t.add_column("Build ID", style="ok", no_wrap=True)
        t.add_column("State")
        t.add_column("Previous", style="meta")

        for request_id, status in rows:
            style = state_style(status.state)
            t.add_row(
                str(request_id),
                status.build_id,
                f"[{style}]{status.state}[/{style}]",
                status.previous_state or "",
            )

        console.print(t)

    def outcome(self, job_id: str, outcome: JobOutcome) -> None:
        """Print the reported outcome of a job."""
        if outcome.succeeded and outcome.in_progress:
            self.success(f"Job {job_id}: build submitted, pipeline will check back")
        elif outcome.succeeded:
            self.success(f"Job {job_id}: build passed")
        else:
            self.error(f"Job {job_id}: {outcome.message}")

        items: dict[str, Any] = {"build": outcome.execution_id or "-"}
        if outcome.continuation_token:
            items["continuation token"] = outcome.continuation_token
        if outcome.failure_type:
            items["failure type"] = outcome.failure_type.value
        self.kv(items)


out = Out()
