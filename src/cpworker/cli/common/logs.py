"""Logging setup for the worker process."""

import logging

from rich.logging import RichHandler

from cpworker.cli.common.output import console

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3")


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger once, rendering records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
