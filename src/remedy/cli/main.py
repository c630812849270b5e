"""Click CLI entry point for Remedy."""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from remedy._version import __version__
from remedy.core.output import error_console


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a Rich handler to the ``remedy`` logger tree."""
    logger = logging.getLogger("remedy")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        handler = RichHandler(console=error_console, show_time=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger


@click.group()
@click.version_option(version=__version__, prog_name="remedy")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Remedy - verified auto-remediation for security findings.

    Scan C/C++, Rust and Java code, generate fixes that are reviewed and
    compiled before you see them, and roll them back if needed.
    """
    setup_logging(verbose)


# Import and register subcommands
from remedy.cli.scan_cmd import scan  # noqa: E402
from remedy.cli.fix_cmd import fix  # noqa: E402
from remedy.cli.shell_cmd import shell  # noqa: E402

cli.add_command(scan)
cli.add_command(fix)
cli.add_command(shell)


if __name__ == "__main__":
    cli()
