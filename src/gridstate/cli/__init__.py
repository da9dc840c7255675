# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

import os
import sys
from pathlib import Path

import click

from gridstate import __version__
from gridstate.config import configure, locate_configuration_root
from gridstate.logging import LoggingConfig, console, get_logger
from gridstate.logging.config import LogFormat, StreamMode

from .inspect_state import inspect

__all__ = ["gridstate", "main", "version"]
_log = get_logger(__name__)


def main():
    """
    Run the main gridstate CLI.  This just delegates to :func:`gridstate`, but
    pretty-prints errors.
    """
    try:
        ec = gridstate.main(standalone_mode=False)
    except click.ClickException as e:
        _log.error("CLI error, terminating: %s", e)
        sys.exit(2)
    except Exception as e:
        _log.error("gridstate command failed", exc_info=e)
        sys.exit(3)

    if isinstance(ec, int):
        sys.exit(ec)


@click.group("gridstate")
@click.option("-v", "--verbose", "verbosity", count=True, help="Enable verbose logging output")
@click.option(
    "--log-file",
    type=Path,
    metavar="FILE",
    help="Also write log messages to FILE.",
)
@click.option(
    "--log-file-format",
    type=click.Choice(["json", "logfmt", "text"]),
    default="json",
    help="Format for messages in the log file.",
)
@click.option(
    "--log-stream",
    "stream_mode",
    type=click.Choice(["full", "simple", "json"]),
    default="full",
    help="Format for log messages on standard error.",
)
@click.option("--skip-log-setup", is_flag=True, hidden=True, envvar="GS_SKIP_LOG_SETUP")
@click.option(
    "-R",
    "--project-root",
    type=Path,
    metavar="DIR",
    help="Look for project root in DIR for configuration files.",
)
def gridstate(
    verbosity: int,
    project_root: Path | None,
    log_file: Path | None = None,
    log_file_format: LogFormat = "json",
    stream_mode: StreamMode = "full",
    skip_log_setup: bool = False,
):
    """
    Inspect and manage model weight state.
    """

    # this code is run before any other command logic, so we can do global setup
    if not skip_log_setup:
        lc = LoggingConfig()
        lc.set_stream_mode(stream_mode)
        if verbosity:
            lc.set_verbose(verbosity)
        if log_file is not None:
            lc.set_log_file(log_file, lc.file_level, log_file_format)
        lc.apply()

    if project_root is None:
        if pr := os.environ.get("GS_PROJECT_ROOT"):
            project_root = Path(pr)
        else:
            project_root = locate_configuration_root()

    configure(cfg_dir=project_root)


@gridstate.command("version")
def version():
    """
    Print gridstate version info.
    """
    console.print(f"gridstate version [bold cyan]{__version__}[/bold cyan].")


gridstate.add_command(inspect)
