# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from gridstate.logging import get_logger
from gridstate.logging.formats import friendly_size
from gridstate.state import ModelState

_log = get_logger(__name__)


@click.command("inspect")
@click.option("--json", "as_json", is_flag=True, help="output JSON instead of a table")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(as_json: bool, path: Path):
    """
    Describe the tensors in an encoded model state file.
    """
    log = _log.bind(path=str(path))
    log.info("reading model state")
    state = ModelState.decode(path.read_bytes())

    if as_json:
        rows = [
            {"position": i, "dtype": t.dtype.name.lower(), "shape": list(t.shape), "size": t.size}
            for i, t in enumerate(state)
        ]
        click.echo(json.dumps({"tensors": rows, "nbytes": state.nbytes}, indent=2))
        return

    table = Table(title=f"{path.name}: {len(state)} tensors, {friendly_size(state.nbytes)}")
    table.add_column("Position", justify="right")
    table.add_column("Type")
    table.add_column("Shape")
    table.add_column("Elements", justify="right")
    for i, t in enumerate(state):
        shape = " × ".join(str(d) for d in t.shape) or "scalar"
        table.add_row(str(i), t.dtype.name.lower(), shape, f"{t.size:,}")

    console = Console()
    console.print(table)
