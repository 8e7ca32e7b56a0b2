from pathlib import Path
from typing import List, Optional

import typer

from fiddlekit.cli import core
from fiddlekit.internal.constants import DEFAULT_MAX_WAIT, DEFAULT_MIN_WAIT, DEFAULT_RESULT_TIMEOUT
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.contracts import ExecuteOptions
from fiddlekit.kernel.errors import FiddleError

logger = get_logger(__name__)

def execute(
    fiddle: str = typer.Argument(..., help="Fiddle ID, or a JSON file with a fiddle to publish first."),
    wait_for: Optional[List[str]] = typer.Option(None, "--wait-for", help="Built-in result condition to wait for ('tests')."),
    min_wait: float = typer.Option(DEFAULT_MIN_WAIT, "--min-wait", min=0, help="Seconds to wait before returning results."),
    max_wait: float = typer.Option(DEFAULT_MAX_WAIT, "--max-wait", min=0, help="Seconds after which results are returned regardless."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0,
        help=f"Seconds to wait for a first result before giving up (default: {DEFAULT_RESULT_TIMEOUT:g}, or --max-wait if longer).",
    ),
    cache_id: Optional[str] = typer.Option(None, "--cache-id", help="Cache context to execute in (random by default)."),
):
    """
    Execute a fiddle and print the collected result data as JSON.
    """
    workload = fiddle
    if fiddle.endswith(".json") and Path(fiddle).is_file():
        workload = core.load_json_file(Path(fiddle))

    try:
        options = ExecuteOptions(
            min_wait=min_wait,
            max_wait=max_wait,
            wait_for=wait_for or [],
            cache_id=cache_id,
            **({"timeout": timeout} if timeout is not None else {}),
        )
    except (TypeError, ValueError) as e:
        typer.echo(f"Invalid options: {e}", err=True)
        raise typer.Exit(2)

    service = core.build_service()
    try:
        result = core.run_async(service.execute(workload, options))
    except (FiddleError, ValueError) as e:
        typer.echo(f"Execution failed: {e}", err=True)
        logger.error("Error executing fiddle", fiddle=fiddle, error=str(e))
        raise typer.Exit(1)

    typer.echo(core.dump_json(result))
