from pathlib import Path

import typer

from fiddlekit.cli import core
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.errors import FiddleError

logger = get_logger(__name__)

def publish(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with the fiddle definition."),
):
    """
    Publish a fiddle. Creates a new one unless the definition carries an ID.
    """
    fiddle = core.load_json_file(path)
    if not isinstance(fiddle, dict):
        typer.echo(f"{path} does not contain a fiddle object", err=True)
        raise typer.Exit(1)

    service = core.build_service()
    try:
        published = core.run_async(service.publish(fiddle))
    except FiddleError as e:
        typer.echo(f"Could not publish fiddle: {e}", err=True)
        logger.error("Error publishing fiddle", path=str(path), error=str(e))
        raise typer.Exit(1)

    typer.echo(core.dump_json(published))
