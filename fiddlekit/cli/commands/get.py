import typer

from fiddlekit.cli import core
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.errors import FiddleError

logger = get_logger(__name__)

def get(fiddle_id: str = typer.Argument(..., help="ID of the fiddle to load.")):
    """
    Print a fiddle as normalised JSON.
    """
    service = core.build_service()
    try:
        fiddle = core.run_async(service.get(fiddle_id))
    except FiddleError as e:
        typer.echo(f"Could not load fiddle {fiddle_id}: {e}", err=True)
        logger.error("Error loading fiddle", fiddle_id=fiddle_id, error=str(e))
        raise typer.Exit(1)

    typer.echo(core.dump_json(fiddle))
