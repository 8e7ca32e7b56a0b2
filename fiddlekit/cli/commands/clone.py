import typer

from fiddlekit.cli import core
from fiddlekit.kernel.errors import FiddleError

def clone(fiddle_id: str = typer.Argument(..., help="ID of the fiddle to clone.")):
    """
    Copy a fiddle to a new ID and print the new fiddle.
    """
    service = core.build_service()
    try:
        fiddle = core.run_async(service.clone(fiddle_id))
    except FiddleError as e:
        typer.echo(f"Could not clone fiddle {fiddle_id}: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(core.dump_json(fiddle))
