from typing import Optional

import typer

from fiddlekit.cli import core
from fiddlekit.cli.commands import (
    get,
    publish,
    clone,
    execute,
    test,
)
from fiddlekit.internal import paths
from fiddlekit.internal.constants import BASE_URL_ENV_VAR
from fiddlekit.internal.logging import setup_logging

cli_app = typer.Typer(
    name="fiddlekit",
    help="Run fiddles on the hosted fiddle service and collect their results.",
    no_args_is_help=True,
)


@cli_app.callback()
def main(
    base_url: Optional[str] = typer.Option(None, "--base-url", envvar=BASE_URL_ENV_VAR, help="Fiddle service URL."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr."),
):
    core.set_base_url(base_url)
    if verbose:
        setup_logging(
            log_level_name="DEBUG",
            log_file_path=paths.get_log_file(),
            console_output=True,
            force=True,
        )


cli_app.command("get")(get.get)
cli_app.command("publish")(publish.publish)
cli_app.command("clone")(clone.clone)
cli_app.command("execute")(execute.execute)
cli_app.command("test")(test.test)

if __name__ == "__main__":
    cli_app()
