from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from fiddlekit.cli import core
from fiddlekit.internal.constants import DEFAULT_MAX_WAIT, DEFAULT_MIN_WAIT
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.contracts import ExecuteOptions
from fiddlekit.kernel.errors import FiddleError
from fiddlekit.kernel.scenarios import ScenarioRunner, SuiteReport, load_suite

logger = get_logger(__name__)

console = Console()

def render_report(report: SuiteReport, out: Console = console) -> None:
    out.print(f"[bold]{report.name}[/bold] (fiddle {report.fiddle_id})")
    for scenario in report.scenarios:
        table = Table(title=scenario.name, show_lines=False)
        table.add_column("Request")
        table.add_column("Test")
        table.add_column("Result")
        table.add_column("Detail")
        for request in scenario.requests:
            for case in request.cases:
                table.add_row(
                    request.name,
                    case.name,
                    "[green]PASS[/green]" if case.passed else "[red]FAIL[/red]",
                    "" if case.passed else (case.detail or f"expected {case.expected!r}, got {case.actual!r}"),
                )
        out.print(table)
        if scenario.error:
            out.print(f"[red]Error:[/red] {scenario.error}")

    summary = f"{report.total_cases - report.failed_cases}/{report.total_cases} tests passed"
    out.print(f"[green]{summary}[/green]" if report.passed else f"[red]{summary}[/red]")

def test(
    suite_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON suite: spec plus scenarios."),
    min_wait: float = typer.Option(DEFAULT_MIN_WAIT, "--min-wait", min=0, help="Seconds to wait before accepting results."),
    max_wait: float = typer.Option(DEFAULT_MAX_WAIT, "--max-wait", min=0, help="Seconds after which results are accepted regardless."),
    warm_up: bool = typer.Option(True, "--warm-up/--no-warm-up", help="Execute the base fiddle once before the scenarios."),
):
    """
    Run a test suite against the fiddle service and report each remote test.
    """
    try:
        suite = load_suite(suite_file)
        options = ExecuteOptions(min_wait=min_wait, max_wait=max_wait)
    except (TypeError, ValueError) as e:
        typer.echo(f"Invalid suite file {suite_file}: {e}", err=True)
        raise typer.Exit(2)

    runner = ScenarioRunner(core.build_service(), options=options, warm_up=warm_up)
    try:
        report = core.run_async(runner.run_suite(suite))
    except FiddleError as e:
        typer.echo(f"Could not run suite {suite.name}: {e}", err=True)
        logger.error("Error running suite", suite=suite.name, error=str(e))
        raise typer.Exit(1)

    render_report(report)
    if not report.passed:
        raise typer.Exit(1)
