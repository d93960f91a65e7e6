import sys
import asyncio
import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# --- Settings/Logging ---
from gridscout.logging.setup import setup_logging
from gridscout.config.settings import settings

setup_logging()

from loguru import logger

from gridscout.models.enums import Direction
from gridscout.models.report import ScoutRequest, ScoutResponse
from gridscout.scouting.service import ScoutService

app = typer.Typer(
    name="gridscout",
    help="Scouting reports for esports teams from GRID match data",
    add_completion=False,
)
console = Console()


def render_response(status_code: int, response: ScoutResponse) -> None:
    """Prints a scout response as a summary panel plus the evidence table."""
    style = "green" if response.success and response.code is None else "yellow" if response.success else "red"
    title = f"HTTP {status_code} | {response.code.value if response.code else 'OK'}"
    lines = [response.message or ""]
    if response.data is not None:
        lines.append(f"[bold]{response.data.team_name}[/bold] | sample size {response.data.sample_size}")
        if response.data.date_range:
            lines.append(f"Date range: {response.data.date_range}")
    console.print(Panel("\n".join(lines), title=title, border_style=style))

    if response.data is not None and response.data.evidence:
        table = Table(title="Evidence")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_column("Sample")
        for item in response.data.evidence:
            table.add_row(item.metric, item.value, item.sample_size)
        console.print(table)

    if response.debug is not None:
        console.print_json(json.dumps(response.debug.to_wire()))


@app.command()
def scout(
    team_id: str = typer.Argument(..., help="GRID team id"),
    title_id: Optional[str] = typer.Option(None, "--title-id", help="Narrow discovery to a title"),
    tournament_ids: Optional[List[str]] = typer.Option(
        None, "--tournament-id", "-t", help="Narrow discovery to these tournaments (repeatable)"
    ),
    hours: Optional[int] = typer.Option(None, "--hours", help="Window size in hours (widened once when empty)"),
    direction: Direction = typer.Option(Direction.PAST, "--direction", help="past or next"),
    days_back: Optional[int] = typer.Option(None, "--days-back", help="Legacy days-back window"),
    max_series: Optional[int] = typer.Option(None, "--max-series", help="How many series to probe"),
    debug: bool = typer.Option(False, "--debug", help="Print the debug trace"),
) -> None:
    """Runs one scout request against GRID and prints the result."""
    request = ScoutRequest(
        team_id=team_id,
        title_id=title_id,
        tournament_ids=tournament_ids or [],
        hours=hours,
        direction=direction,
        days_back=days_back,
        max_series=max_series,
        debug=debug,
    )
    status_code, response = asyncio.run(ScoutService(settings).scout(request))
    render_response(status_code, response)
    if not response.success:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
) -> None:
    """Serves the HTTP API with uvicorn."""
    import uvicorn

    logger.info(f"Serving gridscout API on http://{host}:{port}")
    uvicorn.run("gridscout.api.app:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
