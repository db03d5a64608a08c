from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_dashboard, render_report

EXPORT_FORMATS = ("pdf", "csv", "xlsx")


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading and exporting BioDash biodigester reports.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="BioDash API base URL (defaults to API_BASE_URL env or http://localhost:3003).",
    ),
    owner_id: Optional[str] = typer.Option(
        None,
        "--owner-id",
        "-o",
        help="Scope figures to one owner (defaults to BIODASH_OWNER_ID env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, owner_id=owner_id, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("dashboard")
def dashboard_command(ctx: typer.Context) -> None:
    """Show this week's and this month's indicator figures."""
    state = _get_state(ctx)
    render_dashboard(state.client.get_dashboard())


@app.command("report")
def report_command(ctx: typer.Context) -> None:
    """Print the monthly report with recent activity."""
    state = _get_state(ctx)
    render_report(state.client.get_report())


@app.command("export")
def export_command(
    ctx: typer.Context,
    export_format: str = typer.Argument(..., help="One of: pdf, csv, xlsx."),
    filename: str = typer.Option(
        "biodigester-report",
        "--filename",
        "-f",
        help="File name without extension.",
    ),
    output_dir: Path = typer.Option(
        Path("."),
        "--output-dir",
        "-d",
        file_okay=False,
        help="Directory the exported file is written to.",
    ),
) -> None:
    """Download the report in the chosen format."""
    normalized = export_format.lower()
    if normalized not in EXPORT_FORMATS:
        raise typer.BadParameter(
            f"Unsupported format {export_format!r}; choose one of {', '.join(EXPORT_FORMATS)}.",
            param_hint="EXPORT_FORMAT",
        )
    state = _get_state(ctx)
    typer.echo(f"Exporting {normalized} report from {state.config.base_url} ...")
    saved_name, content = state.client.export_report(normalized, filename)

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / Path(saved_name).name
    target.write_bytes(content)
    typer.secho(f"Saved {target} ({len(content)} bytes).", fg=typer.colors.GREEN)
