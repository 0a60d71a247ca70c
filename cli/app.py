from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_alert,
    render_alerts,
    render_import,
    render_readings,
    render_summary,
    render_thresholds,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the AgriLink monitoring service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_PERIOD_HELP = "day, week, month or custom (custom needs --start)."


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _filters(
    period: str,
    start: Optional[str],
    end: Optional[str],
    sensor_type: Optional[str],
    location: Optional[str],
) -> Dict[str, Any]:
    return {
        "period": period,
        "start": start,
        "end": end,
        "sensor_type": sensor_type,
        "location": location,
    }


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    owner: Optional[str] = typer.Option(
        None,
        "--owner",
        "-o",
        help="Owner id sent as X-Owner-Id (defaults to AGRILINK_OWNER_ID env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, owner_id=owner, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("summary")
def summary_command(
    ctx: typer.Context,
    period: str = typer.Option("day", "--period", "-p", help=_PERIOD_HELP),
    start: Optional[str] = typer.Option(None, "--start", help="Custom start date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Custom end date, inclusive."),
    sensor_type: Optional[str] = typer.Option(None, "--type", "-t", help="humidity, temperature or water."),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
) -> None:
    """Show the latest value and trend for each sensor type."""
    state = _get_state(ctx)
    payload = state.client.get_summary(_filters(period, start, end, sensor_type, location))
    render_summary(payload)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    period: str = typer.Option("day", "--period", "-p", help=_PERIOD_HELP),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    sensor_type: Optional[str] = typer.Option(None, "--type", "-t"),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
    newest_first: bool = typer.Option(False, "--newest-first/--oldest-first"),
) -> None:
    """List filtered readings."""
    state = _get_state(ctx)
    filters = _filters(period, start, end, sensor_type, location)
    filters["order"] = "desc" if newest_first else "asc"
    render_readings(state.client.get_readings(filters))


@app.command("export")
def export_command(
    ctx: typer.Context,
    fmt: str = typer.Option("csv", "--format", "-f", help="csv or json."),
    output: Optional[Path] = typer.Option(
        None, "--output", help="Destination file (defaults to the server-suggested name)."
    ),
    period: str = typer.Option("day", "--period", "-p", help=_PERIOD_HELP),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    sensor_type: Optional[str] = typer.Option(None, "--type", "-t"),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
) -> None:
    """Download filtered readings as CSV or JSON."""
    state = _get_state(ctx)
    filename, body = state.client.export(fmt, _filters(period, start, end, sensor_type, location))
    destination = output or Path(filename)
    destination.write_text(body, encoding="utf-8")
    typer.secho(f"Exported to {destination}", fg=typer.colors.GREEN)


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    view: str = typer.Option("all", "--view", help="all, unread or high."),
) -> None:
    """List alerts, most recent first."""
    state = _get_state(ctx)
    render_alerts(state.client.get_alerts(view))


@app.command("mark-read")
def mark_read_command(
    ctx: typer.Context,
    alert_ids: List[str] = typer.Argument(..., help="One or more alert ids."),
) -> None:
    """Mark alerts as read."""
    state = _get_state(ctx)
    for alert_id in alert_ids:
        state.client.mark_read(alert_id)
        typer.secho(f"Alert {alert_id} marked as read.", fg=typer.colors.GREEN)


@app.command("seed-alerts")
def seed_alerts_command(ctx: typer.Context) -> None:
    """Create the demo alerts."""
    state = _get_state(ctx)
    alerts = state.client.seed_alerts()
    typer.echo(f"Created {len(alerts)} alerts.")
    for alert in alerts:
        render_alert(alert)


@app.command("import")
def import_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Bulk import readings from a CSV file."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    render_import(state.client.import_file(file))


@app.command("thresholds")
def thresholds_command(
    ctx: typer.Context,
    updates: List[str] = typer.Argument(
        None, help="Optional TYPE=MIN:MAX pairs, e.g. temperature=15:30."
    ),
) -> None:
    """Show alert thresholds, or update them."""
    state = _get_state(ctx)
    if not updates:
        render_thresholds(state.client.get_thresholds())
        return

    parsed: Dict[str, Dict[str, float]] = {}
    for item in updates:
        try:
            sensor_type, band = item.split("=", 1)
            low, high = band.split(":", 1)
            parsed[sensor_type.strip()] = {"min": float(low), "max": float(high)}
        except ValueError as exc:
            raise typer.BadParameter(f"Expected TYPE=MIN:MAX, got {item!r}.") from exc
    render_thresholds(state.client.set_thresholds(parsed))


if __name__ == "__main__":
    app()
