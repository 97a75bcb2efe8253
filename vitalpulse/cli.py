# vitalpulse/cli.py
from __future__ import annotations

import asyncio
import datetime as dt
import os
from pathlib import Path
from typing import Optional

import typer

from .config import get_settings
from .csv_export import read_csv
from .dashboard import fetch_dashboard, render_dashboard
from .errors import AuthorizationDenied, VitalPulseError
from .export import ExportResult, ExportService
from .presets import DatePreset, today_local
from .query import MetricQueryService
from .sheets import push_records
from .sources.apple_health import AppleHealthExportProvider
from .utils import configure_logging, redact

app = typer.Typer(no_args_is_help=True, help="VitalPulse: daily health metrics dashboard and CSV export")

# ---------- helpers ----------

def _provider() -> AppleHealthExportProvider:
    settings = get_settings()
    sources = None
    if settings.APPLE_HEALTH_SOURCES:
        sources = [s.strip() for s in settings.APPLE_HEALTH_SOURCES.split(",") if s.strip()]
    return AppleHealthExportProvider(settings.APPLE_HEALTH_EXPORT, sources=sources)


def _parse_date(value: str, name: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        raise typer.BadParameter(f"{name} must be YYYY-MM-DD, got {value!r}")


def _finish(result: ExportResult) -> None:
    typer.echo(result.status)
    if not result.ok:
        raise typer.Exit(code=1)
    typer.echo(f"File: {result.path}")


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Verbose logs"),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--console-logs", help="Log format"),
) -> None:
    configure_logging(json_logs=json_logs, debug=debug)


# ---------- commands ----------

@app.command("diag")
def diag() -> None:
    """Show effective configuration."""
    s = get_settings()
    export = s.APPLE_HEALTH_EXPORT
    typer.echo(f"TZ: {s.TZ}")
    typer.echo(f"APPLE_HEALTH_EXPORT: {export}  (exists={os.path.exists(export)})")
    typer.echo(f"APPLE_HEALTH_SOURCES: {s.APPLE_HEALTH_SOURCES or '(all)'}")
    typer.echo(f"EXPORT_DIR: {s.EXPORT_DIR}")
    typer.echo(f"MAX_CONCURRENT_QUERIES: {s.MAX_CONCURRENT_QUERIES}")
    typer.echo(f"SPREADSHEET_ID: {redact(s.SPREADSHEET_ID)}")
    typer.echo(f"GOOGLE_SERVICE_ACCOUNT_JSON set: {bool(s.GOOGLE_SERVICE_ACCOUNT_JSON)}")


@app.command("presets")
def presets() -> None:
    """List date presets and the days they cover today."""
    today = today_local()
    for p in DatePreset:
        start, end = p.date_range(today)
        typer.echo(f"{p.value:<14} {start} .. {end}  ({(end - start).days + 1} days)")


@app.command("dashboard")
def dashboard() -> None:
    """Today's values for every tracked metric."""
    provider = _provider()

    async def run():
        if not await provider.request_authorization([]):
            raise AuthorizationDenied()
        return await fetch_dashboard(MetricQueryService(provider))

    try:
        snapshot = asyncio.run(run())
    except AuthorizationDenied as e:
        typer.echo(f"{e}. Point APPLE_HEALTH_EXPORT at a readable export.xml.")
        raise typer.Exit(code=1)
    except VitalPulseError as e:
        typer.echo(f"Dashboard failed: {e}")
        raise typer.Exit(code=1)

    typer.echo(f"VitalPulse {snapshot.taken_at:%Y-%m-%d %H:%M}")
    for title, value in render_dashboard(snapshot):
        typer.echo(f"  {title:<14} {value}")


@app.command("export")
def export(
    preset: str = typer.Option("Last 7 Days", help="Preset name, e.g. 'Last 7 Days', 'last_month'"),
    out_dir: Optional[Path] = typer.Option(None, help="Directory for the CSV (default EXPORT_DIR)"),
) -> None:
    """Export a preset date range to CSV."""
    try:
        chosen = DatePreset.parse(preset)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    typer.echo(f"Fetching health data for {chosen.value}...")
    service = ExportService(_provider(), export_dir=out_dir)
    _finish(asyncio.run(service.run_preset(chosen)))


@app.command("export-range")
def export_range(
    start: str = typer.Option(..., help="Start date YYYY-MM-DD"),
    end: str = typer.Option(..., help="End date YYYY-MM-DD (inclusive)"),
    out_dir: Optional[Path] = typer.Option(None, help="Directory for the CSV (default EXPORT_DIR)"),
) -> None:
    """Export a custom date range (inclusive) to CSV."""
    start_date = _parse_date(start, "start")
    end_date = _parse_date(end, "end")
    if start_date > end_date:
        raise typer.BadParameter("start date is after end date")
    typer.echo("Fetching health data...")
    service = ExportService(_provider(), export_dir=out_dir)
    _finish(asyncio.run(service.run_range(start_date, end_date)))


@app.command("push-sheet")
def push_sheet(
    csv_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV produced by export"),
    tab: Optional[str] = typer.Option(None, help="Sheet tab (default SHEET_NAME)"),
) -> None:
    """Share an exported CSV by upserting its days into the Google Sheet."""
    records = read_csv(csv_file.read_text(encoding="utf-8"))
    updated, appended = push_records(records, tab=tab)
    typer.echo(f"OK — {updated} updated, {appended} appended.")


if __name__ == "__main__":
    app()
