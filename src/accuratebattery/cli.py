"""Accurate Battery CLI application.

This module provides the command-line interface for the battery monitor:
a one-shot snapshot read, a live watch loop, and configuration utilities.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Any, Final

import typer
import yaml
from pydantic import ValidationError

from accuratebattery.battery.errors import ReadError
from accuratebattery.controller import BatteryApp
from accuratebattery.settings.user import UserSettings

# ── CLI setup ────────────────────────────────────────────────────────────────
app = typer.Typer(help="Accurate Battery monitor CLI", add_completion=False)
config_app = typer.Typer(help="Config helpers")
app.add_typer(config_app, name="config")

logger: Final = logging.getLogger(__name__)  # Will be "accuratebattery.cli"

CONFIG_OPTION = typer.Option(None, "--config", "-c", exists=True, dir_okay=False)
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")
READER_OPTION = typer.Option(None, "--reader", "-r", help="Reader backend: auto, ioreg or sysfs")
DURATION_OPTION = typer.Option(
    None, "--duration", "-d", min=0.0, help="Stop after this many seconds (default: run until Ctrl+C)"
)
INTERVAL_OPTION = typer.Option(1.0, "--interval", "-i", min=0.05, help="Seconds between status lines")
DST_ARGUMENT = typer.Argument(..., help="Output config.yaml")


def _load_settings(config: Path | None, reader: str | None) -> UserSettings:
    try:
        settings = UserSettings.load_or_default(config)
        if reader:
            settings = UserSettings.model_validate({**settings.model_dump(), "reader": reader})
    except (RuntimeError, ValidationError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    return settings


@app.command()
def snapshot(
    config: Path | None = CONFIG_OPTION,
    reader: str | None = READER_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Read the battery once and print every property."""
    battery = BatteryApp(settings=_load_settings(config, reader), debug=debug)

    try:
        snap = battery.read_once()
    except ReadError as exc:
        typer.secho(f"Battery read failed: {exc.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    for key, value in snap.to_dict().items():
        typer.echo(f"{key}: {value}")
    typer.echo(f"level: {snap.level:.4f}")
    typer.echo(f"health: {snap.health:.4f}")
    typer.echo(f"state: {snap.state.label}")


@app.command()
def watch(
    config: Path | None = CONFIG_OPTION,
    reader: str | None = READER_OPTION,
    duration: float | None = DURATION_OPTION,
    interval: float = INTERVAL_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Run the monitor and print a status line every interval."""
    battery = BatteryApp(settings=_load_settings(config, reader), debug=debug)
    monitor = battery.start()
    started = time.monotonic()

    try:
        while True:
            typer.echo(BatteryApp.status_line(monitor.state, len(monitor.history)))
            if duration is not None and time.monotonic() - started >= duration:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.debug("Interrupted, shutting down")
    finally:
        battery.stop()


# ───────────────────────── config sub-commands ───────────────────────────────
@config_app.command("validate")
def validate_config(file: Path):
    """Validate a YAML config file against the schema."""
    try:
        UserSettings.load(file)
        typer.echo("✅ Config valid")
    except (RuntimeError, FileNotFoundError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@config_app.command("wizard")
def wizard(dst: Path = DST_ARGUMENT):
    """Interactive prompt to create a config file."""
    typer.echo("Interactive config builder - press Enter for defaults.")

    while True:
        data: dict[str, Any] = {
            "reader": typer.prompt("Reader [auto|ioreg|sysfs]", default="auto"),
        }
        try:
            data["tick_seconds"] = float(
                typer.prompt("Extrapolation period (seconds)", default="0.1")
            )
            data["poll_seconds"] = float(typer.prompt("Change poll period (seconds)", default="2.0"))
            max_entries = int(typer.prompt("Max history entries (0 = unbounded)", default="0"))
        except ValueError as err:
            typer.secho(f"\nNot a number: {err}", fg=typer.colors.RED, err=True)
            typer.echo("Please re-enter the values.\n")
            continue
        if max_entries > 0:
            data["history"] = {"max_entries": max_entries}
        try:
            cfg = UserSettings(**data)
            break  # valid → exit loop
        except ValidationError as err:
            typer.secho("\nConfig error(s):", fg=typer.colors.RED, err=True)
            for e in err.errors():
                typer.secho(f"  • {e['loc'][0]} - {e['msg']}", fg=typer.colors.RED, err=True)
            typer.echo("Please re-enter the values.\n")

    dst.write_text(
        yaml.safe_dump(cfg.model_dump(exclude_none=True), sort_keys=False), encoding="utf-8"
    )
    typer.secho(f"Config written to {dst}", fg=typer.colors.GREEN)


def main() -> None:
    """Console-script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(0)


# ───────────────────────── module entrypoint ────────────────────────────────
if __name__ == "__main__":
    main()
