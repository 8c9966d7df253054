"""Validate command for configuration files.

Validates configuration syntax and previews every declared job.
"""

from pathlib import Path

import typer

from tickwork.cli.utils import display_error, display_success, handle_errors
from tickwork.models.job import JobKind
from tickwork.observability.logging import configure_logging
from tickwork.scheduling.cron import CronExpression
from tickwork.services.config_manager import ConfigManager, ConfigValidationError


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    configure_logging(**config.logging.model_dump())

    display_success("Configuration is valid! ✅")
    typer.echo(f"  Log level: {config.logging.level}")
    typer.echo(f"  Cron search window: {config.scheduler.cron_search_years} years")

    if not config.jobs:
        typer.echo("  No jobs declared.")
        return

    typer.echo(f"  Jobs ({len(config.jobs)}):")
    for job in config.jobs:
        if job.kind is JobKind.CRON:
            cron = CronExpression(
                job.cron or "", search_years=config.scheduler.cron_search_years
            )
            next_run = cron.get_next_date()
            detail = f"{job.cron} (next: {next_run.isoformat() if next_run else 'never'})"
        elif job.kind is JobKind.ONCE:
            detail = f"once after {job.delay_ms}ms"
        else:
            detail = f"every {job.period_ms}ms"
        typer.echo(f"  - {job.name} [{job.kind.value}]: {detail}")
