"""Preview command for cron expressions.

Prints the upcoming firing times of a cron expression.
"""

from typing import Optional

import typer

from tickwork.cli.utils import (
    display_error,
    display_warning,
    handle_errors,
    parse_timestamp,
)
from tickwork.scheduling.cron import CronExpression
from tickwork.utils.exceptions import ParseError


@handle_errors
def next_command(
    expression: str = typer.Argument(..., help="Five-field cron expression"),
    from_time: Optional[str] = typer.Option(
        None,
        "--from",
        "-f",
        help="Reference time, ISO-8601 (UTC if no offset). Default: now",
    ),
    count: int = typer.Option(
        5, "--count", "-n", min=1, max=1000, help="Number of firing times to show"
    ),
):
    """Show the next firing times of a cron expression.

    Examples:
        python -m tickwork.cli next "*/5 * * * *"

        python -m tickwork.cli next "0 9 * * 1-5" --from 2024-01-01T00:00:00Z -n 3
    """
    try:
        cron = CronExpression(expression)
    except ParseError as e:
        display_error(f"Invalid cron expression: {e}")
        raise typer.Exit(code=1)

    reference = parse_timestamp(from_time)
    for _ in range(count):
        next_run = cron.get_next_date(reference)
        if next_run is None:
            display_warning("No further matches within the search window.")
            break
        typer.echo(next_run.isoformat())
        reference = next_run
