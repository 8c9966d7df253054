"""tickwork CLI Package.

Provides command-line tools around the scheduling engine.

Usage:
    python -m tickwork.cli next "*/15 9-17 * * 1-5" --count 5
    python -m tickwork.cli validate config/tickwork.yaml
"""

import typer

from tickwork.cli.preview import next_command
from tickwork.cli.validate import validate_command

# Create main app
app = typer.Typer(help="tickwork: cron, one-off and interval job scheduling")

# Register individual commands
app.command(name="next")(next_command)
app.command(name="validate")(validate_command)

__all__ = [
    "app",
    "next_command",
    "validate_command",
]
