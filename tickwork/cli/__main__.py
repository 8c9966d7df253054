"""CLI entry point.

Allows running the CLI as a module: python -m tickwork.cli
"""

from tickwork.cli import app

if __name__ == "__main__":
    app()
