"""Entry point for running sightline as a module.

Usage:
    python -m sightline [command] [options]

Example:
    python -m sightline analyze ./my-app "Add CSV export to reports"
    python -m sightline check
"""

from sightline.cli import app

if __name__ == "__main__":
    app()
