"""Main entry point for the Image Triage System.

This allows the package to be run as:
    python -m image_triage
"""

from .cli.main import cli

if __name__ == "__main__":
    cli()
