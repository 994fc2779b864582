"""
Entry point for running ccontact_sync as a module.

Usage:
    python -m ccontact_sync --help
    python -m ccontact_sync contacts
    python -m ccontact_sync update
"""

from ccontact_sync.cli import cli

if __name__ == "__main__":
    cli()
