"""CLI package for ccontact_sync."""

from ccontact_sync.cli.main import COMMAND_ERRORS, cancel_on_interrupt, cli

__all__ = ["COMMAND_ERRORS", "cancel_on_interrupt", "cli"]
