"""
ccontact_sync - Constant Contact registration sync

Keeps a local snapshot of Constant Contact contacts and reconciles it against
spreadsheets of newly registered race participants.
"""

__version__ = "0.1.0"
