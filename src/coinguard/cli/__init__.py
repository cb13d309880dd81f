"""
coinguard CLI

Command-line tools for infraction datasets and redemption checks.
"""

from coinguard.cli.main import cli, main

__all__ = ["cli", "main"]
