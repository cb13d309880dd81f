#!/usr/bin/env python3
"""
coinguard - Command-line interface

Offline tooling around the exploited coin guard:
- Validate an infraction dataset before it ships
- Look up infractions by transaction id or address
- Check whether a coin may be spent
- Run the redemption check for a transaction described in JSON
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from coinguard.core import config as coinguard_config
from coinguard.core.coin_validator import CoinValidator
from coinguard.core.exceptions import CoinGuardError, InfractionFormatError
from coinguard.core.infractions import InfractionRecord
from coinguard.core.logging_config import setup_logging
from coinguard.core.redemption import RedeemInput, RedeemOutput

logger = logging.getLogger(__name__)

console = Console()

EXIT_REJECTED = 2


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _load_validator(ctx: click.Context, dataset: Path) -> CoinValidator:
    validator = CoinValidator(ctx.obj['params'])
    validator.load_file(dataset)
    return validator


def _records_table(records: List[InfractionRecord], title: str, unit: str) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Transaction", style="cyan", overflow="fold")
    table.add_column("Address", style="magenta")
    table.add_column("Amount", justify="right")
    table.add_column(unit, justify="right", style="green")
    for record in records:
        table.add_row(record.txid, record.address, str(record.amount), record.to_dict()["display_amount"])
    return table


def _parse_request(payload: Dict[str, Any]) -> tuple:
    """Build redemption inputs and outputs from a JSON request body."""
    try:
        exploited = [
            RedeemInput(
                txid=str(item["txid"]),
                script_pubkey=str(item["script"]),
                amount=int(item.get("amount", 0)),
            )
            for item in payload.get("exploited", [])
        ]
        recipients = [
            RedeemOutput(script_pubkey=str(item["script"]), amount=int(item["amount"]))
            for item in payload.get("recipients", [])
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise click.ClickException(f"Invalid verification request: {exc}") from exc
    return exploited, recipients


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.option(
    '--network',
    type=click.Choice([network.value for network in coinguard_config.NetworkType]),
    default=lambda: coinguard_config.NETWORK.lower(),
    show_default="COINGUARD_NETWORK or mainnet",
    help='Network whose parameters are used',
)
@click.option(
    '--redeem-address',
    default=None,
    help='Override the redemption address of the network',
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=lambda: coinguard_config.LOG_LEVEL.upper(),
    help='Logging level for JSON logs on stderr',
)
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False),
    default=lambda: coinguard_config.LOG_FILE or None,
    help='Also write JSON logs to this rotating file',
)
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.pass_context
def cli(
    ctx: click.Context,
    network: str,
    redeem_address: Optional[str],
    log_level: str,
    log_file: Optional[str],
    json_output: bool,
):
    """
    coinguard - exploited coin guard tooling

    Inspect infraction datasets and check spends of exploited coins
    against the redemption rules of a network.
    """
    ctx.ensure_object(dict)
    setup_logging(name="coinguard", network=network, log_file=log_file, level=log_level)
    try:
        ctx.obj['params'] = coinguard_config.get_network_params(network, redeem_address=redeem_address)
    except CoinGuardError as exc:
        raise click.ClickException(exc.message) from exc
    ctx.obj['json_output'] = json_output


@cli.command('check-dataset')
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def check_dataset(ctx: click.Context, dataset: Path):
    """Parse a dataset and report its size; exits 1 if it is malformed."""
    try:
        validator = _load_validator(ctx, dataset)
    except InfractionFormatError as exc:
        if ctx.obj['json_output']:
            click.echo(json.dumps({"valid": False, "error": exc.message, "line_number": exc.line_number}))
            sys.exit(1)
        _cli_fail(exc)
        return
    except OSError as exc:
        _cli_fail(exc)
        return

    stats = validator.stats()
    if ctx.obj['json_output']:
        click.echo(json.dumps({"valid": True, **stats}))
        return

    table = Table(show_header=False, box=box.ROUNDED)
    table.add_row("[bold cyan]Dataset", str(dataset))
    table.add_row("[bold cyan]Network", stats["network"])
    table.add_row("[bold green]Transactions", str(stats["transactions"]))
    table.add_row("[bold green]Records", str(stats["records"]))
    console.print(Panel(table, title="[bold green]Dataset OK", border_style="green"))


@cli.command('infractions')
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--txid', help='Transaction id to look up')
@click.option('--address', help='Address to look up across all transactions')
@click.pass_context
def infractions(ctx: click.Context, dataset: Path, txid: Optional[str], address: Optional[str]):
    """List infractions for a transaction id or an address."""
    if bool(txid) == bool(address):
        raise click.UsageError("Pass exactly one of --txid or --address")

    try:
        validator = _load_validator(ctx, dataset)
    except (CoinGuardError, OSError) as exc:
        _cli_fail(exc)
        return

    if txid:
        records = validator.get_infractions(txid)
        title = f"Infractions for {txid}"
    else:
        records = validator.get_infractions_by_address(address)
        title = f"Infractions for {address}"

    if ctx.obj['json_output']:
        click.echo(json.dumps([record.to_dict() for record in records], indent=2))
        return
    if not records:
        console.print("[yellow]No infractions found[/]")
        return
    console.print(_records_table(records, title, ctx.obj['params'].currency_unit))


@cli.command('coin-status')
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('txid')
@click.pass_context
def coin_status(ctx: click.Context, dataset: Path, txid: str):
    """Report whether coins created by TXID may be spent freely."""
    try:
        validator = _load_validator(ctx, dataset)
    except (CoinGuardError, OSError) as exc:
        _cli_fail(exc)
        return

    valid = validator.is_coin_valid(txid)
    if ctx.obj['json_output']:
        click.echo(json.dumps({"txid": txid, "valid": valid}))
        return
    if valid:
        console.print(f"[bold green]VALID[/] {txid}")
    else:
        console.print(f"[bold red]FLAGGED[/] {txid}: spend must pay the redemption address")


@cli.command('verify')
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('request', type=click.File('r'))
@click.pass_context
def verify(ctx: click.Context, dataset: Path, request):
    """
    Run the redemption check for a transaction described in REQUEST.

    REQUEST is a JSON file (or - for stdin) of the form
    {"exploited": [{"txid", "script", "amount"}], "recipients": [{"script", "amount"}]}
    with hex-encoded scripts. Exits 2 when the spend is rejected.
    """
    try:
        payload = json.load(request)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Request is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise click.ClickException("Request must be a JSON object")
    exploited, recipients = _parse_request(payload)

    try:
        validator = _load_validator(ctx, dataset)
    except (CoinGuardError, OSError) as exc:
        _cli_fail(exc)
        return

    report = validator.evaluate_redemption(exploited, recipients)
    if ctx.obj['json_output']:
        click.echo(json.dumps({
            "accepted": report.accepted,
            "reason": report.reason,
            "total_exploited": report.total_exploited,
            "total_redeemed": report.total_redeemed,
        }))
    else:
        style = "green" if report.accepted else "red"
        table = Table(show_header=False, box=box.ROUNDED)
        table.add_row("[bold cyan]Redeem Address", ctx.obj['params'].redeem_address)
        table.add_row("[bold cyan]Exploited", str(report.total_exploited))
        table.add_row("[bold cyan]Redeemed", str(report.total_redeemed))
        table.add_row("[bold cyan]Reason", report.reason)
        title = "ACCEPTED" if report.accepted else "REJECTED"
        console.print(Panel(table, title=f"[bold {style}]{title}", border_style=style))

    if not report.accepted:
        sys.exit(EXIT_REJECTED)


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == '__main__':
    main()
