"""
coinguard - Redemption Verification

Decides whether a transaction that spends exploited coins may be accepted.

A spend of flagged coins is allowed only when the transaction pays at least
the exploited value to the network's redemption address. Exploited value is
always taken from the infraction registry, never from the amounts carried on
the inputs being spent.

Rejections are ordinary results. Unknown transactions and unresolvable
scripts fail closed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Set, Tuple

from coinguard.core.infractions import InfractionRegistry, amount_to_string
from coinguard.core.script_address import AddressResolver, ScriptLike

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[str], None]

# Rejection reasons
NO_RECIPIENTS = "no_recipients"
UNKNOWN_INFRACTION = "unknown_infraction"
UNRESOLVED_INPUT = "unresolved_input_destination"
UNRESOLVED_OUTPUT = "unresolved_output_destination"
INSUFFICIENT_REDEMPTION = "insufficient_redemption"

# Acceptance reasons
NOTHING_EXPLOITED = "nothing_exploited"
REDEEMED = "redeemed"


@dataclass(frozen=True)
class RedeemInput:
    """A flagged coin being spent: its transaction id and locking script."""

    txid: str
    script_pubkey: ScriptLike
    amount: int = 0


@dataclass(frozen=True)
class RedeemOutput:
    """One output of the spending transaction."""

    script_pubkey: ScriptLike
    amount: int


@dataclass(frozen=True)
class RedemptionReport:
    accepted: bool
    reason: str
    total_exploited: int = 0
    total_redeemed: int = 0

    def __bool__(self) -> bool:
        return self.accepted


def shortfall_message(total_exploited: int, coin: int, unit: str) -> str:
    """Diagnostic sent when a transaction redeems less than it must."""
    required = amount_to_string(Decimal(total_exploited) / Decimal(coin))
    return (
        "Coin Validator: Failed to Redeem: minimum amount required for this transaction "
        f"(not including network fee): {required} {unit}"
    )


def _log_diagnostic(message: str) -> None:
    logger.warning(message, extra={"event": "redemption.shortfall"})


def _reject(reason: str, **fields) -> RedemptionReport:
    logger.debug(
        "Redemption rejected: %s",
        reason,
        extra={"event": "redemption.rejected", "reason": reason, **fields},
    )
    return RedemptionReport(
        accepted=False,
        reason=reason,
        total_exploited=fields.get("total_exploited", 0),
        total_redeemed=fields.get("total_redeemed", 0),
    )


def evaluate_redemption(
    registry: InfractionRegistry,
    exploited: Sequence[RedeemInput],
    recipients: Sequence[RedeemOutput],
    redeem_address: str,
    resolver: AddressResolver,
    coin: int,
    currency_unit: str = "BLOCK",
    diagnostics: Optional[DiagnosticSink] = None,
) -> RedemptionReport:
    """
    Reconcile exploited amounts against amounts paid to the redemption address.

    Args:
        registry: Loaded infraction registry (caller holds the lock)
        exploited: Flagged inputs of the transaction, in input order
        recipients: Outputs of the transaction
        redeem_address: The single address that legitimizes the spend
        resolver: Maps locking scripts to addresses
        coin: Smallest units per coin, for the shortfall diagnostic
        currency_unit: Ticker used in the shortfall diagnostic
        diagnostics: Receives the shortfall message (defaults to a log warning)

    Returns:
        RedemptionReport describing the decision and the totals involved
    """
    if not recipients:
        return _reject(NO_RECIPIENTS)

    seen: Set[Tuple[bytes, str]] = set()
    total_exploited = 0
    for index, spent in enumerate(exploited):
        records = registry.lookup(spent.txid)
        if not records:
            return _reject(UNKNOWN_INFRACTION, input_index=index, txid=spent.txid)

        address = resolver.resolve(spent.script_pubkey)
        if address is None:
            return _reject(UNRESOLVED_INPUT, input_index=index, txid=spent.txid)

        # Several inputs of one flagged transaction may share an address.
        # Its recorded amount counts once.
        dedup_key = (records[0].key, address)
        if dedup_key in seen:
            continue
        seen.add(dedup_key)

        total_exploited += sum(record.amount for record in records if record.address == address)

    if total_exploited == 0:
        return RedemptionReport(accepted=True, reason=NOTHING_EXPLOITED)

    total_redeemed = 0
    for index, output in enumerate(recipients):
        address = resolver.resolve(output.script_pubkey)
        if address is None:
            return _reject(UNRESOLVED_OUTPUT, output_index=index, total_exploited=total_exploited)
        if address == redeem_address:
            total_redeemed += output.amount

    if total_redeemed >= total_exploited:
        return RedemptionReport(
            accepted=True,
            reason=REDEEMED,
            total_exploited=total_exploited,
            total_redeemed=total_redeemed,
        )

    if total_redeemed > 0:
        (diagnostics or _log_diagnostic)(shortfall_message(total_exploited, coin, currency_unit))
    return _reject(
        INSUFFICIENT_REDEMPTION,
        total_exploited=total_exploited,
        total_redeemed=total_redeemed,
    )


def redeem_address_verified(
    registry: InfractionRegistry,
    exploited: Sequence[RedeemInput],
    recipients: Sequence[RedeemOutput],
    redeem_address: str,
    resolver: AddressResolver,
    coin: int,
    currency_unit: str = "BLOCK",
    diagnostics: Optional[DiagnosticSink] = None,
) -> bool:
    """Boolean form of ``evaluate_redemption``."""
    return evaluate_redemption(
        registry,
        exploited,
        recipients,
        redeem_address,
        resolver,
        coin,
        currency_unit=currency_unit,
        diagnostics=diagnostics,
    ).accepted


__all__: List[str] = [
    "RedeemInput",
    "RedeemOutput",
    "RedemptionReport",
    "evaluate_redemption",
    "redeem_address_verified",
    "shortfall_message",
]
