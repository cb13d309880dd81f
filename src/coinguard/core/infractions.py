"""
coinguard - Infraction Registry

In-memory store of infraction records: amounts of exploited value held by an
address inside a specific transaction. The registry is filled once from a
trusted, build-time curated dataset and then only queried.

Dataset lines are tab separated::

    <txid>\t<address>\t<amount>\t<display amount>

``amount`` is an integer count of the smallest monetary unit and the display
amount is a fixed-point decimal with exactly six fractional digits. A line is
only accepted when the parsed record serializes back to the identical text,
so lossy numeric formatting in a dataset is caught at load time.

The registry is not synchronized. It is owned by ``CoinValidator``, which
serializes every access behind its lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from coinguard.core.constants import (
    DISPLAY_DECIMALS,
    FIELD_COUNT,
    FIELD_SEPARATOR,
    TXID_BYTES,
    TXID_HEX_LENGTH,
)
from coinguard.core.exceptions import InfractionFormatError

logger = logging.getLogger(__name__)

_DISPLAY_QUANTIZER = Decimal(1).scaleb(-DISPLAY_DECIMALS)


def amount_to_string(amount) -> str:
    """Format a display amount as fixed-point text with six decimals."""
    return f"{Decimal(str(amount)).quantize(_DISPLAY_QUANTIZER):f}"


def txid_to_key(txid: str) -> bytes:
    """Convert a hex transaction id into its canonical 32-byte key.

    Raises:
        ValueError: If the text is not 64 hex characters
    """
    if not isinstance(txid, str) or len(txid) != TXID_HEX_LENGTH:
        raise ValueError(f"Transaction id must be {TXID_HEX_LENGTH} hex characters")
    try:
        key = bytes.fromhex(txid)
    except ValueError as exc:
        raise ValueError(f"Transaction id is not hex: {txid!r}") from exc
    if len(key) != TXID_BYTES:
        raise ValueError(f"Transaction id must decode to {TXID_BYTES} bytes")
    return key


def key_to_txid(key: bytes) -> str:
    return key.hex()


def _lookup_key(txid: str) -> Optional[bytes]:
    # Malformed ids can never be registered, so lookups treat them as absent.
    try:
        return txid_to_key(txid)
    except ValueError:
        return None


@dataclass(frozen=True)
class InfractionRecord:
    """Exploited value held by one address within one transaction."""

    txid: str
    address: str
    amount: int
    display_amount: Decimal

    @property
    def key(self) -> bytes:
        return txid_to_key(self.txid)

    def to_line(self) -> str:
        """Canonical dataset serialization of this record."""
        return FIELD_SEPARATOR.join(
            (self.txid, self.address, str(self.amount), amount_to_string(self.display_amount))
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "txid": self.txid,
            "address": self.address,
            "amount": str(self.amount),
            "display_amount": amount_to_string(self.display_amount),
        }

    def __str__(self) -> str:
        return self.to_line()


def parse_infraction_line(line: str, line_number: Optional[int] = None) -> InfractionRecord:
    """Parse one dataset line into an InfractionRecord.

    Args:
        line: Raw dataset line without its trailing newline
        line_number: Position in the dataset, for error reporting

    Returns:
        The parsed record

    Raises:
        InfractionFormatError: If a field is missing, empty or zero, or the
            record does not serialize back to ``line`` exactly
    """

    def fail(reason: str) -> InfractionFormatError:
        return InfractionFormatError(
            f"Malformed infraction: {reason}",
            line=line,
            line_number=line_number,
            details={"reason": reason, "line_number": line_number},
        )

    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != FIELD_COUNT:
        raise fail(f"expected {FIELD_COUNT} tab-separated fields, got {len(fields)}")

    txid, address, amount_text, display_text = fields
    if not txid or not address or not amount_text or not display_text:
        raise fail("empty field")

    try:
        txid_to_key(txid)
    except ValueError as exc:
        raise fail(str(exc)) from exc

    try:
        amount = int(amount_text)
    except ValueError as exc:
        raise fail(f"amount is not an integer: {amount_text!r}") from exc

    try:
        display_amount = Decimal(display_text)
    except InvalidOperation as exc:
        raise fail(f"display amount is not a number: {display_text!r}") from exc
    if not display_amount.is_finite():
        raise fail(f"display amount is not finite: {display_text!r}")

    if amount == 0 or display_amount == 0:
        raise fail("zero amount")
    if amount < 0 or display_amount < 0:
        raise fail("negative amount")

    try:
        record = InfractionRecord(
            txid=txid,
            address=address,
            amount=amount,
            display_amount=display_amount.quantize(_DISPLAY_QUANTIZER),
        )
        canonical = record.to_line()
    except InvalidOperation as exc:
        raise fail(f"display amount out of range: {display_text!r}") from exc
    if canonical != line:
        raise fail("line does not round-trip through its canonical form")
    return record


class InfractionRegistry:
    """
    Mapping from transaction id to the infractions recorded for it.

    Records are kept in dataset order per transaction. The mapping is either
    empty or the product of exactly one successful ``load``.
    """

    def __init__(self):
        self._infractions: Dict[bytes, List[InfractionRecord]] = {}
        self._loaded = False

    def load(self, lines: Iterable[str]) -> bool:
        """
        Populate the registry from dataset lines.

        Args:
            lines: Dataset lines without trailing newlines

        Returns:
            True if the registry was populated, False if it was already loaded

        Raises:
            InfractionFormatError: On the first malformed line. Nothing is
                committed and the registry stays unloaded.
        """
        if self._loaded:
            logger.info(
                "Infraction registry already loaded, ignoring reload",
                extra={"event": "infractions.load_skipped"},
            )
            return False

        staged: Dict[bytes, List[InfractionRecord]] = {}
        count = 0
        for line_number, line in enumerate(lines, start=1):
            try:
                record = parse_infraction_line(line, line_number)
            except InfractionFormatError as exc:
                logger.critical(
                    "Coin Validator: Failed to read infraction: %s",
                    line,
                    extra={
                        "event": "infractions.malformed",
                        "line_number": line_number,
                        "reason": exc.details.get("reason"),
                    },
                )
                raise
            staged.setdefault(record.key, []).append(record)
            count += 1

        self._infractions = staged
        self._loaded = True
        logger.info(
            "Loaded %d infractions across %d transactions",
            count,
            len(staged),
            extra={"event": "infractions.loaded", "records": count, "transactions": len(staged)},
        )
        return True

    def is_loaded(self) -> bool:
        return self._loaded

    def clear(self) -> None:
        """Drop every record and re-arm ``load``."""
        self._infractions = {}
        self._loaded = False
        logger.info("Infraction registry cleared", extra={"event": "infractions.cleared"})

    def contains(self, txid: str) -> bool:
        key = _lookup_key(txid)
        return key is not None and key in self._infractions

    def lookup(self, txid: str) -> List[InfractionRecord]:
        """Records for a transaction id, empty when none are registered."""
        key = _lookup_key(txid)
        if key is None:
            return []
        return list(self._infractions.get(key, ()))

    def lookup_by_address(self, address: str) -> List[InfractionRecord]:
        """Every record held by ``address``, across all transactions."""
        return [
            record
            for records in self._infractions.values()
            for record in records
            if record.address == address
        ]

    @property
    def transaction_count(self) -> int:
        return len(self._infractions)

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self._infractions.values())
