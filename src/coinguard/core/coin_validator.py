"""
coinguard - Coin Validator

Thread-safe entry point used by transaction validation to keep exploited
coins from being re-spent.

Validation code calls ``is_coin_valid`` for every coin a transaction spends.
When a spend touches a flagged transaction, it gathers the flagged inputs and
the transaction's outputs and calls ``redeem_address_verified``, which only
accepts transactions paying the exploited value to the redemption address.
``validate_spend`` runs both steps in one call.

Thread Safety:
    The infraction registry is the only shared mutable state. Every public
    method holds ``self._lock`` for its whole execution, so the
    check-and-set inside ``load`` is atomic and exactly one of several
    concurrent loaders succeeds. No I/O happens while the lock is held.

One validator is constructed at startup and handed to the validation path.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from coinguard.core import config as coinguard_config
from coinguard.core.config import NetworkParams
from coinguard.core.dataset import read_infraction_lines, read_packaged_lines
from coinguard.core.exceptions import RegistryNotLoadedError
from coinguard.core.infractions import InfractionRecord, InfractionRegistry
from coinguard.core.redemption import (
    DiagnosticSink,
    RedeemInput,
    RedeemOutput,
    RedemptionReport,
    evaluate_redemption,
)
from coinguard.core.script_address import AddressResolver, StandardScriptResolver

logger = logging.getLogger(__name__)


class CoinValidator:
    """
    Guards the transaction-acceptance path against exploited coins.

    Args:
        params: Network parameters (redemption address, prefixes, units)
        resolver: Script to address collaborator; defaults to a
            StandardScriptResolver for ``params``
        diagnostics: Receives shortfall messages; defaults to a log warning
        require_loaded: Raise RegistryNotLoadedError from coin checks made
            before a successful load instead of treating every coin as valid
            (defaults to COINGUARD_REQUIRE_LOADED)
    """

    def __init__(
        self,
        params: NetworkParams,
        resolver: Optional[AddressResolver] = None,
        diagnostics: Optional[DiagnosticSink] = None,
        require_loaded: Optional[bool] = None,
    ):
        self.params = params
        self.resolver = resolver or StandardScriptResolver.for_network(params)
        self.diagnostics = diagnostics
        if require_loaded is None:
            require_loaded = coinguard_config.REQUIRE_LOADED
        self.require_loaded = require_loaded
        self._registry = InfractionRegistry()
        self._lock = threading.RLock()

    # ==================== Loading ====================

    def load(self, lines: Iterable[str]) -> bool:
        """
        Load the infraction dataset.

        Returns:
            True on the first successful load, False if already loaded

        Raises:
            InfractionFormatError: If any line is malformed. The registry
                stays empty and unloaded.
        """
        # Materialize before locking so a lazy iterable cannot do I/O under the lock
        materialized = list(lines)
        with self._lock:
            return self._registry.load(materialized)

    def load_file(self, path: Union[str, Path]) -> bool:
        return self.load(read_infraction_lines(path))

    def load_static(self) -> bool:
        """Load the dataset configured for this network.

        Uses COINGUARD_INFRACTIONS_FILE when set, else the packaged dataset.
        """
        if self.is_loaded():
            return False
        if coinguard_config.INFRACTIONS_FILE:
            return self.load_file(coinguard_config.INFRACTIONS_FILE)
        return self.load(read_packaged_lines(self.params.dataset_name))

    def is_loaded(self) -> bool:
        with self._lock:
            return self._registry.is_loaded()

    def clear(self) -> None:
        with self._lock:
            self._registry.clear()

    # ==================== Queries ====================

    def _ensure_loaded(self) -> None:
        if self.require_loaded and not self._registry.is_loaded():
            raise RegistryNotLoadedError(
                "Infraction registry has not been loaded",
                details={"network": self.params.network.value},
                recoverable=True,
            )

    def is_coin_valid(self, txid: str) -> bool:
        """True if no infraction is recorded for the transaction id."""
        with self._lock:
            self._ensure_loaded()
            return not self._registry.contains(txid)

    def get_infractions(self, txid: str) -> List[InfractionRecord]:
        with self._lock:
            return self._registry.lookup(txid)

    def get_infractions_by_address(self, address: str) -> List[InfractionRecord]:
        with self._lock:
            return self._registry.lookup_by_address(address)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "network": self.params.network.value,
                "loaded": self._registry.is_loaded(),
                "transactions": self._registry.transaction_count,
                "records": self._registry.record_count,
            }

    # ==================== Redemption ====================

    def _evaluate(
        self, exploited: Sequence[RedeemInput], recipients: Sequence[RedeemOutput]
    ) -> RedemptionReport:
        return evaluate_redemption(
            self._registry,
            exploited,
            recipients,
            self.params.redeem_address,
            self.resolver,
            self.params.coin,
            currency_unit=self.params.currency_unit,
            diagnostics=self.diagnostics,
        )

    def evaluate_redemption(
        self, exploited: Sequence[RedeemInput], recipients: Sequence[RedeemOutput]
    ) -> RedemptionReport:
        """Like ``redeem_address_verified`` but returns the totals and reason."""
        with self._lock:
            self._ensure_loaded()
            return self._evaluate(exploited, recipients)

    def redeem_address_verified(
        self, exploited: Sequence[RedeemInput], recipients: Sequence[RedeemOutput]
    ) -> bool:
        """
        Check that a spend of exploited coins pays the redemption address enough.

        Args:
            exploited: The transaction's flagged inputs
            recipients: The transaction's outputs

        Returns:
            True if the spend may proceed
        """
        return self.evaluate_redemption(exploited, recipients).accepted

    def validate_spend(
        self, inputs: Sequence[RedeemInput], outputs: Sequence[RedeemOutput]
    ) -> bool:
        """
        Decide whether a transaction may spend ``inputs``.

        Inputs whose transaction is flagged are collected and checked with
        the redemption rules; a transaction without flagged inputs passes.
        """
        with self._lock:
            self._ensure_loaded()
            flagged = [spent for spent in inputs if self._registry.contains(spent.txid)]
            if not flagged:
                return True
            logger.info(
                "Transaction spends %d exploited input(s)",
                len(flagged),
                extra={"event": "coin_validator.flagged_spend", "flagged_inputs": len(flagged)},
            )
            return self._evaluate(flagged, outputs).accepted

