"""
coinguard - Exploited Coin Guard

Keeps coins that originate from a known exploit from being re-spent, except
when the spend pays the flagged value to the network's redemption address.

Main Components:
- Infractions: registry of exploited amounts per transaction and address
- Redemption: reconciliation of exploited vs. redeemed amounts
- Coin Validator: thread-safe entry point used by transaction validation
- CLI: dataset inspection and offline redemption checks
"""

__version__ = "0.1.0"
__author__ = "coinguard developers"

__all__ = []
