"""
coinguard Core Module

Core functionality of the exploited coin guard:
- Infraction registry and dataset parsing
- Redemption verification
- Network parameters and configuration
- Script to address resolution
"""

__all__ = []
