"""
coinguard Network Configuration

Supports mainnet, testnet and regtest with separate parameter sets.

Each network profile carries the values the redemption check depends on:
- Redemption address that legitimizes re-spending flagged coins
- Base58 prefix bytes used to render destination addresses
- Monetary unit and display ticker for diagnostics
- Name of the packaged infraction dataset

Environment overrides (all optional):
- COINGUARD_NETWORK: mainnet | testnet | regtest (default: mainnet)
- COINGUARD_REDEEM_ADDRESS: redemption address for the selected network
- COINGUARD_INFRACTIONS_FILE: external dataset used instead of the packaged one
- COINGUARD_REQUIRE_LOADED: 1 to make coin checks fail closed before load
- COINGUARD_LOG_LEVEL: logging level for the CLI
- COINGUARD_LOG_FILE: rotating JSON log file written by the CLI
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type, Union

from coinguard.core.constants import COIN, DATASET_FILE_TEMPLATE
from coinguard.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


NETWORK = os.getenv("COINGUARD_NETWORK", "mainnet")
REDEEM_ADDRESS_OVERRIDE = os.getenv("COINGUARD_REDEEM_ADDRESS", "").strip()
INFRACTIONS_FILE = os.getenv("COINGUARD_INFRACTIONS_FILE", "").strip()
REQUIRE_LOADED = bool(int(os.getenv("COINGUARD_REQUIRE_LOADED", "0")))
LOG_LEVEL = os.getenv("COINGUARD_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("COINGUARD_LOG_FILE", "").strip()


class MainnetConfig:
    """Mainnet Configuration (production chain)"""

    NETWORK_TYPE = NetworkType.MAINNET

    # Redemption
    REDEEM_ADDRESS = "B7nPQHKmX8DPkBFaBtaNQWc9SxD3uYpYv6"

    # Address encoding (base58check version bytes)
    PUBKEY_ADDRESS_PREFIX = 130
    SCRIPT_ADDRESS_PREFIX = 85

    # Units
    COIN = COIN
    CURRENCY_UNIT = "BLOCK"


class TestnetConfig(MainnetConfig):
    """Testnet Configuration (no built-in redemption address)"""

    NETWORK_TYPE = NetworkType.TESTNET

    # Must come from COINGUARD_REDEEM_ADDRESS
    REDEEM_ADDRESS = ""

    PUBKEY_ADDRESS_PREFIX = 140
    SCRIPT_ADDRESS_PREFIX = 29

    CURRENCY_UNIT = "tBLOCK"


class RegtestConfig(TestnetConfig):
    """Regtest Configuration (local development chains)"""

    NETWORK_TYPE = NetworkType.REGTEST


_CONFIGS = {
    NetworkType.MAINNET: MainnetConfig,
    NetworkType.TESTNET: TestnetConfig,
    NetworkType.REGTEST: RegtestConfig,
}


@dataclass(frozen=True)
class NetworkParams:
    """Per-network values injected into the coin validator."""

    network: NetworkType
    redeem_address: str
    pubkey_prefix: int
    script_prefix: int
    coin: int = COIN
    currency_unit: str = "BLOCK"

    def __post_init__(self) -> None:
        if not self.redeem_address:
            raise ConfigurationError(
                f"No redemption address configured for {self.network.value}. "
                "Set COINGUARD_REDEEM_ADDRESS.",
                details={"network": self.network.value},
            )
        for name in ("pubkey_prefix", "script_prefix"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ConfigurationError(
                    f"{name} must be a single byte, got {value}",
                    details={"network": self.network.value, name: value},
                )
        if self.coin <= 0:
            raise ConfigurationError("coin must be positive", details={"coin": self.coin})

    @property
    def dataset_name(self) -> str:
        return DATASET_FILE_TEMPLATE.format(network=self.network.value)


def parse_network(network: Union[str, NetworkType, None]) -> NetworkType:
    """Map a network name (case-insensitive) to its NetworkType."""
    if isinstance(network, NetworkType):
        return network
    name = (network or NETWORK).strip().lower()
    try:
        return NetworkType(name)
    except ValueError:
        valid = ", ".join(member.value for member in NetworkType)
        raise ConfigurationError(
            f"Unknown network '{network}'. Expected one of: {valid}",
            details={"network": network},
        ) from None


def get_config(network: Union[str, NetworkType, None] = None) -> Type[MainnetConfig]:
    """Return the config class for a network (defaults to COINGUARD_NETWORK)."""
    return _CONFIGS[parse_network(network)]


def get_network_params(
    network: Union[str, NetworkType, None] = None,
    redeem_address: Optional[str] = None,
) -> NetworkParams:
    """Build NetworkParams for a network.

    The redemption address is taken from the argument, then from
    COINGUARD_REDEEM_ADDRESS, then from the network's config class.

    Raises:
        ConfigurationError: If the network is unknown or has no redemption address
    """
    config = get_config(network)
    address = redeem_address or REDEEM_ADDRESS_OVERRIDE or config.REDEEM_ADDRESS
    if address != config.REDEEM_ADDRESS:
        logger.info(
            "Redemption address overridden for %s",
            config.NETWORK_TYPE.value,
            extra={"event": "config.redeem_address_override", "network": config.NETWORK_TYPE.value},
        )
    return NetworkParams(
        network=config.NETWORK_TYPE,
        redeem_address=address,
        pubkey_prefix=config.PUBKEY_ADDRESS_PREFIX,
        script_prefix=config.SCRIPT_ADDRESS_PREFIX,
        coin=config.COIN,
        currency_unit=config.CURRENCY_UNIT,
    )


__all__ = [
    "ConfigurationError",
    "MainnetConfig",
    "NetworkParams",
    "NetworkType",
    "RegtestConfig",
    "TestnetConfig",
    "get_config",
    "get_network_params",
    "parse_network",
    "INFRACTIONS_FILE",
    "LOG_FILE",
    "LOG_LEVEL",
    "REQUIRE_LOADED",
]
