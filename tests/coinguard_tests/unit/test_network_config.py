"""
Tests for network parameter selection.
"""

import pytest

from coinguard.core import config as coinguard_config
from coinguard.core.config import (
    NetworkParams,
    NetworkType,
    get_config,
    get_network_params,
    parse_network,
)
from coinguard.core.constants import COIN
from coinguard.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch):
    monkeypatch.setattr(coinguard_config, "REDEEM_ADDRESS_OVERRIDE", "")


class TestNetworkSelection:

    @pytest.mark.parametrize("name", ["mainnet", "MAINNET", " mainnet ", NetworkType.MAINNET])
    def test_parse_network(self, name):
        assert parse_network(name) is NetworkType.MAINNET

    def test_unknown_network(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_network("moonnet")
        assert "moonnet" in exc_info.value.message

    def test_default_network_from_environment(self, monkeypatch):
        monkeypatch.setattr(coinguard_config, "NETWORK", "regtest")
        assert parse_network(None) is NetworkType.REGTEST

    def test_config_classes(self):
        assert get_config("mainnet").PUBKEY_ADDRESS_PREFIX == 130
        assert get_config("testnet").PUBKEY_ADDRESS_PREFIX == 140
        assert get_config("regtest").SCRIPT_ADDRESS_PREFIX == 29


class TestNetworkParams:

    def test_mainnet_defaults(self):
        params = get_network_params("mainnet")

        assert params.network is NetworkType.MAINNET
        assert params.redeem_address == "B7nPQHKmX8DPkBFaBtaNQWc9SxD3uYpYv6"
        assert (params.pubkey_prefix, params.script_prefix) == (130, 85)
        assert params.coin == COIN
        assert params.currency_unit == "BLOCK"
        assert params.dataset_name == "infractions_mainnet.tsv"

    def test_testnet_requires_redeem_address(self):
        with pytest.raises(ConfigurationError):
            get_network_params("testnet")

    def test_explicit_redeem_address(self):
        params = get_network_params("testnet", redeem_address="yRedeem")

        assert params.redeem_address == "yRedeem"
        assert params.currency_unit == "tBLOCK"
        assert params.dataset_name == "infractions_testnet.tsv"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setattr(coinguard_config, "REDEEM_ADDRESS_OVERRIDE", "yFromEnv")

        assert get_network_params("regtest").redeem_address == "yFromEnv"
        assert get_network_params("regtest", redeem_address="yArg").redeem_address == "yArg"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"pubkey_prefix": 256},
            {"script_prefix": -1},
            {"coin": 0},
            {"redeem_address": ""},
        ],
    )
    def test_invalid_params(self, kwargs):
        values = {
            "network": NetworkType.REGTEST,
            "redeem_address": "yRedeem",
            "pubkey_prefix": 140,
            "script_prefix": 29,
        }
        values.update(kwargs)

        with pytest.raises(ConfigurationError):
            NetworkParams(**values)

    def test_params_are_immutable(self):
        params = get_network_params("mainnet")
        with pytest.raises(AttributeError):
            params.redeem_address = "other"
