"""
Tests for resolving output scripts to base58check addresses.
"""

import hashlib

import base58
import pytest

from coinguard.core.config import get_network_params
from coinguard.core.script_address import (
    StandardScriptResolver,
    hash160,
    p2pkh_script,
    p2sh_script,
)

PUBKEY_HASH = bytes(range(20))


def _ripemd160_available() -> bool:
    try:
        hashlib.new("ripemd160")
    except ValueError:
        return False
    return True


@pytest.fixture
def mainnet_resolver():
    return StandardScriptResolver(130, 85)


class TestStandardTemplates:

    def test_p2pkh(self, mainnet_resolver):
        address = mainnet_resolver.resolve(p2pkh_script(PUBKEY_HASH))

        assert address == base58.b58encode_check(bytes([130]) + PUBKEY_HASH).decode("ascii")
        assert base58.b58decode_check(address) == bytes([130]) + PUBKEY_HASH

    def test_p2sh_uses_script_prefix(self, mainnet_resolver):
        address = mainnet_resolver.resolve(p2sh_script(PUBKEY_HASH))

        assert base58.b58decode_check(address) == bytes([85]) + PUBKEY_HASH
        assert address != mainnet_resolver.resolve(p2pkh_script(PUBKEY_HASH))

    def test_hex_string_scripts(self, mainnet_resolver):
        script = p2pkh_script(PUBKEY_HASH)

        assert mainnet_resolver.resolve(script.hex()) == mainnet_resolver.resolve(script)
        assert mainnet_resolver.resolve(bytearray(script)) == mainnet_resolver.resolve(script)

    def test_prefixes_change_address(self, mainnet_resolver):
        testnet = StandardScriptResolver(140, 29)
        script = p2pkh_script(PUBKEY_HASH)

        assert testnet.resolve(script) != mainnet_resolver.resolve(script)

    def test_for_network(self):
        params = get_network_params("mainnet")
        resolver = StandardScriptResolver.for_network(params)

        assert (resolver.pubkey_prefix, resolver.script_prefix) == (130, 85)

    @pytest.mark.skipif(not _ripemd160_available(), reason="ripemd160 not provided by this OpenSSL build")
    def test_p2pk_resolves_to_key_hash(self, mainnet_resolver):
        pubkey = bytes([0x02]) + bytes(range(32))
        script = bytes([33]) + pubkey + bytes([0xAC])

        assert mainnet_resolver.resolve(script) == mainnet_resolver.resolve(p2pkh_script(hash160(pubkey)))


class TestUnresolvable:

    @pytest.mark.parametrize(
        "script",
        [
            b"",
            "",
            "zz",
            bytes([0x6A, 0x04]) + b"data",
            p2pkh_script(PUBKEY_HASH)[:-1],
            p2pkh_script(PUBKEY_HASH) + b"\x00",
            # P2PK with an invalid key prefix
            bytes([33, 0x05]) + bytes(32) + bytes([0xAC]),
        ],
    )
    def test_returns_none(self, mainnet_resolver, script):
        assert mainnet_resolver.resolve(script) is None

    def test_non_script_types(self, mainnet_resolver):
        assert mainnet_resolver.resolve(None) is None
        assert mainnet_resolver.resolve(12345) is None


class TestScriptBuilders:

    def test_wrong_hash_length_rejected(self):
        with pytest.raises(ValueError):
            p2pkh_script(b"\x00" * 19)
        with pytest.raises(ValueError):
            p2sh_script(b"\x00" * 21)
