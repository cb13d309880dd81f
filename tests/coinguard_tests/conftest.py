from types import SimpleNamespace

import pytest

from coinguard.core.coin_validator import CoinValidator
from coinguard.core.config import NetworkParams, NetworkType
from coinguard.core.redemption import RedeemInput, RedeemOutput
from coinguard.core.script_address import StandardScriptResolver, p2pkh_script, p2sh_script

REGTEST_PUBKEY_PREFIX = 140
REGTEST_SCRIPT_PREFIX = 29

TX1 = "11" * 32
TX2 = "22" * 32
TX3 = "33" * 32
UNKNOWN_TX = "ff" * 32

# Script that no standard template matches
NONSTANDARD_SCRIPT = bytes([0x6A, 0x04]) + b"data"


class ScriptBook:
    """Deterministic P2PKH scripts and addresses keyed by a short tag."""

    def __init__(self, resolver: StandardScriptResolver):
        self.resolver = resolver

    @staticmethod
    def pubkey_hash(tag: str) -> bytes:
        return (tag.encode("ascii") * 20)[:20]

    def script(self, tag: str) -> bytes:
        return p2pkh_script(self.pubkey_hash(tag))

    def p2sh(self, tag: str) -> bytes:
        return p2sh_script(self.pubkey_hash(tag))

    def address(self, tag: str) -> str:
        return self.resolver.resolve(self.script(tag))

    def spend(self, txid: str, tag: str, amount: int = 0) -> RedeemInput:
        return RedeemInput(txid=txid, script_pubkey=self.script(tag), amount=amount)

    def pay(self, tag: str, amount: int) -> RedeemOutput:
        return RedeemOutput(script_pubkey=self.script(tag), amount=amount)


@pytest.fixture
def txids():
    return SimpleNamespace(tx1=TX1, tx2=TX2, tx3=TX3, unknown=UNKNOWN_TX)


@pytest.fixture
def nonstandard_script():
    return NONSTANDARD_SCRIPT


@pytest.fixture
def resolver():
    return StandardScriptResolver(REGTEST_PUBKEY_PREFIX, REGTEST_SCRIPT_PREFIX)


@pytest.fixture
def scripts(resolver):
    return ScriptBook(resolver)


@pytest.fixture
def params(scripts):
    return NetworkParams(
        network=NetworkType.REGTEST,
        redeem_address=scripts.address("R"),
        pubkey_prefix=REGTEST_PUBKEY_PREFIX,
        script_prefix=REGTEST_SCRIPT_PREFIX,
    )


@pytest.fixture
def dataset_lines(scripts):
    """Infractions for three transactions; TX1 holds two records for address A."""
    return [
        f"{TX1}\t{scripts.address('A')}\t1000\t1000.000000",
        f"{TX1}\t{scripts.address('B')}\t250\t250.000000",
        f"{TX1}\t{scripts.address('A')}\t500\t500.000000",
        f"{TX2}\t{scripts.address('A')}\t700\t700.000000",
        f"{TX3}\t{scripts.address('C')}\t123456789\t1.234568",
    ]


@pytest.fixture
def diagnostics():
    return []


@pytest.fixture
def validator(params, diagnostics):
    return CoinValidator(params, diagnostics=diagnostics.append)


@pytest.fixture
def loaded_validator(validator, dataset_lines):
    assert validator.load(dataset_lines) is True
    return validator


@pytest.fixture
def dataset_file(tmp_path, dataset_lines):
    path = tmp_path / "infractions_regtest.tsv"
    path.write_text("\n".join(dataset_lines) + "\n", encoding="utf-8")
    return path
