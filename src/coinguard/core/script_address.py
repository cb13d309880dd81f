"""
Resolve output scripts to base58check destination addresses.

Only standard templates are recognized:
- P2PKH: OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG
- P2SH:  OP_HASH160 <20 bytes> OP_EQUAL
- P2PK:  <33 or 65 byte public key> OP_CHECKSIG

Everything else is unresolvable and yields ``None``.
"""

from __future__ import annotations

import hashlib
from typing import Optional, Protocol, Union

import base58

from coinguard.core.config import NetworkParams
from coinguard.core.constants import (
    COMPRESSED_PUBKEY_BYTES,
    HASH160_BYTES,
    OP_CHECKSIG,
    OP_DUP,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_HASH160,
    UNCOMPRESSED_PUBKEY_BYTES,
)

ScriptLike = Union[bytes, bytearray, str]


class AddressResolver(Protocol):
    """Maps a locking script to a canonical address, or None if it has none."""

    def resolve(self, script: ScriptLike) -> Optional[str]:
        ...


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()


def _as_bytes(script: ScriptLike) -> Optional[bytes]:
    if isinstance(script, str):
        try:
            return bytes.fromhex(script)
        except ValueError:
            return None
    if isinstance(script, (bytes, bytearray)):
        return bytes(script)
    return None


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    if len(pubkey_hash) != HASH160_BYTES:
        raise ValueError(f"Public key hash must be {HASH160_BYTES} bytes")
    return bytes([OP_DUP, OP_HASH160, HASH160_BYTES]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_script(script_hash: bytes) -> bytes:
    if len(script_hash) != HASH160_BYTES:
        raise ValueError(f"Script hash must be {HASH160_BYTES} bytes")
    return bytes([OP_HASH160, HASH160_BYTES]) + script_hash + bytes([OP_EQUAL])


class StandardScriptResolver:
    """
    Resolver for standard output scripts using a network's base58 prefixes.

    Args:
        pubkey_prefix: Version byte for pay-to-pubkey(-hash) addresses
        script_prefix: Version byte for pay-to-script-hash addresses
    """

    def __init__(self, pubkey_prefix: int, script_prefix: int):
        self.pubkey_prefix = pubkey_prefix
        self.script_prefix = script_prefix

    @classmethod
    def for_network(cls, params: NetworkParams) -> "StandardScriptResolver":
        return cls(params.pubkey_prefix, params.script_prefix)

    def encode(self, prefix: int, payload: bytes) -> str:
        return base58.b58encode_check(bytes([prefix]) + payload).decode("ascii")

    def resolve(self, script: ScriptLike) -> Optional[str]:
        raw = _as_bytes(script)
        if not raw:
            return None

        # P2PKH
        if (
            len(raw) == 25
            and raw[0] == OP_DUP
            and raw[1] == OP_HASH160
            and raw[2] == HASH160_BYTES
            and raw[23] == OP_EQUALVERIFY
            and raw[24] == OP_CHECKSIG
        ):
            return self.encode(self.pubkey_prefix, raw[3:23])

        # P2SH
        if len(raw) == 23 and raw[0] == OP_HASH160 and raw[1] == HASH160_BYTES and raw[22] == OP_EQUAL:
            return self.encode(self.script_prefix, raw[2:22])

        # P2PK
        for key_size in (COMPRESSED_PUBKEY_BYTES, UNCOMPRESSED_PUBKEY_BYTES):
            if len(raw) == key_size + 2 and raw[0] == key_size and raw[-1] == OP_CHECKSIG:
                pubkey = raw[1:-1]
                if not _plausible_pubkey(pubkey):
                    return None
                return self.encode(self.pubkey_prefix, hash160(pubkey))

        return None


def _plausible_pubkey(pubkey: bytes) -> bool:
    if len(pubkey) == COMPRESSED_PUBKEY_BYTES:
        return pubkey[0] in (0x02, 0x03)
    if len(pubkey) == UNCOMPRESSED_PUBKEY_BYTES:
        return pubkey[0] == 0x04
    return False
