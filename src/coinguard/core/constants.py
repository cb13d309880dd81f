"""
coinguard Constants

Monetary units, dataset format markers and script opcodes shared by the
infraction registry and the address resolver.

NOTE: The dataset format constants are part of the on-disk contract of the
infraction files. Changing them invalidates every packaged dataset.
"""

from typing import Final

# =============================================================================
# MONETARY UNITS
# =============================================================================

COIN: Final[int] = 100_000_000  # Smallest units per whole coin
DISPLAY_DECIMALS: Final[int] = 6  # Fractional digits in the display amount column

# =============================================================================
# INFRACTION DATASET FORMAT
# =============================================================================

FIELD_SEPARATOR: Final[str] = "\t"
FIELD_COUNT: Final[int] = 4  # txid, address, amount, display amount
TXID_HEX_LENGTH: Final[int] = 64
TXID_BYTES: Final[int] = 32
DATASET_FILE_TEMPLATE: Final[str] = "infractions_{network}.tsv"

# =============================================================================
# SCRIPT OPCODES (standard output templates)
# =============================================================================

OP_DUP: Final[int] = 0x76
OP_HASH160: Final[int] = 0xA9
OP_EQUAL: Final[int] = 0x87
OP_EQUALVERIFY: Final[int] = 0x88
OP_CHECKSIG: Final[int] = 0xAC

HASH160_BYTES: Final[int] = 20
COMPRESSED_PUBKEY_BYTES: Final[int] = 33
UNCOMPRESSED_PUBKEY_BYTES: Final[int] = 65
