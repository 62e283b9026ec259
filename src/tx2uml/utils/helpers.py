"""
Helper functions shared by the core pipeline and the clients.

Hex and quantity parsing, transaction hash validation and address
formatting.
"""

import re
from decimal import Decimal
from typing import Any, Optional

from web3 import Web3

from .exceptions import FieldParseError, InvalidTransactionHashError

TRANSACTION_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_transaction_hash(value: Any) -> bool:
    return isinstance(value, str) and TRANSACTION_HASH_PATTERN.match(value) is not None


def validate_transaction_hash(tx_hash: Any) -> str:
    """
    Check that a transaction hash is 32 bytes of hex with a 0x prefix.

    Returns the hash unchanged so callers can validate inline.

    Raises:
        InvalidTransactionHashError: If the hash is malformed
    """
    if not is_transaction_hash(tx_hash):
        raise InvalidTransactionHashError(tx_hash)
    return tx_hash


def parse_quantity(
    value: Any,
    field: str,
    tx_hash: Optional[str] = None,
    message_id: Optional[int] = None,
    default: Optional[int] = None,
) -> Optional[int]:
    """
    Parse an RPC or indexer quantity into an arbitrary precision int.

    Accepts ints, ``0x`` prefixed hex strings and decimal strings. A missing
    value (``None`` or empty string) returns ``default``.

    Raises:
        FieldParseError: If the value cannot be parsed
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise FieldParseError(field, value, tx_hash=tx_hash, message_id=message_id)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text[:2].lower() == "0x":
                return int(text, 16)
            return int(text, 10)
        except ValueError as e:
            raise FieldParseError(field, value, tx_hash=tx_hash, message_id=message_id) from e
    raise FieldParseError(field, value, tx_hash=tx_hash, message_id=message_id)


def to_hex_string(value: Any) -> Optional[str]:
    """Normalize bytes, HexBytes or hex strings into a 0x prefixed hex string."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        if not value:
            return "0x"
        return value if value.startswith("0x") else "0x" + value
    return str(value)


def short_address(address: str) -> str:
    """Shorten an address for display, e.g. 0x1234..abcd."""
    if not address or len(address) <= 12:
        return address or ""
    return f"{address[:6]}..{address[-4:]}"


def format_units(wei: int, unit: str = "ether") -> str:
    """Format a wei amount as a plain decimal string in the given unit."""
    amount = Decimal(Web3.from_wei(wei, unit))
    if amount == amount.to_integral():
        return str(amount.quantize(Decimal(1)))
    return format(amount.normalize(), "f")


def format_ether(wei: int) -> str:
    return format_units(wei, "ether")
