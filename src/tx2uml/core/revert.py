"""
Revert reason decoding.

Failed calls that use ``require(cond, "reason")`` or ``revert("reason")``
return the standard ``Error(string)`` payload: a 4 byte selector followed by
the ABI encoding of one dynamic string (offset word, length word, then the
UTF-8 bytes padded to a word boundary).
"""

from typing import Optional

from eth_abi.abi import encode as abi_encode
from eth_utils import decode_hex, function_signature_to_4byte_selector

from ..utils.exceptions import DecodeError

ERROR_SELECTOR = function_signature_to_4byte_selector("Error(string)")
WORD_SIZE = 32

# Byte offsets of the length word and the string data
_LENGTH_OFFSET = len(ERROR_SELECTOR) + WORD_SIZE
_DATA_OFFSET = _LENGTH_OFFSET + WORD_SIZE


def decode_revert_reason(data: str) -> str:
    """
    Decode the reason string of an ``Error(string)`` revert payload.

    Args:
        data: Hex encoded return data, with or without the 0x prefix

    Returns:
        The UTF-8 reason string

    Raises:
        DecodeError: If the data is not a well formed Error(string) payload
    """
    if not isinstance(data, str):
        raise DecodeError(f"Revert data must be a hex string, not {type(data).__name__}")
    try:
        raw = decode_hex(data)
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Revert data is not valid hex: {e}", data=data) from e

    if len(raw) < _DATA_OFFSET:
        raise DecodeError(
            f"Revert data is {len(raw)} bytes, too short for an Error(string) payload",
            data=data,
        )
    if raw[:len(ERROR_SELECTOR)] != ERROR_SELECTOR:
        raise DecodeError(
            f"Revert data selector 0x{raw[:4].hex()} is not Error(string)",
            data=data,
        )

    length = int.from_bytes(raw[_LENGTH_OFFSET:_DATA_OFFSET], "big")
    if _DATA_OFFSET + length > len(raw):
        raise DecodeError(
            f"Revert reason length {length} overruns the {len(raw)} bytes of data",
            data=data,
        )

    try:
        return raw[_DATA_OFFSET:_DATA_OFFSET + length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Revert reason is not valid UTF-8: {e}", data=data) from e


def try_decode_revert_reason(data: Optional[str]) -> Optional[str]:
    """Decode a revert reason, or return None when none is available."""
    if not data or data == "0x":
        return None
    try:
        return decode_revert_reason(data)
    except DecodeError:
        return None


def encode_revert_reason(reason: str) -> str:
    """Encode a reason string as ``Error(string)`` revert data."""
    return "0x" + (ERROR_SELECTOR + abi_encode(["string"], [reason])).hex()
