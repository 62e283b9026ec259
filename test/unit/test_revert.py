"""Tests for Error(string) revert reason decoding."""

import pytest

from tx2uml.core.revert import decode_revert_reason, encode_revert_reason, try_decode_revert_reason
from tx2uml.utils.exceptions import DecodeError

INSUFFICIENT_BALANCE = (
    "0x08c379a0"
    "0000000000000000000000000000000000000000000000000000000000000020"
    "0000000000000000000000000000000000000000000000000000000000000014"
    "696e73756666696369656e742062616c616e6365000000000000000000000000"
)


class TestDecodeRevertReason:
    def test_known_payload(self):
        assert decode_revert_reason(INSUFFICIENT_BALANCE) == "insufficient balance"

    def test_without_prefix(self):
        assert decode_revert_reason(INSUFFICIENT_BALANCE[2:]) == "insufficient balance"

    def test_encode_matches_standard_layout(self):
        assert encode_revert_reason("insufficient balance") == INSUFFICIENT_BALANCE

    def test_round_trip_unicode(self):
        reason = "Ünïcödé reason ✓"
        assert decode_revert_reason(encode_revert_reason(reason)) == reason

    def test_empty_reason(self):
        assert decode_revert_reason(encode_revert_reason("")) == ""

    def test_wrong_selector(self):
        data = "0x4e487b71" + INSUFFICIENT_BALANCE[10:]
        with pytest.raises(DecodeError, match="not Error"):
            decode_revert_reason(data)

    def test_too_short(self):
        with pytest.raises(DecodeError, match="too short"):
            decode_revert_reason("0x08c379a0")

    def test_length_overrun(self):
        data = INSUFFICIENT_BALANCE[:10 + 64] + "00" * 31 + "ff" + INSUFFICIENT_BALANCE[10 + 128:]
        with pytest.raises(DecodeError, match="overruns"):
            decode_revert_reason(data)

    def test_not_hex(self):
        with pytest.raises(DecodeError, match="not valid hex"):
            decode_revert_reason("0xnothex")

    def test_invalid_utf8(self):
        data = INSUFFICIENT_BALANCE[:10 + 64] + "00" * 31 + "02" + "fffe" + "00" * 30
        with pytest.raises(DecodeError, match="UTF-8"):
            decode_revert_reason(data)

    def test_not_a_string(self):
        with pytest.raises(DecodeError):
            decode_revert_reason(b"\x08\xc3\x79\xa0")


class TestTryDecodeRevertReason:
    @pytest.mark.parametrize("data", [None, "", "0x", "0x1234", "0xzz"])
    def test_unavailable_reason_is_none(self, data):
        assert try_decode_revert_reason(data) is None

    def test_decodes(self):
        assert try_decode_revert_reason(INSUFFICIENT_BALANCE) == "insufficient balance"
