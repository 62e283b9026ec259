"""Tests for error payloads and CLI error formatting."""

import json
import re

from tx2uml.utils.exceptions import (
    FieldParseError,
    PaginationError,
    TraceStructureError,
    format_error,
)

from .conftest import INDEXER_TX_HASH


def plain(text):
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def test_to_dict_order_and_context():
    error = FieldParseError("msgGasUsed", "abc", tx_hash=INDEXER_TX_HASH, message_id=4)
    data = error.to_dict()
    assert list(data)[:4] == ["error", "type", "message", "tx_hash"]
    assert data["type"] == "FieldParseError"
    assert data["field"] == "msgGasUsed"
    assert data["message_id"] == 4


def test_pagination_error_is_structural():
    error = PaginationError(INDEXER_TX_HASH, None)
    assert isinstance(error, TraceStructureError)
    assert error.details["source"] == "indexer"
    assert error.details["cursor"] is None


def test_format_error_json_for_foreign_exception():
    data = json.loads(format_error(KeyError("boom"), json_mode=True))
    assert data == {"error": True, "type": "KeyError", "message": "'boom'"}


def test_format_error_shows_cause():
    try:
        try:
            raise ConnectionError("connection refused")
        except ConnectionError as e:
            raise TraceStructureError("No trace", tx_hash=INDEXER_TX_HASH) from e
    except TraceStructureError as e:
        text = plain(format_error(e))
    assert text == "No trace\n  caused by: connection refused"
