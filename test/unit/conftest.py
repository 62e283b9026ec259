"""Shared fixtures for tx2uml unit tests."""

import json
from pathlib import Path

import pytest

INPUTS = Path(__file__).resolve().parent.parent / "Inputs"

TX_HASH = "0x9c1492ef35d466017f5ab750585c2ab49b74b228e53a1cb4861186b88270e61c"
INDEXER_TX_HASH = "0x753cd9fb4c250affd3f59fb141255e5802ee2b9214f604ec5782c1aac02015b3"

EOA = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
PROXY = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
LOGIC = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"
LIBRARY = "0x9fe46736679d2d9a65f0992f2272de9f3c7fa6e0"
VAULT = "0xcf7ed3acca5a467e9e704c703e8d87f634fb0fc9"


def frame(kind, from_address, to_address, calls=None, **fields):
    """Build a callTracer frame."""
    data = {"type": kind, "from": from_address, "to": to_address, "input": "0x", "gas": "0x0", "gasUsed": "0x0"}
    data.update(fields)
    if calls:
        data["calls"] = calls
    return data


def contract_message(index, depth, from_address, to_address, msg_type="CallContractMsg", **attributes):
    """Build an indexer contract message resource."""
    attrs = {
        "cmsgIndex": index,
        "msgType": msg_type,
        "value": "0",
        "msgPayload": None,
        "msgGasUsed": "0",
        "msgGasLimit": "0",
        "msgCallDepth": depth,
        "msgError": False,
        "msgErrorString": "",
    }
    attrs.update(attributes)
    return {
        "type": "ContractMessage",
        "attributes": attrs,
        "relationships": {
            "from": {"data": {"id": from_address}},
            "to": {"data": {"id": to_address}},
        },
    }


def page(records, next_cursor=None):
    """Build an indexer contract message page."""
    response = {"data": records, "meta": {"page": {"hasNext": next_cursor is not None}}, "links": {}}
    if next_cursor is not None:
        response["links"]["next"] = f"https://indexer.test/v1/transactions/x/contractMessages?page%5Bnext%5D={next_cursor}"
    return response


def load_input(name):
    with open(INPUTS / name) as f:
        return json.load(f)


@pytest.fixture
def delegate_chain_trace():
    return load_input("delegate_chain_trace.json")["result"]


@pytest.fixture
def indexer_transaction():
    return load_input("indexer_transaction.json")


@pytest.fixture
def indexer_pages():
    return load_input("indexer_pages.json")
