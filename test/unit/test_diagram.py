"""Tests for PlantUML diagram generation."""

import pytest

from tx2uml.core.builder import IndexerTrace, NodeTrace, build_messages
from tx2uml.core.diagram import (
    DiagramOptions,
    annotation_fields,
    generate_plantuml,
    participant_aliases,
    participant_id,
)
from tx2uml.core.flattener import flatten_call_tree
from tx2uml.core.messages import CallRecord, Contract

from .conftest import EOA, INDEXER_TX_HASH, LIBRARY, LOGIC, PROXY, TX_HASH, VAULT, frame

TRANSFER_ABI = [{
    "type": "function",
    "name": "transfer",
    "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
}]


@pytest.fixture
def delegate_messages(delegate_chain_trace):
    return build_messages(NodeTrace.from_response(TX_HASH, delegate_chain_trace))


def lines_of(text):
    return text.splitlines()


class TestParticipants:
    def test_participant_id(self):
        assert participant_id(EOA) == "f39f2266"
        assert participant_id("0x1234") == "1234"

    def test_aliases_disambiguate_collisions(self):
        first = "0x1111000000000000000000000000000000002222"
        second = "0x1111ffffffffffffffffffffffffffffffff2222"
        aliases = participant_aliases([first, second])
        assert aliases == {first: "11112222", second: "11112222_1"}

    def test_declared_in_first_appearance_order(self, delegate_messages):
        declarations = [l for l in lines_of(generate_plantuml(delegate_messages)) if l.startswith("participant")]
        assert declarations[0] == 'participant "0xf39f..2266" as f39f2266'
        assert len(declarations) == 5
        assert len(declarations) == len(delegate_messages.participants())

    def test_contract_names_as_stereotypes(self, delegate_messages):
        contracts = {PROXY: Contract(PROXY, "TokenProxy", TRANSFER_ABI)}
        text = generate_plantuml(delegate_messages, contracts)
        assert 'participant "0x5fbd..0aa3" as 5fbd0aa3 <<TokenProxy>>' in text
        assert "f39f2266 -> 5fbd0aa3: transfer()" in text

    def test_contract_lookup_is_case_insensitive(self, delegate_messages):
        contracts = {PROXY.upper().replace("0X", "0x"): Contract(PROXY, "TokenProxy")}
        assert "<<TokenProxy>>" in generate_plantuml(delegate_messages, contracts)


class TestStructure:
    def test_deterministic(self, delegate_messages):
        assert generate_plantuml(delegate_messages) == generate_plantuml(delegate_messages)

    def test_starts_and_ends(self, delegate_messages):
        text = generate_plantuml(delegate_messages)
        assert text.startswith("@startuml\n")
        assert text.endswith("@enduml\n")

    def test_activations_balanced(self, delegate_messages):
        lines = lines_of(generate_plantuml(delegate_messages))
        depth = 0
        for line in lines:
            if line.startswith("activate "):
                depth += 1
            elif line.startswith("deactivate "):
                depth -= 1
                assert depth >= 0
        assert depth == 0
        assert sum(1 for l in lines if l.startswith("activate ")) == len(delegate_messages)

    def test_nested_call_inside_parent_activation(self, delegate_messages):
        lines = lines_of(generate_plantuml(delegate_messages))
        static_call = lines.index("5fbd0aa3 -[#darkgreen]> 9fe4a6e0: 0x70a08231")
        logic_closed = lines.index("deactivate e7f10512")
        assert lines.index("activate e7f10512") < static_call < logic_closed

    def test_title_and_caption(self, delegate_messages):
        lines = lines_of(generate_plantuml(delegate_messages))
        assert lines[1] == f"title {TX_HASH}"
        assert lines[2] == "caption status success"

    def test_no_title(self, delegate_messages):
        text = generate_plantuml(delegate_messages, options=DiagramOptions(show_title=False))
        assert "title" not in text
        assert "caption" not in text

    def test_single_message(self):
        messages = flatten_call_tree(CallRecord.from_dict(frame("CALL", EOA, PROXY, input="0x")))
        assert lines_of(generate_plantuml(messages)) == [
            "@startuml",
            'participant "0xf39f..2266" as f39f2266',
            'participant "0x5fbd..0aa3" as 5fbd0aa3',
            "",
            "f39f2266 -> 5fbd0aa3: fallback",
            "activate 5fbd0aa3",
            "5fbd0aa3 --> f39f2266",
            "deactivate 5fbd0aa3",
            "@enduml",
        ]

    def test_self_call(self):
        data = frame("CALL", EOA, PROXY, calls=[frame("CALL", PROXY, PROXY, input="0xd0e30db0")])
        text = generate_plantuml(flatten_call_tree(CallRecord.from_dict(data)))
        assert "5fbd0aa3 -> 5fbd0aa3: 0xd0e30db0" in text

    def test_delegate_executing_as(self):
        # LOGIC delegates on while running as PROXY
        data = frame("CALL", EOA, PROXY, calls=[
            frame("DELEGATECALL", PROXY, LOGIC, input="0xa9059cbb", calls=[
                frame("DELEGATECALL", LOGIC, LIBRARY, input="0x70a08231"),
            ]),
        ])
        text = generate_plantuml(flatten_call_tree(CallRecord.from_dict(data)))
        assert "5fbd0aa3 -[#slategray]> e7f10512: 0xa9059cbb\n" in text
        assert "e7f10512 -[#slategray]> 9fe4a6e0: 0x70a08231\\nas 5fbd0aa3" in text

    def test_delegate_from_executing_contract_has_no_as(self, delegate_messages):
        assert "\\nas " not in generate_plantuml(delegate_messages)


class TestFailures:
    def test_revert_reason_note(self, delegate_messages):
        lines = lines_of(generate_plantuml(delegate_messages))
        failed = lines.index("cf7e0fc9 -[#red]->x 5fbd0aa3: execution reverted")
        assert lines[failed + 1] == "note right of cf7e0fc9 #FFAAAA: insufficient balance"
        assert lines[failed + 2] == "deactivate cf7e0fc9"

    def test_failed_without_reason_has_no_note(self):
        data = frame("CALL", EOA, PROXY, calls=[
            frame("CALL", PROXY, VAULT, error="out of gas"),
        ])
        text = generate_plantuml(flatten_call_tree(CallRecord.from_dict(data)))
        assert "cf7e0fc9 -[#red]->x 5fbd0aa3: out of gas" in text
        assert "note" not in text

    def test_failed_transaction_caption(self):
        data = frame("CALL", EOA, PROXY, error="execution reverted")
        messages = build_messages(NodeTrace.from_response(TX_HASH, data))
        assert "caption status failed: execution reverted" in generate_plantuml(messages)


class TestLabels:
    def test_value_transfer_label(self, indexer_transaction, indexer_pages):
        messages = build_messages(IndexerTrace.from_responses(INDEXER_TX_HASH, indexer_transaction, indexer_pages))
        text = generate_plantuml(messages)
        assert "e7f10512 -[bold,#blue]> f39f2266: 0.5 ETH" in text

    def test_value_without_children_is_not_activated(self, indexer_transaction, indexer_pages):
        messages = build_messages(IndexerTrace.from_responses(INDEXER_TX_HASH, indexer_transaction, indexer_pages))
        assert "activate f39f2266" not in generate_plantuml(messages)

    def test_call_with_value(self, delegate_messages):
        assert "5fbd0aa3 -> cf7e0fc9: fallback\\n1 ETH" in generate_plantuml(delegate_messages)

    def test_show_gas(self, delegate_messages):
        text = generate_plantuml(delegate_messages, options=DiagramOptions(show_gas=True))
        assert "f39f2266 -> 5fbd0aa3: 0xa9059cbb\\n40000 gas" in text
        assert "5fbd0aa3 --> f39f2266: 40000 gas" in text

    def test_gas_hidden_by_default(self, delegate_messages):
        assert " gas" not in generate_plantuml(delegate_messages)

    def test_create_label(self):
        data = frame("CALL", EOA, PROXY, calls=[frame("CREATE", PROXY, LOGIC)])
        text = generate_plantuml(flatten_call_tree(CallRecord.from_dict(data)))
        assert "5fbd0aa3 ->o e7f10512: create" in text

    def test_annotation_fields(self, delegate_messages):
        assert annotation_fields(delegate_messages[0]) == {"gas_used": 40000}
        assert annotation_fields(delegate_messages[3]) == {"value": 10**18, "gas_used": 0}
