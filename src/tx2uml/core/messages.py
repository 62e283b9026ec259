"""
Message model for transaction call structures.

Defines the raw tree-shaped call records received from a node's call
tracer, the flattened messages every later stage works on, and the arena
(`MessageSequence`) that owns them. Parent and child links are indices into
the arena, never object references.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from eth_utils import function_abi_to_4byte_selector

from ..utils.exceptions import FieldParseError, MissingFieldError, TraceStructureError
from ..utils.helpers import parse_quantity, to_hex_string, validate_transaction_hash


class MessageType(str, Enum):
    """Kind of a message between two participants."""
    CALL = "Call"
    VALUE = "Value"
    CREATE = "Create"
    SELFDESTRUCT = "Selfdestruct"
    DELEGATECALL = "DelegateCall"
    STATICCALL = "StaticCall"


CALL_KIND_TYPES: Dict[str, MessageType] = {
    "CALL": MessageType.CALL,
    "CALLCODE": MessageType.CALL,
    "CREATE": MessageType.CREATE,
    "CREATE2": MessageType.CREATE,
    "DELEGATECALL": MessageType.DELEGATECALL,
    "STATICCALL": MessageType.STATICCALL,
    "SELFDESTRUCT": MessageType.SELFDESTRUCT,
}


def message_type_for_kind(kind: Optional[str]) -> MessageType:
    """Map a call tracer frame type onto a message type, defaulting to Call."""
    if not kind:
        return MessageType.CALL
    return CALL_KIND_TYPES.get(kind.upper(), MessageType.CALL)


def extract_selector(inputs: Optional[str]) -> Optional[str]:
    """First 4 bytes of call data, only when the data holds at least that much."""
    if inputs and len(inputs) >= 10:
        return inputs[:10]
    return None


@dataclass(frozen=True)
class CallRecord:
    """One frame of a call tracer response. Immutable once parsed."""
    kind: str
    from_address: Optional[str]
    to_address: Optional[str]
    input: str = "0x"
    output: str = "0x"
    value: int = 0
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None
    children: Tuple["CallRecord", ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], tx_hash: Optional[str] = None) -> "CallRecord":
        """
        Build a record tree from a ``callTracer`` response object.

        Uses an explicit stack so traces deeper than the interpreter's
        recursion limit still parse.

        Raises:
            InvalidTransactionHashError: If a transaction hash is given but malformed
            FieldParseError: If a quantity field is not an integer
            MissingFieldError: If a frame has no type
        """
        if tx_hash is not None:
            validate_transaction_hash(tx_hash)
        # Each entry fills one slot of its parent's children once its own are built
        root: List[Optional[CallRecord]] = [None]
        stack: List[Tuple[Mapping[str, Any], list, int, Optional[list]]] = [(data, root, 0, None)]
        while stack:
            node, slots, position, children = stack.pop()
            if children is None:
                calls = node.get("calls") or []
                children = [None] * len(calls)
                stack.append((node, slots, position, children))
                stack.extend((child, children, i, None) for i, child in enumerate(calls))
                continue
            slots[position] = cls._from_frame(node, tuple(children), tx_hash)
        return root[0]

    @classmethod
    def _from_frame(
        cls,
        frame: Mapping[str, Any],
        children: Tuple["CallRecord", ...],
        tx_hash: Optional[str],
    ) -> "CallRecord":
        kind = frame.get("type")
        if not kind:
            raise MissingFieldError("type", tx_hash=tx_hash)
        if not frame.get("from"):
            raise MissingFieldError("from", tx_hash=tx_hash)
        return cls(
            kind=str(kind).upper(),
            from_address=frame.get("from"),
            to_address=frame.get("to"),
            input=to_hex_string(frame.get("input")) or "0x",
            output=to_hex_string(frame.get("output")) or "0x",
            value=parse_quantity(frame.get("value"), "value", tx_hash, default=0),
            gas_limit=parse_quantity(frame.get("gas"), "gas", tx_hash),
            gas_used=parse_quantity(frame.get("gasUsed"), "gasUsed", tx_hash),
            error=frame.get("error") or None,
            children=children,
        )

    def walk(self) -> Iterator[Tuple[int, "CallRecord"]]:
        """Depth and record of every frame in this subtree, in call order."""
        stack = [(0, self)]
        while stack:
            depth, record = stack.pop()
            yield depth, record
            stack.extend((depth + 1, child) for child in reversed(record.children))

    def count(self) -> int:
        """Total number of frames in this subtree, this one included."""
        return sum(1 for _ in self.walk())


@dataclass(frozen=True)
class TransactionDetails:
    """Transaction level metadata, attached once to a message sequence."""
    hash: str
    nonce: Optional[int] = None
    index: Optional[int] = None
    value: int = 0
    gas_price: Optional[int] = None
    timestamp: Optional[datetime] = None
    status: bool = True
    error: Optional[str] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    input: Optional[str] = None
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    block_number: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], tx_hash: str) -> "TransactionDetails":
        """
        Create from a plain mapping with camelCase keys, as written by the
        message serializer. ``timestamp`` may be unix seconds or ISO 8601.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str) and not timestamp.isdigit():
            try:
                timestamp = datetime.fromisoformat(timestamp)
            except ValueError:
                raise FieldParseError("timestamp", timestamp, tx_hash=tx_hash) from None
        elif timestamp is not None:
            seconds = parse_quantity(timestamp, "timestamp", tx_hash)
            timestamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
        status = data.get("status", True)
        if not isinstance(status, bool):
            # Receipt style quantities: "0x1" or 1 succeeded, "0x0" or 0 failed
            status = parse_quantity(status, "status", tx_hash, default=1) == 1
        return cls(
            hash=data.get("hash") or tx_hash,
            nonce=parse_quantity(data.get("nonce"), "nonce", tx_hash),
            index=parse_quantity(data.get("index"), "index", tx_hash),
            value=parse_quantity(data.get("value"), "value", tx_hash, default=0),
            gas_price=parse_quantity(data.get("gasPrice"), "gasPrice", tx_hash),
            timestamp=timestamp,
            status=status,
            error=data.get("error") or None,
            from_address=data.get("from"),
            to_address=data.get("to"),
            input=to_hex_string(data.get("input")),
            gas_limit=parse_quantity(data.get("gasLimit"), "gasLimit", tx_hash),
            gas_used=parse_quantity(data.get("gasUsed"), "gasUsed", tx_hash),
            block_number=parse_quantity(data.get("blockNumber"), "blockNumber", tx_hash),
        )


@dataclass(frozen=True)
class Message:
    """A single flattened call, transfer, create or selfdestruct."""
    sequence_id: int
    type: MessageType
    from_address: str
    delegated_from: str
    to_address: Optional[str]
    value: int
    func_selector: Optional[str]
    inputs: Optional[str]
    outputs: Optional[str]
    gas_limit: Optional[int]
    gas_used: Optional[int]
    call_depth: int
    parent_id: Optional[int]
    children_ids: Tuple[int, ...]
    status: bool
    error: Optional[str]

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass
class MessageDraft:
    """Mutable message fields gathered before the sequence is frozen."""
    type: MessageType
    from_address: str
    to_address: Optional[str]
    call_depth: int
    parent_id: Optional[int]
    value: int = 0
    inputs: Optional[str] = None
    outputs: Optional[str] = None
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None
    status: Optional[bool] = None
    func_selector: Optional[str] = None


@dataclass
class Contract:
    """A participant known to the caller, optionally with its ABI."""
    address: str
    name: Optional[str] = None
    abi: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self._functions: Dict[str, str] = {}
        for item in self.abi:
            if item.get("type", "function") != "function" or "name" not in item:
                continue
            fn_abi = dict(item, type="function", inputs=item.get("inputs", []))
            selector = "0x" + function_abi_to_4byte_selector(fn_abi).hex()
            self._functions[selector] = item["name"]

    def function_name(self, selector: Optional[str]) -> Optional[str]:
        if not selector:
            return None
        return self._functions.get(selector.lower())


class MessageSequence(Sequence[Message]):
    """
    Arena of messages in call order.

    ``messages[i].sequence_id == i`` always holds, so parent and child
    indices resolve directly.
    """

    def __init__(self, messages: Sequence[Message], details: Optional[TransactionDetails] = None):
        self._messages: Tuple[Message, ...] = tuple(messages)
        self.details = details
        self._validate()

    @classmethod
    def from_drafts(
        cls,
        drafts: Sequence[MessageDraft],
        details: Optional[TransactionDetails] = None,
        tx_hash: Optional[str] = None,
    ) -> "MessageSequence":
        """
        Freeze drafts (already in pre-order) into a sequence.

        Fills in children lists and delegate attribution. A delegatecall runs
        with the identity of whoever its parent was effectively executing as,
        so that identity is carried down chains of delegatecalls.
        """
        if details is not None:
            tx_hash = details.hash
        children: List[List[int]] = [[] for _ in drafts]
        recipients: List[str] = []
        delegated: List[str] = []

        for i, draft in enumerate(drafts):
            parent_id = draft.parent_id
            if parent_id is not None:
                if not 0 <= parent_id < i:
                    raise TraceStructureError(
                        f"Message {i} references parent {parent_id} which is not an earlier message",
                        tx_hash=tx_hash,
                        message_id=i,
                    )
                children[parent_id].append(i)

            if draft.type is MessageType.DELEGATECALL:
                context = recipients[parent_id] if parent_id is not None else draft.from_address
                delegated.append(context)
                recipients.append(context)
            else:
                delegated.append(draft.from_address)
                recipients.append(draft.to_address or draft.from_address)

        messages = []
        for i, draft in enumerate(drafts):
            status = draft.status if draft.status is not None else not draft.error
            messages.append(Message(
                sequence_id=i,
                type=draft.type,
                from_address=draft.from_address,
                delegated_from=delegated[i],
                to_address=draft.to_address,
                value=draft.value,
                func_selector=draft.func_selector or extract_selector(draft.inputs),
                inputs=draft.inputs,
                outputs=draft.outputs,
                gas_limit=draft.gas_limit,
                gas_used=draft.gas_used,
                call_depth=draft.call_depth,
                parent_id=draft.parent_id,
                children_ids=tuple(children[i]),
                status=status,
                error=draft.error,
            ))
        return cls(messages, details)

    def _validate(self):
        tx_hash = self.details.hash if self.details else None
        for i, message in enumerate(self._messages):
            if message.sequence_id != i:
                raise TraceStructureError(
                    f"Message at position {i} has sequence id {message.sequence_id}",
                    tx_hash=tx_hash,
                    message_id=message.sequence_id,
                )
            if message.parent_id is None:
                if i != 0 or message.call_depth != 0:
                    raise TraceStructureError(
                        f"Message {i} has no parent but is not the root call",
                        tx_hash=tx_hash,
                        message_id=i,
                    )
                continue
            parent = self._messages[message.parent_id]
            if message.call_depth != parent.call_depth + 1:
                raise TraceStructureError(
                    f"Message {i} at depth {message.call_depth} is not one below "
                    f"its parent {parent.sequence_id} at depth {parent.call_depth}",
                    tx_hash=tx_hash,
                    message_id=i,
                )

    def __getitem__(self, index):
        return self._messages[index]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    @property
    def root(self) -> Optional[Message]:
        return self._messages[0] if self._messages else None

    def parent(self, message: Message) -> Optional[Message]:
        if message.parent_id is None:
            return None
        return self._messages[message.parent_id]

    def children(self, message: Message) -> List[Message]:
        return [self._messages[i] for i in message.children_ids]

    def participants(self) -> List[str]:
        """Distinct from/to addresses in order of first appearance."""
        seen = set()
        addresses = []
        for message in self._messages:
            for address in (message.from_address, message.to_address):
                if address and address.lower() not in seen:
                    seen.add(address.lower())
                    addresses.append(address)
        return addresses
