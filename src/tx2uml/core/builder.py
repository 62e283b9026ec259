"""
Message model builder.

Reconciles the two places a transaction's call structure can come from, a
node's call tracer or an indexer's paged contract messages, into one
`MessageSequence` with the same field semantics. The source is a tagged
union resolved once here; nothing downstream needs to know which one
produced the messages.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qs, unquote, urlsplit

from .flattener import flatten_call_tree
from .messages import (
    CallRecord,
    MessageDraft,
    MessageSequence,
    MessageType,
    TransactionDetails,
    extract_selector,
)
from ..utils.exceptions import (
    MissingFieldError,
    PaginationError,
    TraceStructureError,
)
from ..utils.helpers import parse_quantity, to_hex_string, validate_transaction_hash

# Indexer message type tags, transaction level and internal message variants
INDEXER_TYPES: Dict[str, MessageType] = {
    "CallTx": MessageType.CALL,
    "CallContractMsg": MessageType.CALL,
    "ValueTx": MessageType.VALUE,
    "ValueContractMsg": MessageType.VALUE,
    "CreateTx": MessageType.CREATE,
    "CreateContractMsg": MessageType.CREATE,
    "SelfdestructTx": MessageType.SELFDESTRUCT,
    "SelfdestructContractMsg": MessageType.SELFDESTRUCT,
}

CURSOR_PARAM = "page[next]"


def convert_indexer_type(msg_type: Optional[str]) -> MessageType:
    return INDEXER_TYPES.get(msg_type or "", MessageType.CALL)


# ============================================================================
# Indexer records and pages
# ============================================================================

@dataclass(frozen=True)
class IndexerRecord:
    """One flat message as reported by the indexer."""
    index: int
    msg_type: Optional[str]
    from_address: str
    to_address: Optional[str]
    value: int
    inputs: Optional[str]
    func_selector: Optional[str]
    gas_used: Optional[int]
    gas_limit: Optional[int]
    call_depth: int
    failed: bool = False
    error: Optional[str] = None

    @property
    def type(self) -> MessageType:
        return convert_indexer_type(self.msg_type)

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any], tx_hash: Optional[str] = None) -> "IndexerRecord":
        """
        Parse a contract message resource (``attributes`` + ``relationships``).

        Raises:
            MissingFieldError: If attributes, the message index, depth or sender are missing
            FieldParseError: If a numeric field is not an integer
        """
        attributes = resource.get("attributes")
        if not isinstance(attributes, Mapping):
            raise MissingFieldError("attributes", tx_hash=tx_hash)
        index = parse_quantity(attributes.get("cmsgIndex"), "cmsgIndex", tx_hash)
        if index is None:
            raise MissingFieldError("cmsgIndex", tx_hash=tx_hash)

        call_depth = parse_quantity(attributes.get("msgCallDepth"), "msgCallDepth", tx_hash, index)
        if call_depth is None:
            raise MissingFieldError("msgCallDepth", tx_hash=tx_hash, message_id=index)

        inputs, selector = _payload_fields(attributes.get("msgPayload"))
        relationships = resource.get("relationships") or {}
        return cls(
            index=index,
            msg_type=attributes.get("msgType"),
            from_address=_relationship_id(relationships, "from", tx_hash, index, required=True),
            to_address=_relationship_id(relationships, "to", tx_hash, index),
            value=parse_quantity(attributes.get("value"), "value", tx_hash, index, default=0),
            inputs=inputs,
            func_selector=selector,
            gas_used=parse_quantity(attributes.get("msgGasUsed"), "msgGasUsed", tx_hash, index),
            gas_limit=parse_quantity(attributes.get("msgGasLimit"), "msgGasLimit", tx_hash, index),
            call_depth=call_depth,
            failed=bool(attributes.get("msgError")),
            error=attributes.get("msgErrorString") or None,
        )


@dataclass(frozen=True)
class IndexerPage:
    """One page of contract messages plus its continuation link."""
    records: Tuple[IndexerRecord, ...]
    has_next: bool = False
    next_link: Optional[str] = None

    @classmethod
    def from_response(cls, response: Mapping[str, Any], tx_hash: Optional[str] = None) -> "IndexerPage":
        data = response.get("data") if isinstance(response, Mapping) else None
        if not isinstance(data, list):
            raise TraceStructureError(
                f"No contract messages in indexer response: {response!r}",
                tx_hash=tx_hash,
                source="indexer",
            )
        records = tuple(IndexerRecord.from_resource(item, tx_hash) for item in data)
        page_meta = (response.get("meta") or {}).get("page") or {}
        links = response.get("links") or {}
        return cls(
            records=records,
            has_next=bool(page_meta.get("hasNext")),
            next_link=links.get("next"),
        )

    @property
    def cursor(self) -> Optional[str]:
        return extract_cursor(self.next_link)


def extract_cursor(next_link: Optional[str]) -> Optional[str]:
    """Pull the continuation cursor out of a page's ``links.next`` URL."""
    if not next_link:
        return None
    values = parse_qs(urlsplit(next_link).query).get(CURSOR_PARAM)
    if values and values[-1]:
        return values[-1]
    if "=" not in next_link:
        return None
    return unquote(next_link.rsplit("=", 1)[1]) or None


def collect_pages(
    first_page: IndexerPage,
    fetch_page: Callable[[str], IndexerPage],
    tx_hash: Optional[str] = None,
) -> List[IndexerPage]:
    """
    Follow cursors from the first page until the indexer reports no more.

    Args:
        first_page: Page fetched without a cursor
        fetch_page: Callable returning the page for a cursor
        tx_hash: Transaction hash for error context

    Raises:
        PaginationError: If more pages are signalled without a cursor
        TraceStructureError: If the indexer hands back a cursor twice
    """
    pages = [first_page]
    seen = set()
    page = first_page
    while page.has_next:
        cursor = page.cursor
        if not cursor:
            raise PaginationError(tx_hash, cursor)
        if cursor in seen:
            raise TraceStructureError(
                f"Indexer returned pagination cursor {cursor} twice",
                tx_hash=tx_hash,
                source="indexer",
                cursor=cursor,
            )
        seen.add(cursor)
        page = fetch_page(cursor)
        pages.append(page)
    return pages


def merge_pages(pages: Sequence[IndexerPage]) -> List[IndexerRecord]:
    """Concatenate pages in cursor order, drop repeats, then sort by index."""
    seen = set()
    records = []
    for page in pages:
        for record in page.records:
            if record.index in seen:
                continue
            seen.add(record.index)
            records.append(record)
    return sorted(records, key=lambda r: r.index)


def parse_transaction_details(
    response: Mapping[str, Any],
    tx_hash: str,
) -> Tuple[TransactionDetails, IndexerRecord]:
    """
    Parse the indexer's transaction resource.

    Returns the transaction details and the transaction level message,
    which becomes the root of the message tree.
    """
    validate_transaction_hash(tx_hash)
    data = response.get("data") if isinstance(response, Mapping) else None
    if not isinstance(data, Mapping) or not isinstance(data.get("attributes"), Mapping):
        raise TraceStructureError(
            f"No transaction attributes in indexer response: {response!r}",
            tx_hash=tx_hash,
            source="indexer",
        )
    if not isinstance(data.get("relationships"), Mapping):
        raise TraceStructureError(
            f"No transaction relationships in indexer response: {response!r}",
            tx_hash=tx_hash,
            source="indexer",
        )
    attributes = data["attributes"]
    relationships = data["relationships"]

    inputs, selector = _payload_fields(attributes.get("msgPayload"))
    from_address = _relationship_id(relationships, "from", tx_hash, 0, required=True)
    to_address = _relationship_id(relationships, "to", tx_hash, 0)
    value = parse_quantity(attributes.get("value"), "value", tx_hash, 0, default=0)
    gas_used = parse_quantity(attributes.get("txGasUsed"), "txGasUsed", tx_hash, 0)
    gas_limit = parse_quantity(attributes.get("msgGasLimit"), "msgGasLimit", tx_hash, 0)
    failed = bool(attributes.get("msgError"))
    error = attributes.get("msgErrorString") or None

    created = parse_quantity(attributes.get("blockCreationTime"), "blockCreationTime", tx_hash)
    details = TransactionDetails(
        hash=tx_hash,
        nonce=parse_quantity(attributes.get("txNonce"), "txNonce", tx_hash),
        index=parse_quantity(attributes.get("txIndex"), "txIndex", tx_hash),
        value=value,
        gas_price=parse_quantity(attributes.get("txGasPrice"), "txGasPrice", tx_hash),
        timestamp=datetime.fromtimestamp(created, tz=timezone.utc) if created is not None else None,
        status=not failed,
        error=error,
        from_address=from_address,
        to_address=to_address,
        input=inputs,
        gas_limit=gas_limit,
        gas_used=gas_used,
        block_number=parse_quantity(attributes.get("blockNumber"), "blockNumber", tx_hash),
    )
    root = IndexerRecord(
        index=0,
        msg_type=attributes.get("msgType"),
        from_address=from_address,
        to_address=to_address,
        value=value,
        inputs=inputs,
        func_selector=selector,
        gas_used=gas_used,
        gas_limit=gas_limit,
        call_depth=0,
        failed=failed,
        error=error,
    )
    return details, root


def _payload_fields(payload: Any) -> Tuple[Optional[str], Optional[str]]:
    """Raw call data and selector from an indexer ``msgPayload``."""
    if isinstance(payload, str):
        inputs = to_hex_string(payload)
        return inputs, extract_selector(inputs)
    if not isinstance(payload, Mapping):
        return None, None
    inputs = to_hex_string(payload.get("raw"))
    selector = extract_selector(inputs) or to_hex_string(payload.get("funcSelector"))
    return inputs, selector


def _relationship_id(
    relationships: Mapping[str, Any],
    name: str,
    tx_hash: Optional[str],
    message_id: Optional[int],
    required: bool = False,
) -> Optional[str]:
    relation = relationships.get(name) or {}
    data = relation.get("data") or {}
    value = data.get("id") if isinstance(data, Mapping) else None
    if not value and required:
        raise MissingFieldError(f"relationships.{name}.data.id", tx_hash=tx_hash, message_id=message_id)
    return value or None


# ============================================================================
# Trace sources
# ============================================================================

@dataclass(frozen=True)
class NodeTrace:
    """Call tree fetched from a node's call tracer."""
    tx_hash: str
    root: CallRecord
    details: Optional[TransactionDetails] = None

    @classmethod
    def from_response(
        cls,
        tx_hash: str,
        result: Mapping[str, Any],
        details: Optional[TransactionDetails] = None,
        source: str = "node",
    ) -> "NodeTrace":
        """
        Build from a ``debug_traceTransaction`` callTracer result.

        Raises:
            InvalidTransactionHashError: Before anything else if the hash is malformed
            TraceStructureError: If the result has no usable top level call
            ValidationError: If a frame lacks a required field or has a bad quantity
        """
        validate_transaction_hash(tx_hash)
        if not isinstance(result, Mapping) or not result.get("from"):
            hint = ""
            if isinstance(result, Mapping) and result.get("structLogs") is not None:
                hint = (" The node returned opcode level struct logs, so it looks like "
                        "it does not support the callTracer.")
            raise TraceStructureError(
                f"No transaction trace messages in response for {tx_hash}.{hint}",
                tx_hash=tx_hash,
                source=source,
            )
        try:
            root = CallRecord.from_dict(result, tx_hash)
        except (AttributeError, TypeError) as e:
            raise TraceStructureError(
                f"Malformed call frame in the trace of transaction {tx_hash} from {source}: {e}",
                tx_hash=tx_hash,
                source=source,
            ) from e
        return cls(tx_hash=tx_hash, root=root, details=details)


@dataclass(frozen=True)
class IndexerTrace:
    """Transaction level message plus all contract message pages."""
    tx_hash: str
    root: IndexerRecord
    pages: Tuple[IndexerPage, ...]
    details: Optional[TransactionDetails] = None

    @classmethod
    def from_responses(
        cls,
        tx_hash: str,
        transaction_response: Mapping[str, Any],
        page_responses: Sequence[Mapping[str, Any]],
    ) -> "IndexerTrace":
        """Build from already fetched transaction and page responses."""
        validate_transaction_hash(tx_hash)
        details, root = parse_transaction_details(transaction_response, tx_hash)
        pages = tuple(IndexerPage.from_response(page, tx_hash) for page in page_responses)
        return cls(tx_hash=tx_hash, root=root, pages=pages, details=details)


TraceSource = Union[NodeTrace, IndexerTrace]


def build_messages(source: TraceSource) -> MessageSequence:
    """
    Resolve a trace source into the unified message sequence.

    Raises:
        InvalidTransactionHashError: If the source's hash is malformed
        TraceStructureError: If the messages do not form a single call tree
    """
    validate_transaction_hash(source.tx_hash)
    if isinstance(source, NodeTrace):
        return build_from_call_tree(source.tx_hash, source.root, source.details)
    if isinstance(source, IndexerTrace):
        return build_from_indexer(source.tx_hash, source.root, merge_pages(source.pages), source.details)
    raise TypeError(f"Unsupported trace source: {type(source).__name__}")


def build_from_call_tree(
    tx_hash: str,
    root: CallRecord,
    details: Optional[TransactionDetails] = None,
) -> MessageSequence:
    validate_transaction_hash(tx_hash)
    if details is None:
        details = TransactionDetails(
            hash=tx_hash,
            value=root.value,
            status=root.error is None,
            error=root.error,
            from_address=root.from_address,
            to_address=root.to_address,
            input=root.input,
            gas_limit=root.gas_limit,
            gas_used=root.gas_used,
        )
    return flatten_call_tree(root, details)


def build_from_indexer(
    tx_hash: str,
    root: IndexerRecord,
    records: Sequence[IndexerRecord],
    details: Optional[TransactionDetails] = None,
) -> MessageSequence:
    """
    Link indexer records into a tree using their call depths.

    ``records`` must already be in message index order; the transaction
    level ``root`` is placed first and sequence ids are the resulting ranks.
    """
    validate_transaction_hash(tx_hash)
    if root.call_depth != 0:
        raise TraceStructureError(
            f"Transaction level message has call depth {root.call_depth}, expected 0",
            tx_hash=tx_hash,
            source="indexer",
        )

    drafts: List[MessageDraft] = []
    open_ids: List[int] = []
    for position, record in enumerate([root, *records]):
        while open_ids and drafts[open_ids[-1]].call_depth >= record.call_depth:
            open_ids.pop()
        parent_id = open_ids[-1] if open_ids else None
        if position > 0 and (parent_id is None or record.call_depth != drafts[parent_id].call_depth + 1):
            raise TraceStructureError(
                f"Contract message {record.index} at depth {record.call_depth} has no caller one level above it",
                tx_hash=tx_hash,
                source="indexer",
                message_id=record.index,
            )
        drafts.append(MessageDraft(
            type=record.type,
            from_address=record.from_address,
            to_address=record.to_address,
            call_depth=record.call_depth,
            parent_id=parent_id,
            value=record.value,
            inputs=record.inputs,
            gas_limit=record.gas_limit,
            gas_used=record.gas_used,
            error=record.error,
            status=not record.failed and not record.error,
            func_selector=record.func_selector,
        ))
        open_ids.append(position)

    if details is None:
        details = TransactionDetails(hash=tx_hash)
    return MessageSequence.from_drafts(drafts, details)
