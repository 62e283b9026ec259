"""
Trace flattening.

Turns the nested call tree of a node's call tracer into a flat message
sequence in execution order.
"""

from typing import List, Optional, Tuple

from .messages import (
    CallRecord,
    MessageDraft,
    MessageSequence,
    TransactionDetails,
    message_type_for_kind,
)
from ..utils.helpers import validate_transaction_hash


def flatten_call_tree(
    root: CallRecord,
    details: Optional[TransactionDetails] = None,
    tx_hash: Optional[str] = None,
) -> MessageSequence:
    """
    Flatten a call record tree into a message sequence.

    Frames are visited in pre-order with an explicit work stack, so a
    frame's sequence id is always assigned before any of its children are
    visited and ids follow on-chain execution order. A frame carrying an
    error only marks its own message as failed.

    Args:
        root: Top level call record of the trace
        details: Optional transaction metadata to attach to the sequence
        tx_hash: Transaction hash for error context when no details are given

    Returns:
        MessageSequence with one message per frame

    Raises:
        InvalidTransactionHashError: If ``tx_hash`` is given but malformed
    """
    if tx_hash is not None:
        validate_transaction_hash(tx_hash)
    drafts: List[MessageDraft] = []
    stack: List[Tuple[CallRecord, Optional[int], int]] = [(root, None, 0)]

    while stack:
        record, parent_id, depth = stack.pop()
        sequence_id = len(drafts)
        drafts.append(MessageDraft(
            type=message_type_for_kind(record.kind),
            from_address=record.from_address,
            to_address=record.to_address,
            call_depth=depth,
            parent_id=parent_id,
            value=record.value,
            inputs=record.input,
            outputs=record.output,
            gas_limit=record.gas_limit,
            gas_used=record.gas_used,
            error=record.error,
        ))
        # Reversed so the first child is popped first
        stack.extend(
            (child, sequence_id, depth + 1) for child in reversed(record.children)
        )

    return MessageSequence.from_drafts(drafts, details, tx_hash=tx_hash)
