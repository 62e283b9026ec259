"""
Core module for tx2uml.

This module contains the trace to diagram pipeline:
- CallRecord / MessageSequence: Raw call tree and flattened message arena
- flatten_call_tree: Node call tracer tree to messages
- build_messages: Node or indexer trace source to messages
- generate_plantuml: Messages to PlantUML sequence diagram text
- MessageSerializer: Messages to JSON
"""

from .messages import (
    CallRecord,
    Contract,
    Message,
    MessageSequence,
    MessageType,
    TransactionDetails,
)
from .revert import decode_revert_reason, try_decode_revert_reason, encode_revert_reason
from .flattener import flatten_call_tree
from .builder import (
    IndexerPage,
    IndexerRecord,
    IndexerTrace,
    NodeTrace,
    TraceSource,
    build_messages,
    collect_pages,
    extract_cursor,
    merge_pages,
    parse_transaction_details,
)
from .diagram import DiagramOptions, DiagramSynthesizer, annotation_fields, generate_plantuml
from .serializer import MessageSerializer

__all__ = [
    'CallRecord',
    'Contract',
    'Message',
    'MessageSequence',
    'MessageType',
    'TransactionDetails',
    'decode_revert_reason',
    'try_decode_revert_reason',
    'encode_revert_reason',
    'flatten_call_tree',
    'IndexerPage',
    'IndexerRecord',
    'IndexerTrace',
    'NodeTrace',
    'TraceSource',
    'build_messages',
    'collect_pages',
    'extract_cursor',
    'merge_pages',
    'parse_transaction_details',
    'DiagramOptions',
    'DiagramSynthesizer',
    'annotation_fields',
    'generate_plantuml',
    'MessageSerializer',
]
