"""
tx2uml - Ethereum transaction call diagrams
"""

__version__ = "0.1.0"

# Main entry point
from .cli.main import main

# Core components
from .core import (
    CallRecord,
    Contract,
    Message,
    MessageSequence,
    MessageType,
    TransactionDetails,
    NodeTrace,
    IndexerTrace,
    build_messages,
    flatten_call_tree,
    decode_revert_reason,
    generate_plantuml,
    DiagramOptions,
    MessageSerializer,
)

# Clients
from .clients import NodeClient, IndexerClient

# Configuration
from .config import Tx2umlConfig, load_config, load_contracts

# Utilities
from .utils import (
    Tx2umlError,
    ValidationError,
    InvalidTransactionHashError,
    DecodeError,
    TraceStructureError,
    PaginationError,
    setup_logging,
    get_logger,
)

__all__ = [
    '__version__',
    'main',
    # Core
    'CallRecord',
    'Contract',
    'Message',
    'MessageSequence',
    'MessageType',
    'TransactionDetails',
    'NodeTrace',
    'IndexerTrace',
    'build_messages',
    'flatten_call_tree',
    'decode_revert_reason',
    'generate_plantuml',
    'DiagramOptions',
    'MessageSerializer',
    # Clients
    'NodeClient',
    'IndexerClient',
    # Configuration
    'Tx2umlConfig',
    'load_config',
    'load_contracts',
    # Utilities
    'Tx2umlError',
    'ValidationError',
    'InvalidTransactionHashError',
    'DecodeError',
    'TraceStructureError',
    'PaginationError',
    'setup_logging',
    'get_logger',
]
