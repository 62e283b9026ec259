"""
Utilities module for tx2uml.

Provides exception handling, logging, colors, and helper functions.
"""

from .exceptions import (
    Tx2umlError,
    ValidationError,
    InvalidTransactionHashError,
    MissingFieldError,
    FieldParseError,
    DecodeError,
    TraceStructureError,
    PaginationError,
    RPCConnectionError,
    IndexerRequestError,
    RenderError,
    ConfigError,
    format_error,
    format_error_json,
)
from .logging import setup_logging, get_logger, logger
from .colors import (
    Colors,
    SUPPORTS_COLOR,
    error, success, warning, info, address, number,
    bullet_point,
)
from .helpers import (
    TRANSACTION_HASH_PATTERN,
    is_transaction_hash,
    validate_transaction_hash,
    parse_quantity,
    to_hex_string,
    short_address,
    format_units,
    format_ether,
)

__all__ = [
    # Exceptions
    'Tx2umlError',
    'ValidationError',
    'InvalidTransactionHashError',
    'MissingFieldError',
    'FieldParseError',
    'DecodeError',
    'TraceStructureError',
    'PaginationError',
    'RPCConnectionError',
    'IndexerRequestError',
    'RenderError',
    'ConfigError',
    # Formatting
    'format_error',
    'format_error_json',
    # Logging
    'setup_logging',
    'get_logger',
    'logger',
    # Colors
    'Colors',
    'SUPPORTS_COLOR',
    'error', 'success', 'warning', 'info', 'address', 'number',
    'bullet_point',
    # Helpers
    'TRANSACTION_HASH_PATTERN',
    'is_transaction_hash',
    'validate_transaction_hash',
    'parse_quantity',
    'to_hex_string',
    'short_address',
    'format_units',
    'format_ether',
]
