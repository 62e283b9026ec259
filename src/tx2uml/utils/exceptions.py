"""
Custom exceptions for tx2uml.

This module provides a hierarchy of exceptions for the failure modes of
trace reconciliation and diagram generation, along with utilities for
formatting errors consistently on the command line.
"""

import json
from typing import Any, Dict, Optional


class Tx2umlError(Exception):
    """
    Base exception for all tx2uml errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        error_code: Optional error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    @property
    def tx_hash(self) -> Optional[str]:
        return self.details.get("tx_hash")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": True,
            "type": self.error_code,
            "message": self.message,
            **self.details
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def _context(tx_hash: Optional[str] = None, **kwargs) -> Dict[str, Any]:
    details = {"tx_hash": tx_hash} if tx_hash else {}
    details.update({k: v for k, v in kwargs.items() if v is not None})
    return details


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(Tx2umlError):
    """Raised when input fails validation before any processing starts."""

    def __init__(self, message: str, tx_hash: Optional[str] = None, **kwargs):
        super().__init__(message, _context(tx_hash, **kwargs), "ValidationError")


class InvalidTransactionHashError(ValidationError):
    """Raised when a transaction hash is not 32 bytes of 0x-prefixed hex."""

    def __init__(self, tx_hash: Any, **kwargs):
        super().__init__(
            f'Transaction hash "{tx_hash}" must be 32 bytes in hexadecimal format with a 0x prefix',
            **kwargs
        )
        self.details["value"] = str(tx_hash)
        self.error_code = "InvalidTransactionHashError"


class MissingFieldError(ValidationError):
    """Raised when a fetched record lacks a required field."""

    def __init__(
        self,
        field: str,
        tx_hash: Optional[str] = None,
        message_id: Optional[int] = None,
        **kwargs
    ):
        message = f"Missing required field '{field}'"
        if message_id is not None:
            message += f" in message {message_id}"
        if tx_hash:
            message += f" of transaction {tx_hash}"
        super().__init__(message, tx_hash=tx_hash, field=field, message_id=message_id, **kwargs)
        self.error_code = "MissingFieldError"


class FieldParseError(ValidationError):
    """Raised when a numeric field cannot be parsed as an integer."""

    def __init__(
        self,
        field: str,
        value: Any,
        tx_hash: Optional[str] = None,
        message_id: Optional[int] = None,
        **kwargs
    ):
        message = f"Failed to parse field '{field}' with value {value!r} as an integer"
        if message_id is not None:
            message += f" in message {message_id}"
        if tx_hash:
            message += f" of transaction {tx_hash}"
        super().__init__(
            message,
            tx_hash=tx_hash,
            field=field,
            value=str(value),
            message_id=message_id,
            **kwargs
        )
        self.error_code = "FieldParseError"


# ============================================================================
# Decode Errors
# ============================================================================

class DecodeError(Tx2umlError):
    """Raised when revert data is not a well formed Error(string) payload."""

    def __init__(self, message: str, data: Optional[str] = None, **kwargs):
        details = {"data": data} if data is not None else {}
        details.update(kwargs)
        super().__init__(message, details, "DecodeError")


# ============================================================================
# Structural Errors
# ============================================================================

class TraceStructureError(Tx2umlError):
    """Raised when a fetched trace cannot be turned into a message tree."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        source: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, _context(tx_hash, source=source, **kwargs), "TraceStructureError")


class PaginationError(TraceStructureError):
    """Raised when the indexer signals more pages but gives no cursor."""

    def __init__(
        self,
        tx_hash: Optional[str] = None,
        cursor: Optional[str] = None,
        source: str = "indexer",
        **kwargs
    ):
        super().__init__(
            f'Missing pagination cursor "{cursor}" for contract messages of transaction {tx_hash}',
            tx_hash=tx_hash,
            source=source,
            **kwargs
        )
        self.details["cursor"] = cursor
        self.error_code = "PaginationError"


# ============================================================================
# Collaborator Errors
# ============================================================================

class RPCConnectionError(Tx2umlError):
    """Raised when the node RPC connection or request fails."""

    def __init__(self, message: str, rpc_url: Optional[str] = None, **kwargs):
        details = {"rpc_url": rpc_url} if rpc_url else {}
        details.update(kwargs)
        super().__init__(message, details, "RPCConnectionError")


class IndexerRequestError(Tx2umlError):
    """Raised when an HTTP request to the indexer fails."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, _context(tx_hash, url=url, **kwargs), "IndexerRequestError")


class RenderError(Tx2umlError):
    """Raised when the diagram cannot be written or rendered."""

    def __init__(self, message: str, filename: Optional[str] = None, **kwargs):
        details = {"filename": filename} if filename else {}
        details.update(kwargs)
        super().__init__(message, details, "RenderError")


class ConfigError(Tx2umlError):
    """Raised when configuration files or values are invalid."""

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        details = {"source": source} if source else {}
        details.update(kwargs)
        super().__init__(message, details, "ConfigError")


# ============================================================================
# Error Formatting Utilities
# ============================================================================

def format_error(e: Exception, json_mode: bool = False) -> str:
    """
    Format an exception for display.

    Args:
        e: The exception to format
        json_mode: If True, output as JSON; otherwise use colored text

    Returns:
        Formatted error string
    """
    from tx2uml.utils.colors import error

    if isinstance(e, Tx2umlError):
        if json_mode:
            return e.to_json()
        message = e.message
    else:
        if json_mode:
            return json.dumps(format_error_json(str(e), type(e).__name__), indent=2)
        message = str(e)

    # Walk the cause chain so wrapped root causes stay visible
    cause = e.__cause__
    while cause is not None:
        message += f"\n  caused by: {cause}"
        cause = cause.__cause__
    return error(message)


def format_error_json(
    message: str,
    error_type: str = "Error",
    **kwargs
) -> Dict[str, Any]:
    """
    Create a standardized error JSON structure.

    Args:
        message: Error message
        error_type: Error type/code
        **kwargs: Additional fields to include

    Returns:
        Dictionary suitable for JSON output
    """
    return {
        "error": True,
        "type": error_type,
        "message": message,
        **kwargs
    }
