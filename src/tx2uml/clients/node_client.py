"""
Ethereum node client.

Fetches a transaction's call tree with geth's ``callTracer`` and its
transaction level details over JSON-RPC using web3.
"""

import dataclasses
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError

from ..core.builder import NodeTrace
from ..core.messages import TransactionDetails
from ..core.revert import try_decode_revert_reason
from ..utils.exceptions import RPCConnectionError, TraceStructureError
from ..utils.helpers import parse_quantity, to_hex_string, validate_transaction_hash
from ..utils.logging import TRACE, get_logger, trace

logger = get_logger("clients.node")

DEFAULT_NODE_URL = "http://localhost:8545"
OUT_OF_GAS_ERROR = "Transaction failed as it ran out of gas."


class NodeClient:
    """
    Reads traces and transactions from an Ethereum node.

    The node must expose the ``debug`` namespace with geth's built-in
    ``callTracer`` (geth, erigon, anvil, hardhat and most archive providers).
    """

    def __init__(self, url: str = DEFAULT_NODE_URL, timeout: int = 30, w3: Optional[Web3] = None):
        self.url = url
        self.w3 = w3 or Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": timeout}))

    def get_transaction_trace(self, tx_hash: str) -> NodeTrace:
        """
        Run ``debug_traceTransaction`` with the call tracer.

        Raises:
            InvalidTransactionHashError: If the hash is malformed
            RPCConnectionError: If the request fails
            TraceStructureError: If the response is not a call tree
        """
        validate_transaction_hash(tx_hash)
        params = [tx_hash, {"tracer": "callTracer"}]
        logger.debug(f"About to get transaction trace for {tx_hash}")
        trace(logger, "debug_traceTransaction params %s", params)
        try:
            result = self.w3.manager.request_blocking("debug_traceTransaction", params)
        except Exception as e:
            raise RPCConnectionError(
                f"Failed to get transaction trace for tx hash {tx_hash} from url {self.url}: {e}",
                rpc_url=self.url,
                tx_hash=tx_hash,
            ) from e

        node_trace = NodeTrace.from_response(tx_hash, _plain(result))
        logger.debug(f"Got {node_trace.root.count()} trace frames for tx hash {tx_hash} from {self.url}")
        if logger.isEnabledFor(TRACE):
            for depth, record in node_trace.root.walk():
                trace(
                    logger,
                    "frame depth %d %s %s -> %s input %s gas used %s%s",
                    depth, record.kind, record.from_address, record.to_address,
                    record.input[:10], record.gas_used,
                    f" error {record.error}" if record.error else "",
                )
        return node_trace

    def get_transaction_details(self, tx_hash: str) -> TransactionDetails:
        """
        Fetch transaction, receipt and block timestamp.

        Raises:
            InvalidTransactionHashError: If the hash is malformed
            RPCConnectionError: If any of the requests fail
        """
        validate_transaction_hash(tx_hash)
        try:
            tx = self.w3.eth.get_transaction(tx_hash)
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            block = self.w3.eth.get_block(tx["blockNumber"])
        except Exception as e:
            raise RPCConnectionError(
                f"Failed to get transaction details for tx hash {tx_hash} from url {self.url}: {e}",
                rpc_url=self.url,
                tx_hash=tx_hash,
            ) from e
        if receipt is None:
            raise TraceStructureError(
                f"Transaction {tx_hash} found but its receipt is not available",
                tx_hash=tx_hash,
                source="node",
            )

        timestamp = block.get("timestamp") if block else None
        details = TransactionDetails(
            hash=tx_hash,
            nonce=parse_quantity(tx.get("nonce"), "nonce", tx_hash),
            index=parse_quantity(tx.get("transactionIndex"), "transactionIndex", tx_hash),
            value=parse_quantity(tx.get("value"), "value", tx_hash, default=0),
            gas_price=parse_quantity(tx.get("gasPrice"), "gasPrice", tx_hash),
            timestamp=datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp is not None else None,
            status=receipt.get("status") == 1,
            from_address=tx.get("from"),
            to_address=tx.get("to"),
            input=to_hex_string(tx.get("input")),
            gas_limit=parse_quantity(tx.get("gas"), "gas", tx_hash),
            gas_used=parse_quantity(receipt.get("gasUsed"), "gasUsed", tx_hash),
            block_number=parse_quantity(tx.get("blockNumber"), "blockNumber", tx_hash),
        )
        logger.debug(f"Got details for tx hash {tx_hash}: block {details.block_number}, status {details.status}")
        return details

    def get_transaction_error(self, details: TransactionDetails) -> Optional[str]:
        """
        Recover the reason a failed transaction reverted.

        Replays the transaction with ``eth_call`` against the state of the
        block before it was mined. Returns None for successful transactions
        or when no reason can be recovered.
        """
        validate_transaction_hash(details.hash)
        if details.status:
            return None
        if details.gas_used is not None and details.gas_used == details.gas_limit:
            return OUT_OF_GAS_ERROR
        if details.block_number is None:
            return None

        params: Dict[str, Any] = {
            "from": details.from_address,
            "value": details.value,
            "data": details.input or "0x",
        }
        if details.to_address:
            params["to"] = details.to_address
        if details.gas_limit is not None:
            params["gas"] = details.gas_limit
        if details.gas_price is not None:
            params["gasPrice"] = details.gas_price

        try:
            self.w3.eth.call(params, details.block_number - 1)
        except ContractLogicError as e:
            reason = _revert_data_reason(getattr(e, "data", None))
            if reason is not None:
                return reason
            return getattr(e, "message", None) or str(e)
        except Exception as e:
            logger.warning(f"Could not replay failed transaction {details.hash}: {e}")
            return None
        # The replay succeeded so the failure depended on state within the block
        return None

    def fetch_trace(self, tx_hash: str) -> NodeTrace:
        """Trace plus details, with the revert reason filled in for failed transactions."""
        node_trace = self.get_transaction_trace(tx_hash)
        details = self.get_transaction_details(tx_hash)
        if not details.status:
            details = dataclasses.replace(
                details,
                error=self.get_transaction_error(details) or node_trace.root.error,
            )
        return dataclasses.replace(node_trace, details=details)


def _revert_data_reason(data: Any) -> Optional[str]:
    if isinstance(data, str):
        if data.startswith("Reverted 0x"):
            data = data[len("Reverted "):]
        return try_decode_revert_reason(data)
    return None


def _plain(value: Any) -> Any:
    """Convert web3 AttributeDicts into plain dicts and lists."""
    if isinstance(value, dict) or hasattr(value, "items"):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
