"""
JSON serialization for message sequences

Turns a message sequence and its transaction details into plain JSON types
for the ``messages`` command and for other tools to consume.
"""
import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from hexbytes import HexBytes

from .messages import Message, MessageSequence, TransactionDetails


class MessageSerializer:
    """Serializes message sequences to JSON compatible structures."""

    def _convert_to_serializable(self, obj: Any) -> Any:
        """Convert non-serializable objects to JSON-serializable format."""
        if isinstance(obj, (HexBytes, bytes, bytearray)):
            return '0x' + bytes(obj).hex()
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, dict):
            return {k: self._convert_to_serializable(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_to_serializable(item) for item in obj]
        else:
            return obj

    def serialize_details(self, details: Optional[TransactionDetails]) -> Optional[Dict[str, Any]]:
        if details is None:
            return None
        data = asdict(details)
        return {
            "hash": data["hash"],
            "nonce": data["nonce"],
            "index": data["index"],
            "from": data["from_address"],
            "to": data["to_address"],
            "value": data["value"],
            "gasPrice": data["gas_price"],
            "gasLimit": data["gas_limit"],
            "gasUsed": data["gas_used"],
            "blockNumber": data["block_number"],
            "timestamp": self._convert_to_serializable(data["timestamp"]),
            "status": data["status"],
            "error": data["error"],
        }

    def serialize_message(self, message: Message) -> Dict[str, Any]:
        return self._convert_to_serializable({
            "id": message.sequence_id,
            "type": message.type,
            "from": message.from_address,
            "delegatedFrom": message.delegated_from,
            "to": message.to_address,
            "value": message.value,
            "funcSelector": message.func_selector,
            "inputs": message.inputs,
            "outputs": message.outputs,
            "gasLimit": message.gas_limit,
            "gasUsed": message.gas_used,
            "callDepth": message.call_depth,
            "parentId": message.parent_id,
            "childrenIds": message.children_ids,
            "status": message.status,
            "error": message.error,
        })

    def to_dict(self, messages: MessageSequence) -> Dict[str, Any]:
        """Serialize a full sequence: transaction details followed by messages."""
        return {
            "transaction": self.serialize_details(messages.details),
            "messages": [self.serialize_message(m) for m in messages],
        }

    def to_json(self, messages: MessageSequence, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(messages), indent=indent)
