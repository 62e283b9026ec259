"""
PlantUML sequence diagram generation.

Walks a message sequence in call order and emits the text of a PlantUML
sequence diagram: participant declarations, one arrow per message,
activation bars closed by return or failure arrows, and notes carrying
decoded revert reasons. The output depends only on the ordered input, so
the same sequence always gives byte-identical text.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from .messages import Contract, Message, MessageSequence, MessageType, TransactionDetails
from .revert import try_decode_revert_reason
from ..utils.exceptions import TraceStructureError
from ..utils.helpers import format_ether, format_units, short_address

ARROWS: Dict[MessageType, str] = {
    MessageType.CALL: "->",
    MessageType.DELEGATECALL: "-[#slategray]>",
    MessageType.STATICCALL: "-[#darkgreen]>",
    MessageType.VALUE: "-[bold,#blue]>",
    MessageType.CREATE: "->o",
    MessageType.SELFDESTRUCT: "-\\",
}
RETURN_ARROW = "-->"
FAILED_RETURN_ARROW = "-[#red]->x"
FAILED_MESSAGE_ARROW = "-[#red]>x"

# Types whose callee always gets an activation bar
ACTIVATING_TYPES = frozenset({
    MessageType.CALL,
    MessageType.DELEGATECALL,
    MessageType.STATICCALL,
    MessageType.CREATE,
})


@dataclass(frozen=True)
class DiagramOptions:
    """Display switches for the generated diagram."""
    show_gas: bool = False
    show_title: bool = True


def participant_id(address: str) -> str:
    """Short PlantUML alias for an address: first and last 4 hex digits."""
    digits = address[2:] if address.lower().startswith("0x") else address
    if len(digits) <= 8:
        return digits
    return digits[:4] + digits[-4:]


def participant_aliases(addresses: Iterable[str]) -> Dict[str, str]:
    """Map lowercased addresses to unique aliases, in the given order."""
    aliases: Dict[str, str] = {}
    used = set()
    for address in addresses:
        base = participant_id(address)
        alias = base
        suffix = 1
        while alias in used:
            alias = f"{base}_{suffix}"
            suffix += 1
        used.add(alias)
        aliases[address.lower()] = alias
    return aliases


def annotation_fields(message: Message) -> Dict[str, int]:
    """Fields of a message eligible for display next to its arrow."""
    fields = {}
    if message.value:
        fields["value"] = message.value
    if message.gas_used is not None:
        fields["gas_used"] = message.gas_used
    return fields


def _escape(text: str) -> str:
    return " ".join(str(text).split())


class DiagramSynthesizer:
    """
    Emits PlantUML for one message sequence.

    Keeps an explicit stack of open activations. Before a message is drawn
    every activation at its depth or deeper is closed, so the top of the
    stack is always the message's parent.
    """

    def __init__(
        self,
        messages: MessageSequence,
        contracts: Optional[Mapping[str, Contract]] = None,
        options: Optional[DiagramOptions] = None,
    ):
        self.messages = messages
        self.contracts = {a.lower(): c for a, c in (contracts or {}).items()}
        self.options = options or DiagramOptions()
        self.participants = messages.participants()
        self.aliases = participant_aliases(self.participants)

    def generate(self) -> str:
        lines = ["@startuml"]
        if self.options.show_title and self.messages.details is not None:
            lines.extend(self._header(self.messages.details))
        lines.extend(self._participants())
        lines.append("")
        lines.extend(self._messages())
        lines.append("@enduml")
        return "\n".join(lines) + "\n"

    def _alias(self, address: Optional[str]) -> str:
        return self.aliases[address.lower()]

    def _header(self, details: TransactionDetails) -> List[str]:
        lines = [f"title {details.hash}"]
        caption = []
        if details.nonce is not None:
            caption.append(f"nonce {details.nonce}")
        if details.index is not None:
            caption.append(f"index {details.index}")
        if details.gas_price is not None:
            caption.append(f"gas price {format_units(details.gas_price, 'gwei')} Gwei")
        if details.timestamp is not None:
            caption.append(details.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z").strip())
        if details.status:
            caption.append("status success")
        else:
            caption.append(f"status failed: {_escape(details.error or 'reverted')}")
        lines.append("caption " + ", ".join(caption))
        return lines

    def _participants(self) -> List[str]:
        lines = []
        for address in self.participants:
            line = f'participant "{short_address(address)}" as {self._alias(address)}'
            contract = self.contracts.get(address.lower())
            if contract is not None and contract.name:
                line += f" <<{_escape(contract.name)}>>"
            lines.append(line)
        return lines

    def _messages(self) -> List[str]:
        lines: List[str] = []
        open_activations: List[Message] = []

        for message in self.messages:
            while open_activations and open_activations[-1].call_depth >= message.call_depth:
                lines.extend(self._close(open_activations.pop()))

            if message.parent_id is not None and (
                not open_activations or open_activations[-1].sequence_id != message.parent_id
            ):
                raise TraceStructureError(
                    f"Message {message.sequence_id} would be drawn outside the activation "
                    f"of its caller {message.parent_id}",
                    tx_hash=self.messages.details.hash if self.messages.details else None,
                    message_id=message.sequence_id,
                )

            source = self._alias(message.from_address)
            target = self._alias(message.to_address or message.from_address)
            label = self._label(message)

            if self._activates(message):
                lines.append(f"{source} {ARROWS[message.type]} {target}: {label}")
                lines.append(f"activate {target}")
                open_activations.append(message)
            elif message.status:
                lines.append(f"{source} {ARROWS[message.type]} {target}: {label}")
            else:
                error = _escape(message.error or "failed")
                lines.append(f"{source} {FAILED_MESSAGE_ARROW} {target}: {label}\\n{error}")
                lines.extend(self._reason_note(message, target))

        while open_activations:
            lines.extend(self._close(open_activations.pop()))
        return lines

    @staticmethod
    def _activates(message: Message) -> bool:
        return message.type in ACTIVATING_TYPES or bool(message.children_ids)

    def _close(self, message: Message) -> List[str]:
        source = self._alias(message.from_address)
        target = self._alias(message.to_address or message.from_address)
        if message.status:
            line = f"{target} {RETURN_ARROW} {source}"
            if self.options.show_gas and message.gas_used is not None:
                line += f": {message.gas_used} gas"
            lines = [line]
        else:
            error = _escape(message.error or "failed")
            lines = [f"{target} {FAILED_RETURN_ARROW} {source}: {error}"]
            lines.extend(self._reason_note(message, target))
        lines.append(f"deactivate {target}")
        return lines

    @staticmethod
    def _reason_note(message: Message, target: str) -> List[str]:
        reason = try_decode_revert_reason(message.outputs)
        if reason is None:
            return []
        return [f"note right of {target} #FFAAAA: {_escape(reason)}"]

    def _label(self, message: Message) -> str:
        fields = annotation_fields(message)
        if message.type is MessageType.VALUE:
            lines = [f"{format_ether(message.value)} ETH"]
        else:
            lines = [self._function_label(message)]
            if message.type is MessageType.DELEGATECALL:
                executing_as = self._alias(message.delegated_from)
                # Code reported at its own address still runs as the delegating contract
                if executing_as != self._alias(message.from_address):
                    lines.append(f"as {executing_as}")
            if "value" in fields:
                lines.append(f"{format_ether(fields['value'])} ETH")
        if self.options.show_gas and "gas_used" in fields:
            lines.append(f"{fields['gas_used']} gas")
        return "\\n".join(lines)

    def _function_label(self, message: Message) -> str:
        if message.type is MessageType.CREATE:
            return "create"
        if message.type is MessageType.SELFDESTRUCT:
            return "selfdestruct"
        contract = self.contracts.get((message.to_address or "").lower())
        name = contract.function_name(message.func_selector) if contract else None
        if name:
            return f"{name}()"
        return message.func_selector or "fallback"


def generate_plantuml(
    messages: MessageSequence,
    contracts: Optional[Mapping[str, Contract]] = None,
    options: Optional[DiagramOptions] = None,
) -> str:
    """
    Generate PlantUML sequence diagram text for a message sequence.

    Args:
        messages: Unified message sequence from either trace source
        contracts: Optional known contracts by address, for names and ABIs
        options: Display options

    Returns:
        PlantUML text ending with a newline
    """
    return DiagramSynthesizer(messages, contracts, options).generate()
