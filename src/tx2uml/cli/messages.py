"""
Messages command implementation.

Prints the flattened messages of a transaction, as an indented call tree
or as JSON.
"""

from tx2uml.core.messages import Contract, Message, MessageSequence, MessageType
from tx2uml.core.revert import try_decode_revert_reason
from tx2uml.core.serializer import MessageSerializer
from tx2uml.utils.colors import address, bullet_point, error, info, number, success, warning
from tx2uml.utils.exceptions import Tx2umlError
from tx2uml.utils.helpers import format_ether, format_units, validate_transaction_hash
from tx2uml.cli.common import (
    config_from_args,
    configure_logging,
    handle_command_error,
    load_contract_mapping,
    load_messages,
)


def messages_command(args) -> int:
    """
    Execute the messages command.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    json_mode = getattr(args, 'json', False)
    configure_logging(args)

    try:
        validate_transaction_hash(args.tx_hash)
        config = config_from_args(args)
        messages = load_messages(args, config)
        contracts = load_contract_mapping(args)
    except Tx2umlError as e:
        return handle_command_error(e, json_mode)

    if json_mode:
        print(MessageSerializer().to_json(messages))
    else:
        print_messages(messages, contracts, show_gas=config.show_gas)
    return 0


def print_messages(messages: MessageSequence, contracts=None, show_gas: bool = False) -> None:
    """Print transaction details, participants and the indented call tree."""
    contracts = contracts or {}
    details = messages.details
    if details is not None:
        print(f"Transaction {info(details.hash)}")
        if details.block_number is not None:
            print(f"  Block: {number(details.block_number)}")
        if details.gas_price is not None:
            print(f"  Gas price: {number(format_units(details.gas_price, 'gwei'))} Gwei")
        if details.timestamp is not None:
            print(f"  Time: {details.timestamp.isoformat()}")
        if details.status:
            print(f"  Status: {success('SUCCESS')}")
        else:
            print(f"  Status: {error('REVERTED')}" + (f" {details.error}" if details.error else ""))

    print(f"\nParticipants ({len(messages.participants())}):")
    for participant in messages.participants():
        contract = contracts.get(participant.lower())
        name = f" {contract.name}" if contract is not None and contract.name else ""
        print(bullet_point(f"{address(participant)}{name}"))

    print(f"\nMessages ({len(messages)}):")
    for message in messages:
        print(format_message(message, contracts.get((message.to_address or '').lower()), show_gas))


def format_message(message: Message, contract: Contract = None, show_gas: bool = False) -> str:
    indent = "  " * (message.call_depth + 1)
    line = f"{indent}[{message.sequence_id}] {message.type.value} "
    line += f"{address(message.from_address)} -> {address(message.to_address or 'new contract')}"

    if message.type is not MessageType.VALUE:
        name = contract.function_name(message.func_selector) if contract is not None else None
        if name:
            line += f" {name}()"
        elif message.func_selector:
            line += f" {message.func_selector}"
    if message.type is MessageType.DELEGATECALL:
        line += f" as {address(message.delegated_from)}"
    if message.value:
        line += f" {number(format_ether(message.value))} ETH"
    if show_gas and message.gas_used is not None:
        line += f" {number(message.gas_used)} gas"
    if not message.status:
        line += f" {error('FAILED')}"
        if message.error:
            line += f": {warning(message.error)}"
        reason = try_decode_revert_reason(message.outputs)
        if reason is not None:
            line += f" ({reason})"
    return line
