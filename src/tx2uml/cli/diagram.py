"""
Diagram command implementation.

Loads a transaction's call structure and writes it as a PlantUML
sequence diagram, optionally rendered to PNG or SVG.
"""

import json

from tx2uml.core.diagram import DiagramOptions, generate_plantuml
from tx2uml.output import write_diagram
from tx2uml.utils.exceptions import Tx2umlError
from tx2uml.utils.helpers import validate_transaction_hash
from tx2uml.utils.logging import logger
from tx2uml.cli.common import (
    config_from_args,
    configure_logging,
    handle_command_error,
    load_contract_mapping,
    load_messages,
    output_file_for,
)


def diagram_command(args) -> int:
    """
    Execute the diagram command.

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
        if getattr(args, 'save_config', False):
            config.save_to_yaml(args.config or 'tx2uml.config.yaml')
            logger.info("Configuration saved")

        messages = load_messages(args, config)
        contracts = load_contract_mapping(args)
        options = DiagramOptions(show_gas=config.show_gas, show_title=not getattr(args, 'no_title', False))
        plantuml = generate_plantuml(messages, contracts, options)

        output_file = output_file_for(args, config)
        written = write_diagram(plantuml, output_file, config.output_format, config.plantuml_path)
    except Tx2umlError as e:
        return handle_command_error(e, json_mode)

    if json_mode and written:
        print(json.dumps({
            "tx_hash": args.tx_hash,
            "file": written,
            "format": config.output_format,
            "messages": len(messages),
            "participants": len(messages.participants()),
        }, indent=2))
    return 0
