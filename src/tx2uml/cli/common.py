"""
Common utilities for CLI commands.

Shared argument handling, configuration and trace loading for the
``diagram`` and ``messages`` commands.
"""

import json
import logging
import sys
from typing import Any, Dict, List, Optional

from tx2uml.clients import IndexerClient, NodeClient
from tx2uml.config import Tx2umlConfig, load_config, load_contracts
from tx2uml.core.builder import IndexerTrace, NodeTrace, TraceSource, build_messages
from tx2uml.core.messages import Contract, MessageSequence, TransactionDetails
from tx2uml.output import default_output_file
from tx2uml.utils.exceptions import ConfigError, format_error
from tx2uml.utils.helpers import validate_transaction_hash
from tx2uml.utils.logging import logger, setup_logging


def add_common_arguments(parser):
    """Arguments shared by every command that loads a transaction."""
    parser.add_argument('tx_hash', help='Transaction hash')
    parser.add_argument('--source', '-s', choices=['node', 'indexer'], help='Where to get the call structure from (default: node)')
    parser.add_argument('--node-url', '-u', help='Ethereum node RPC URL with debug_traceTransaction support (default: http://localhost:8545)')
    parser.add_argument('--network', '-n', help='Network for the default indexer URL (default: mainnet)')
    parser.add_argument('--indexer-url', help='Indexer API base URL')
    parser.add_argument('--api-key', '-k', dest='indexer_api_key', help='Indexer API key')
    parser.add_argument('--contracts', '-c', help='JSON file mapping contract addresses to names and ABIs')
    parser.add_argument('--trace-file', help='Read the callTracer result from a JSON file instead of the node')
    parser.add_argument('--details-file', help='Read transaction details from a JSON file instead of fetching them')
    parser.add_argument('--messages-file', help='Read indexer contract message pages from a JSON file instead of fetching them')
    parser.add_argument('--config', help='YAML config file (default: tx2uml.config.yaml)')
    parser.add_argument('--json', action='store_true', help='Output errors as JSON')
    parser.add_argument('--verbose', action='store_true', help='Trace level logging')
    parser.add_argument('--debug', action='store_true', help='Debug logging')
    parser.add_argument('--quiet', '-q', action='store_true', help='No console log output')
    parser.add_argument('--log-file', help='Also write every log record, trace level included, to this file')


def configure_logging(args: Any) -> None:
    setup_logging(
        level=logging.INFO,
        quiet=getattr(args, 'quiet', False),
        debug=getattr(args, 'debug', False),
        verbose=getattr(args, 'verbose', False),
        log_file=getattr(args, 'log_file', None),
    )


def config_from_args(args: Any) -> Tx2umlConfig:
    """Effective configuration with command line flags applied last."""
    overrides = {
        'source': getattr(args, 'source', None),
        'node_url': getattr(args, 'node_url', None),
        'network': getattr(args, 'network', None),
        'indexer_url': getattr(args, 'indexer_url', None),
        'indexer_api_key': getattr(args, 'indexer_api_key', None),
        'output_format': getattr(args, 'output_format', None),
        'show_gas': True if getattr(args, 'gas', False) else None,
    }
    return load_config(getattr(args, 'config', None), overrides=overrides)


def read_json_file(path: str) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"File not found: {path}", source=path) from None
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read {path}: {e}", source=path) from e


def _is_offline(args: Any) -> bool:
    return any(getattr(args, name, None) for name in ('trace_file', 'details_file', 'messages_file'))


def _node_trace_from_files(tx_hash: str, args: Any) -> NodeTrace:
    if not args.trace_file:
        raise ConfigError("--trace-file is required to read a node trace from files", source="trace_file")
    result = read_json_file(args.trace_file)
    # Accept a whole JSON-RPC response as well as its result
    if isinstance(result, dict) and 'result' in result and 'type' not in result:
        result = result['result']
    details = None
    if args.details_file:
        details = TransactionDetails.from_dict(read_json_file(args.details_file), tx_hash)
    return NodeTrace.from_response(tx_hash, result, details, source=args.trace_file)


def _indexer_trace_from_files(tx_hash: str, args: Any) -> IndexerTrace:
    if not args.details_file:
        raise ConfigError("--details-file is required to read an indexer trace from files", source="details_file")
    pages: List[Dict[str, Any]] = []
    if args.messages_file:
        data = read_json_file(args.messages_file)
        pages = data if isinstance(data, list) else [data]
    return IndexerTrace.from_responses(tx_hash, read_json_file(args.details_file), pages)


def load_trace_source(args: Any, config: Tx2umlConfig) -> TraceSource:
    """
    Get the trace for ``args.tx_hash`` from files or from the configured source.

    Raises:
        InvalidTransactionHashError: Before anything else if the hash is malformed
    """
    tx_hash = validate_transaction_hash(args.tx_hash)

    if _is_offline(args):
        logger.debug(f"Reading {config.source} trace for {tx_hash} from files")
        if config.source == 'indexer':
            return _indexer_trace_from_files(tx_hash, args)
        return _node_trace_from_files(tx_hash, args)

    if config.source == 'indexer':
        client = IndexerClient(
            base_url=config.indexer_url,
            api_key=config.indexer_api_key,
            network=config.network,
            page_limit=config.page_limit,
            timeout=config.timeout,
        )
        logger.info(f"Loading transaction {tx_hash} from {client.base_url}")
        return client.fetch_trace(tx_hash)

    client = NodeClient(config.node_url, timeout=config.timeout)
    logger.info(f"Loading transaction {tx_hash} from {config.node_url}")
    return client.fetch_trace(tx_hash)


def load_messages(args: Any, config: Tx2umlConfig) -> MessageSequence:
    messages = build_messages(load_trace_source(args, config))
    logger.info(f"Built {len(messages)} messages between {len(messages.participants())} participants")
    return messages


def load_contract_mapping(args: Any) -> Dict[str, Contract]:
    contracts_file = getattr(args, 'contracts', None)
    if not contracts_file:
        return {}
    contracts = load_contracts(contracts_file)
    logger.debug(f"Loaded {len(contracts)} contracts from {contracts_file}")
    return contracts


def handle_command_error(
    e: Exception,
    json_mode: bool = False,
    exit_code: int = 1
) -> int:
    """
    Handle command errors uniformly.

    Args:
        e: The exception that occurred
        json_mode: If True, output as JSON
        exit_code: Exit code to return

    Returns:
        Exit code
    """
    error_output = format_error(e, json_mode)
    if json_mode:
        print(error_output)
    else:
        print(error_output, file=sys.stderr)
    return exit_code


def output_file_for(args: Any, config: Tx2umlConfig) -> Optional[str]:
    output_file = getattr(args, 'output_file', None)
    if output_file:
        return output_file
    return default_output_file(args.tx_hash, config.output_format)
