"""
Clients that fetch transaction call structures.

- NodeClient: Ethereum node with geth's callTracer, over web3
- IndexerClient: JSON:API transaction indexer, over requests
"""

from .node_client import NodeClient, DEFAULT_NODE_URL
from .indexer_client import IndexerClient, INDEXER_BASE_URLS, indexer_base_url

__all__ = [
    'NodeClient',
    'DEFAULT_NODE_URL',
    'IndexerClient',
    'INDEXER_BASE_URLS',
    'indexer_base_url',
]
