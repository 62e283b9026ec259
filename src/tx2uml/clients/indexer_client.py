"""
Indexer client.

Fetches transaction details and the paged list of contract messages from
a JSON:API style transaction indexer (the Alethio API layout).
"""

from typing import Any, Dict, Mapping, Optional

import requests

from ..core.builder import IndexerPage, IndexerTrace, collect_pages, parse_transaction_details
from ..utils.exceptions import ConfigError, IndexerRequestError
from ..utils.helpers import validate_transaction_hash
from ..utils.logging import get_logger, trace

logger = get_logger("clients.indexer")

INDEXER_BASE_URLS: Dict[str, str] = {
    "mainnet": "https://api.aleth.io/v1",
    "ropsten": "https://api.ropsten.aleth.io/v1",
    "rinkeby": "https://api.rinkeby.aleth.io/v1",
    "kovan": "https://api.kovan.aleth.io/v1",
}
DEFAULT_PAGE_LIMIT = 100


def indexer_base_url(network: str = "mainnet", base_url: Optional[str] = None) -> str:
    """Explicit base URL if given, otherwise the known URL for the network."""
    if base_url:
        return base_url.rstrip("/")
    try:
        return INDEXER_BASE_URLS[network]
    except KeyError:
        raise ConfigError(
            f"No indexer URL known for network '{network}'. "
            f"Use one of {', '.join(INDEXER_BASE_URLS)} or set the indexer URL",
            source="network",
        ) from None


class IndexerClient:
    """Reads transactions and contract messages from the indexer's REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        network: str = "mainnet",
        page_limit: int = DEFAULT_PAGE_LIMIT,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = indexer_base_url(network, base_url)
        self.page_limit = page_limit
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = api_key

    def _get(self, url: str, tx_hash: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise IndexerRequestError(
                f"Request to indexer failed for transaction {tx_hash}: {e}",
                tx_hash=tx_hash,
                url=url,
            ) from e
        except ValueError as e:
            raise IndexerRequestError(
                f"Indexer returned invalid JSON for transaction {tx_hash}: {e}",
                tx_hash=tx_hash,
                url=url,
            ) from e

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        """Raw transaction resource."""
        validate_transaction_hash(tx_hash)
        return self._get(f"{self.base_url}/transactions/{tx_hash}", tx_hash)

    def get_transaction_details(self, tx_hash: str):
        """Transaction details and the transaction level message."""
        details, root = parse_transaction_details(self.get_transaction(tx_hash), tx_hash)
        logger.debug(f"Got tx details and first message for {tx_hash} from {self.base_url}")
        return details, root

    def get_contract_message_page(self, tx_hash: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        """Raw page of contract messages, the first one when no cursor is given."""
        validate_transaction_hash(tx_hash)
        params = {"page[limit]": self.page_limit}
        if cursor:
            params["page[next]"] = cursor
        return self._get(f"{self.base_url}/transactions/{tx_hash}/contractMessages", tx_hash, params)

    def get_contract_messages(self, tx_hash: str):
        """
        Every page of contract messages, following cursors.

        Raises:
            PaginationError: If the indexer signals more pages without a cursor
            IndexerRequestError: If a request fails
        """
        validate_transaction_hash(tx_hash)
        count = 0

        def fetch_page(cursor: Optional[str]) -> IndexerPage:
            nonlocal count
            page = IndexerPage.from_response(self.get_contract_message_page(tx_hash, cursor), tx_hash)
            count += len(page.records)
            logger.debug(f"Got {len(page.records)} messages of {count} for cursor {cursor} from indexer")
            for record in page.records:
                trace(
                    logger,
                    "message %d depth %d %s %s -> %s selector %s%s",
                    record.index, record.call_depth, record.msg_type, record.from_address,
                    record.to_address, record.func_selector, " failed" if record.failed else "",
                )
            trace(logger, "page has next %s, next link %s", page.has_next, page.next_link)
            return page

        pages = collect_pages(fetch_page(None), fetch_page, tx_hash)
        logger.debug(f"Got {count} contract messages in {len(pages)} pages for {tx_hash}")
        return pages

    def fetch_trace(self, tx_hash: str) -> IndexerTrace:
        """Transaction level message plus all contract messages."""
        details, root = self.get_transaction_details(tx_hash)
        pages = self.get_contract_messages(tx_hash)
        return IndexerTrace(tx_hash=tx_hash, root=root, pages=tuple(pages), details=details)
