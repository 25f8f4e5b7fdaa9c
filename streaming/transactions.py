# streaming/transactions.py
import asyncio
from typing import Any, Dict, List, Optional

from streaming.cancellation import CancelToken
from streaming.models import Transaction
from utils.arweave import MAX_PAGE_SIZE, LedgerError
from utils.logging import logger

class TransactionFetcher:
    """Collect every transaction of a block through GraphQL cursor pagination.

    When a page request fails, one reduced first-page request is made and
    pagination stops for that height, so the result may be truncated.
    """

    def __init__(self, client, page_size: int = MAX_PAGE_SIZE, page_delay: float = 0.1):
        self.client = client
        self.page_size = page_size
        self.page_delay = page_delay

    async def _pause(self):
        if self.page_delay > 0:
            await asyncio.sleep(self.page_delay)

    async def _fetch_first_page(self, height: int) -> List[Dict[str, Any]]:
        try:
            page = await self.client.query_transactions(height, first=self.page_size, paginated=False)
        except LedgerError as e:
            logger.error(f"GraphQL fallback failed for block {height}: {e}")
            return []
        if not page:
            return []
        return page.get("edges") or []

    async def fetch_edges(self, height: int, token: Optional[CancelToken] = None) -> List[Dict[str, Any]]:
        edges: List[Dict[str, Any]] = []
        cursor = None
        has_next_page = True

        while has_next_page:
            try:
                page = await self.client.query_transactions(height, first=self.page_size, after=cursor)
            except LedgerError as e:
                logger.error(f"GraphQL page request failed for block {height}: {e}")
                edges.extend(await self._fetch_first_page(height))
                break

            if not page:
                break
            edges.extend(page.get("edges") or [])

            page_info = page.get("pageInfo") or {}
            has_next_page = bool(page_info.get("hasNextPage"))
            cursor = page_info.get("endCursor")
            if has_next_page and not cursor:
                logger.warning(f"Block {height} reported another page without a cursor; stopping at {len(edges)} edges")
                break

            if has_next_page:
                if token is not None and token.cancelled:
                    break
                await self._pause()

        return edges

    async def fetch_all(self, height: int, token: Optional[CancelToken] = None) -> List[Transaction]:
        """
        Fetch the block's transactions in upstream order.

        Never raises for upstream failures; a failed page degrades to the
        single fallback page.
        """
        transactions = []
        for edge in await self.fetch_edges(height, token):
            try:
                transactions.append(Transaction.from_edge(edge))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed transaction edge in block {height}: {e}")
        return transactions
