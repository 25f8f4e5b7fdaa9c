# utils/arweave.py
import aiohttp
import asyncio
import json
from typing import Any, Dict, Optional

from utils.logging import logger

# Arweave gateway base URL
ARWEAVE_GATEWAY = "https://arweave.net"
# Maximum number of edges the gateway returns per GraphQL page
MAX_PAGE_SIZE = 100

TRANSACTIONS_QUERY = """
query($min: Int!, $max: Int!, $first: Int!, $after: String) {
    transactions(block: {min: $min, max: $max}, sort: HEIGHT_ASC, first: $first, after: $after) {
        pageInfo { hasNextPage endCursor }
        edges { node { id data { size } tags { name value } } }
    }
}
"""

FIRST_PAGE_QUERY = """
query($min: Int!, $max: Int!, $first: Int!) {
    transactions(block: {min: $min, max: $max}, sort: HEIGHT_ASC, first: $first) {
        edges { node { id data { size } tags { name value } } }
    }
}
"""

class LedgerError(Exception):
    """Raised when the Arweave gateway cannot satisfy a request."""

class ArweaveClient:
    """Thin async client for the parts of the Arweave gateway the streamer uses."""

    def __init__(self, gateway_url: str = ARWEAVE_GATEWAY, session: Optional[aiohttp.ClientSession] = None):
        self.gateway_url = gateway_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"Content-Type": "application/json"})
            self._owns_session = True
        return self._session

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.gateway_url}{path}"
        session = await self._get_session()
        try:
            async with session.request(method, url, json=payload) as response:
                if response.status != 200:
                    error_content = await response.text()
                    raise LedgerError(f"{method} {path} returned {response.status}: {error_content[:200]}")
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            raise LedgerError(f"{method} {path} failed: {str(e) or type(e).__name__}") from e

    async def get_info(self) -> Dict[str, Any]:
        """Get the gateway's network info document."""
        info = await self._request("GET", "/info")
        if not isinstance(info, dict):
            raise LedgerError(f"Unexpected /info response: {type(info).__name__}")
        return info

    async def get_current_height(self) -> int:
        info = await self.get_info()
        try:
            return int(info["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerError(f"/info response has no usable height: {info}") from e

    async def get_block_by_height(self, height: int) -> Dict[str, Any]:
        """
        Get block metadata for a height.

        Args:
            height: Block height to look up

        Returns:
            The gateway's block document with ``timestamp`` as an int (seconds)

        Raises:
            LedgerError: If the height is unknown or the document is unusable
        """
        block = await self._request("GET", f"/block/height/{height}")
        if not isinstance(block, dict):
            raise LedgerError(f"Unexpected block response for height {height}: {type(block).__name__}")
        try:
            block["timestamp"] = int(block["timestamp"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerError(f"Block {height} has no usable timestamp") from e
        return block

    async def query_transactions(
        self,
        height: int,
        first: int = MAX_PAGE_SIZE,
        after: Optional[str] = None,
        paginated: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """
        Query one page of transactions mined in a single block.

        Args:
            height: Block height; the query's block range is [height, height]
            first: Page size
            after: Cursor from the previous page's ``endCursor``
            paginated: False sends the reduced first-page query (no cursor,
                no ``pageInfo``)

        Returns:
            The ``transactions`` object (``pageInfo`` and ``edges``), or None
            if the gateway returned none
        """
        variables: Dict[str, Any] = {"min": height, "max": height, "first": first}
        if paginated:
            query = TRANSACTIONS_QUERY
            variables["after"] = after
        else:
            query = FIRST_PAGE_QUERY

        result = await self._request("POST", "/graphql", {"query": query, "variables": variables})
        if not isinstance(result, dict):
            raise LedgerError(f"Unexpected GraphQL response: {type(result).__name__}")
        if result.get("errors"):
            raise LedgerError(f"GraphQL errors: {json.dumps(result['errors'])[:500]}")

        data = result.get("data") or {}
        page = data.get("transactions")
        if page is None:
            logger.debug(f"GraphQL response for block {height} had no transactions object")
        return page
