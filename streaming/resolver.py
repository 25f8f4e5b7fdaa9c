# streaming/resolver.py
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from streaming.cancellation import CancelToken
from streaming.exceptions import ResolutionError, StreamCancelled
from utils.arweave import LedgerError
from utils.logging import logger

@dataclass(frozen=True)
class StartHeight:
    height: int
    max_height: int

    @property
    def beyond_tip(self) -> bool:
        return self.height > self.max_height

class HeightResolver:
    """Find the first block mined at or after an instant by binary search over heights."""

    def __init__(self, client, probe_delay: float = 0.2):
        self.client = client
        self.probe_delay = probe_delay

    async def _pause(self):
        if self.probe_delay > 0:
            await asyncio.sleep(self.probe_delay)

    async def resolve(self, target_timestamp: int, current_max_height: int, token: Optional[CancelToken] = None) -> int:
        """
        Binary search [0, current_max_height] for the lowest height whose
        block timestamp is >= target_timestamp.

        A probe that fails counts as "after the target": only the upper bound
        moves, so the search settles on a height that exists.

        Returns:
            The height found, or current_max_height + 1 when no block is late
            enough
        """
        low = 0
        high = current_max_height
        start_height = None

        while low <= high:
            if token is not None and token.cancelled:
                raise StreamCancelled(f"Height search cancelled ({token.reason})")

            mid = low + (high - low) // 2
            try:
                block = await self.client.get_block_by_height(mid)
            except LedgerError as e:
                logger.debug(f"Probe at height {mid} failed, searching lower: {e}")
                high = mid - 1
            else:
                if block["timestamp"] >= target_timestamp:
                    # Found a potential start, try to find an even earlier one
                    start_height = mid
                    high = mid - 1
                else:
                    low = mid + 1
            await self._pause()

        if start_height is None:
            logger.info(f"No blocks found at or after timestamp {target_timestamp}; the chain has not reached it yet")
            return current_max_height + 1
        return start_height

    async def find_start_height(self, day_start: datetime, token: Optional[CancelToken] = None) -> StartHeight:
        try:
            max_height = await self.client.get_current_height()
        except LedgerError as e:
            raise ResolutionError(f"Could not read the current block height: {e}") from e

        height = await self.resolve(int(day_start.timestamp()), max_height, token)
        logger.info(f"Found start height for {day_start.date().isoformat()}: {height} (tip {max_height})")
        return StartHeight(height=height, max_height=max_height)
