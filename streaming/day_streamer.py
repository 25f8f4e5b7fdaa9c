# streaming/day_streamer.py
import asyncio
from dataclasses import dataclass
from enum import Enum

from streaming.exceptions import ResolutionError, StreamCancelled
from streaming.models import (
    BlockPayload,
    DayRequest,
    DayStreamCompleteMessage,
    ErrorMessage,
    LoadingStatusMessage,
    NewBlockMessage,
)
from streaming.resolver import HeightResolver
from streaming.transactions import TransactionFetcher
from utils.arweave import LedgerError
from utils.logging import logger

class StreamState(str, Enum):
    RESOLVING_START = "resolving_start"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERRORED = "errored"

@dataclass
class DayStreamResult:
    state: StreamState
    blocks_emitted: int = 0
    visual_found: bool = False
    last_height: int = -1

class DayStreamer:
    """
    Stream one UTC day of blocks to a session.

    The stream resolves the day's first height, then walks heights upward
    until a block is stamped after the day's end, the chain tip is passed,
    or the session is cancelled. Payloads go out in strictly increasing
    height order, and nothing is sent once the session's token is set.

    In visual-only mode a block is sent only if one of its transactions is
    an image, and no dayStreamComplete is sent (the visual search owns it).
    """

    def __init__(self, client, resolver: HeightResolver, fetcher: TransactionFetcher, block_delay: float = 0.5):
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.block_delay = block_delay

    async def _pause(self):
        if self.block_delay > 0:
            await asyncio.sleep(self.block_delay)

    async def _past_tip(self, height: int, known_max_height: int) -> bool:
        if height <= known_max_height:
            return False
        try:
            return height > await self.client.get_current_height()
        except LedgerError as e:
            logger.warning(f"Could not refresh the chain tip at height {height}: {e}")
            return True

    async def stream_day(self, session, day: DayRequest, visual_only: bool = False) -> DayStreamResult:
        result = DayStreamResult(state=StreamState.RESOLVING_START)

        await session.emit(LoadingStatusMessage(message=f"Finding start block for {day.label}..."))
        try:
            start = await self.resolver.find_start_height(day.start, session.token)
        except ResolutionError as e:
            logger.error(f"Error resolving start block for {day.label}: {e}")
            await session.emit(ErrorMessage(message="Failed to find start block."))
            result.state = StreamState.ERRORED
            return result
        except StreamCancelled:
            logger.info(f"Stream for {day.label} cancelled while resolving its start block")
            result.state = StreamState.CANCELLED
            return result

        await session.emit(LoadingStatusMessage(message=f"Streaming blocks for {day.label}..."))
        result.state = StreamState.STREAMING
        max_height = start.max_height
        current_height = start.height

        while True:
            if not session.is_active:
                logger.info(f"Stream for {day.label} stopped at height {current_height} (session closed or superseded)")
                result.state = StreamState.CANCELLED
                break

            try:
                block = await self.client.get_block_by_height(current_height)
            except LedgerError as e:
                if await self._past_tip(current_height, max_height):
                    logger.info(f"Reached chain tip at height {current_height}, ending stream for {day.label}")
                    result.state = StreamState.COMPLETED
                    break
                logger.warning(f"Failed to process block {current_height}, skipping: {e}")
                current_height += 1
                await self._pause()
                continue

            if block["timestamp"] > day.end_timestamp:
                logger.info(f"End of day reached at block {current_height}. Stopping stream.")
                result.state = StreamState.COMPLETED
                break

            transactions = await self.fetcher.fetch_all(current_height, session.token)
            has_visual = any(tx.is_image for tx in transactions)

            if not visual_only or has_visual:
                payload = BlockPayload.build(block, current_height, transactions, has_visual)
                if not await session.emit(NewBlockMessage(data=payload)):
                    result.state = StreamState.CANCELLED
                    break
                result.blocks_emitted += 1
                result.last_height = current_height
                if visual_only:
                    result.visual_found = True

            max_height = max(max_height, current_height)
            current_height += 1
            await self._pause()

        logger.info(f"Finished streaming {day.label}: {result.state.value}, {result.blocks_emitted} blocks sent")
        if result.state == StreamState.COMPLETED and not visual_only:
            await session.emit(DayStreamCompleteMessage())
        return result
