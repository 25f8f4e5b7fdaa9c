# streaming/visual_search.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from streaming.day_streamer import DayStreamer, StreamState
from streaming.models import DayRequest, DayStreamCompleteMessage, ErrorMessage, LoadingStatusMessage
from utils.logging import logger

class SearchOutcome(str, Enum):
    FOUND = "found"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    ERRORED = "errored"

@dataclass
class VisualSearchResult:
    outcome: SearchOutcome
    days_searched: int
    found_day: Optional[DayRequest] = None

class VisualSearch:
    """Walk back day by day until a day with image transactions is streamed."""

    def __init__(self, streamer: DayStreamer, max_days: int = 7):
        self.streamer = streamer
        self.max_days = max_days

    async def search(self, session, day: DayRequest) -> VisualSearchResult:
        search_day = day
        for attempt in range(self.max_days):
            if not session.is_active:
                return VisualSearchResult(SearchOutcome.CANCELLED, attempt)

            if attempt:
                await session.emit(LoadingStatusMessage(
                    message=f"No visual content yet, searching {search_day.label}..."
                ))
            result = await self.streamer.stream_day(session, search_day, visual_only=True)

            if result.state == StreamState.CANCELLED:
                return VisualSearchResult(SearchOutcome.CANCELLED, attempt + 1)
            if result.state == StreamState.ERRORED:
                return VisualSearchResult(SearchOutcome.ERRORED, attempt + 1)
            if result.visual_found:
                logger.info(f"Visual content found on {search_day.label} after {attempt + 1} day(s)")
                await session.emit(DayStreamCompleteMessage())
                return VisualSearchResult(SearchOutcome.FOUND, attempt + 1, search_day)

            search_day = search_day.previous()
            if search_day is None:
                # Ran out of calendar before running out of days to search
                days_searched = attempt + 1
                break
        else:
            days_searched = self.max_days

        logger.info(f"No visual content found in the {days_searched} days up to {day.label}")
        await session.emit(ErrorMessage(message=f"No visual content found in the last {self.max_days} days."))
        return VisualSearchResult(SearchOutcome.EXHAUSTED, days_searched)
