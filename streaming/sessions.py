# streaming/sessions.py
import asyncio
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel

from streaming.cancellation import CancelToken
from streaming.day_streamer import DayStreamer
from streaming.models import DayRequest, ErrorMessage, StreamMode
from streaming.visual_search import VisualSearch
from utils.logging import logger

class MessageTransport(Protocol):
    """What a stream needs from a client connection."""

    @property
    def is_open(self) -> bool: ...

    async def send(self, message: Dict[str, Any]) -> None: ...

class StreamSession:
    """One client's stream: the transport it writes to and the token that stops it."""

    def __init__(self, connection_id: str, transport: MessageTransport, day: DayRequest, mode: StreamMode):
        self.connection_id = connection_id
        self.transport = transport
        self.day = day
        self.mode = mode
        self.token = CancelToken()
        self.task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def is_active(self) -> bool:
        return not self.token.cancelled and self.transport.is_open

    async def emit(self, message: BaseModel) -> bool:
        """Send a message unless the session was cancelled or the client went away.

        Returns:
            True if the message was handed to the transport
        """
        if not self.is_active:
            return False
        await self.transport.send(message.model_dump())
        return True

    def __repr__(self) -> str:
        return f"<StreamSession {self.connection_id} {self.mode.value} {self.day.day} {self.token!r}>"

class SessionManager:
    """
    Owns the connection -> session registry.

    At most one session per connection produces messages: starting a new
    stream cancels the previous session's token before the replacement is
    registered. Cancellation is cooperative, so a superseded stream finishes
    its in-flight upstream call and then stops at its next check without
    emitting anything.

    All mutations happen synchronously on the event loop, so no lock is
    needed around the registry.
    """

    def __init__(self, streamer: DayStreamer, visual_search: VisualSearch):
        self.streamer = streamer
        self.visual_search = visual_search
        self._sessions: Dict[str, StreamSession] = {}

    def get(self, connection_id: str) -> Optional[StreamSession]:
        return self._sessions.get(connection_id)

    @property
    def active_count(self) -> int:
        return sum(1 for session in self._sessions.values() if not session.cancelled)

    def start_stream(self, connection_id: str, transport: MessageTransport, day: DayRequest, mode: StreamMode) -> StreamSession:
        previous = self._sessions.get(connection_id)
        if previous is not None:
            previous.token.cancel("superseded")
            logger.info(f"Superseded stream {previous!r}")

        session = StreamSession(connection_id, transport, day, mode)
        self._sessions[connection_id] = session
        session.task = asyncio.create_task(self._run(session), name=f"stream-{connection_id}")
        logger.info(f"Started {mode.value} stream for {day.label} on connection {connection_id}")
        return session

    async def _run(self, session: StreamSession):
        try:
            if session.mode == StreamMode.VISUAL_SEARCH:
                await self.visual_search.search(session, session.day)
            else:
                await self.streamer.stream_day(session, session.day)
        except Exception as e:
            logger.exception(f"Error in stream {session!r}: {str(e)}")
            await session.emit(ErrorMessage(message="An error occurred while streaming blocks."))

    def close_connection(self, connection_id: str):
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            session.token.cancel("connection closed")
            logger.info(f"Cleaned up stream for connection {connection_id}")

    async def shutdown(self, timeout: float = 5.0):
        """Cancel every session and wait briefly for their tasks to wind down."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.token.cancel("shutdown")

        tasks = [session.task for session in sessions if session.task is not None and not session.task.done()]
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Force-cancelled {len(pending)} stream task(s) at shutdown")
