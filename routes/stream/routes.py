# routes/stream/routes.py
import uuid
from typing import Any, Dict, Union

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from streaming.exceptions import ProtocolError
from streaming.models import ErrorMessage, parse_client_message
from streaming.sessions import SessionManager
from utils.logging import logger

router = APIRouter()

class WebSocketTransport:
    """Adapts a FastAPI WebSocket to the transport interface streams write to."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, message: Dict[str, Any]) -> None:
        if not self.is_open:
            return
        try:
            await self.websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # A closed socket ends the stream the same way a cancellation does
            self._closed = True
            logger.info(f"Dropping message, client went away: {type(e).__name__}")

    def mark_closed(self):
        self._closed = True

async def handle_client_message(
    manager: SessionManager,
    connection_id: str,
    transport: WebSocketTransport,
    raw: Union[str, bytes],
):
    """Start the requested stream, or answer a malformed request with an error."""
    try:
        request = parse_client_message(raw)
    except ProtocolError as e:
        logger.warning(f"Rejected message from {connection_id}: {e}")
        await transport.send(ErrorMessage(message=f"Invalid request: {e}").model_dump())
        return

    logger.info(f"Received {request.type} for {request.day.isoformat()} from {connection_id}")
    manager.start_stream(connection_id, transport, request.day_request(), request.mode)

@router.websocket("/")
@router.websocket("/ws")
async def stream_endpoint(websocket: WebSocket):
    manager: SessionManager = websocket.app.state.session_manager
    await websocket.accept()

    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    connection_id = f"{client}/{uuid.uuid4().hex[:8]}"
    transport = WebSocketTransport(websocket)
    logger.info(f"Client connected: {connection_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await handle_client_message(manager, connection_id, transport, raw)
    except WebSocketDisconnect:
        pass
    finally:
        transport.mark_closed()
        manager.close_connection(connection_id)
        logger.info(f"Client disconnected: {connection_id}")
