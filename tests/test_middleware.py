import logging

import pytest

from middleware import LoggingMiddleware


def websocket_scope():
    return {"type": "websocket", "path": "/ws", "client": ("127.0.0.1", 5123)}


class TestWebSocketLogging:
    @pytest.mark.asyncio
    async def test_logs_peer_frames_and_close_code(self, caplog):
        async def app(scope, receive, send):
            await receive()
            await send({"type": "websocket.accept"})
            await send({"type": "websocket.send", "text": "{}"})
            await send({"type": "websocket.send", "text": "{}"})
            await receive()

        incoming = [{"type": "websocket.connect"}, {"type": "websocket.disconnect", "code": 1001}]
        sent = []

        async def receive():
            return incoming.pop(0)

        async def send(message):
            sent.append(message)

        with caplog.at_level(logging.INFO, logger="arweave-daystream"):
            await LoggingMiddleware(app)(websocket_scope(), receive, send)

        assert [m["type"] for m in sent] == ["websocket.accept", "websocket.send", "websocket.send"]
        assert "WebSocket: 127.0.0.1:5123 opened /ws" in caplog.text
        assert "Code: 1001 Frames sent: 2" in caplog.text

    @pytest.mark.asyncio
    async def test_server_close_code_is_logged_when_app_fails(self, caplog):
        async def app(scope, receive, send):
            await send({"type": "websocket.close", "code": 1011})
            raise RuntimeError("boom")

        async def receive():
            return {"type": "websocket.connect"}

        async def send(message):
            pass

        with caplog.at_level(logging.INFO, logger="arweave-daystream"):
            with pytest.raises(RuntimeError):
                await LoggingMiddleware(app)(websocket_scope(), receive, send)

        assert "Code: 1011 Frames sent: 0" in caplog.text
