# middleware.py
from fastapi import FastAPI, Request
from utils.logging import logger
import time

async def add_process_time_header(request: Request, call_next):
    """Middleware to track request processing time"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response

class LoggingMiddleware:
    """Middleware for request and WebSocket connection logging"""
    def __init__(self, app: FastAPI):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "websocket":
            return await self._log_websocket(scope, receive, send)

        if scope["type"] == "http":
            start_time = time.time()

            # Create a modified send function to capture the response
            async def wrapped_send(message):
                if message["type"] == "http.response.start":
                    process_time = time.time() - start_time
                    status_code = message["status"]
                    logger.info(
                        f"Request: {scope['method']} {scope['path']} "
                        f"Status: {status_code} "
                        f"Duration: {process_time:.3f}s"
                    )
                await send(message)

            return await self.app(scope, receive, wrapped_send)
        return await self.app(scope, receive, send)

    async def _log_websocket(self, scope, receive, send):
        """Log the open and close of one stream connection"""
        start_time = time.time()
        client = scope.get("client")
        peer = f"{client[0]}:{client[1]}" if client else "unknown"
        stats = {"frames": 0, "close_code": None}

        async def wrapped_send(message):
            if message["type"] == "websocket.send":
                stats["frames"] += 1
            elif message["type"] == "websocket.close":
                stats["close_code"] = message.get("code", 1000)
            await send(message)

        async def wrapped_receive():
            message = await receive()
            if message["type"] == "websocket.disconnect" and stats["close_code"] is None:
                stats["close_code"] = message.get("code", 1000)
            return message

        logger.info(f"WebSocket: {peer} opened {scope['path']}")
        try:
            return await self.app(scope, wrapped_receive, wrapped_send)
        finally:
            logger.info(
                f"WebSocket: {peer} closed {scope['path']} "
                f"Code: {stats['close_code']} "
                f"Frames sent: {stats['frames']} "
                f"Duration: {time.time() - start_time:.3f}s"
            )

def setup_middleware(app: FastAPI):
    """Setup all middleware for the application"""
    # CORS middleware is already added in create_application()
    app.middleware("http")(add_process_time_header)
    app.add_middleware(LoggingMiddleware)

    logger.info("Middleware setup completed")
