# utils/logging.py
import logging
import telegram
import asyncio
from typing import Optional, Dict
from config import settings
from datetime import datetime
import hashlib

class TelegramHandler(logging.Handler):
    """Forward ERROR and CRITICAL records to a Telegram chat.

    Records are queued by ``emit`` and delivered by a background task, so
    logging never blocks a stream. Repeated errors are suppressed after
    ``max_similar_notifications`` within ``notification_window`` seconds.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        level: int = logging.ERROR,
        notification_window: int = settings.NOTIFICATION_WINDOW,
        max_similar_notifications: int = settings.MAX_SIMILAR_NOTIFICATIONS,
    ):
        super().__init__(level)
        self.bot = telegram.Bot(token=token)
        self.chat_id = chat_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._seen: Dict[str, Dict[str, float]] = {}
        self._notification_window = notification_window
        self._max_similar_notifications = max_similar_notifications

    def _get_error_key(self, record: logging.LogRecord) -> str:
        """Generate a unique key for similar errors"""
        error_content = f"{record.levelname}:{record.module}:{record.funcName}:{record.msg}"
        return f"telegram:error:{hashlib.md5(error_content.encode()).hexdigest()}"

    def _expire_seen(self, current_time: float):
        """Forget error keys whose window has closed"""
        expired = [
            key for key, data in self._seen.items()
            if current_time - data['first_seen'] >= self._notification_window
        ]
        for key in expired:
            del self._seen[key]

    async def _should_send_notification(self, record: logging.LogRecord) -> bool:
        """Check if we should send this notification based on rate limiting"""
        error_key = self._get_error_key(record)
        current_time = datetime.now().timestamp()
        self._expire_seen(current_time)
        data = self._seen.get(error_key)

        if data is None or current_time - data['first_seen'] >= self._notification_window:
            # First occurrence, or the window expired: start fresh
            self._seen[error_key] = {'count': 1, 'first_seen': current_time, 'last_seen': current_time}
            return True

        data['count'] += 1
        data['last_seen'] = current_time
        count = data['count']

        if count <= self._max_similar_notifications:
            return True
        if count == self._max_similar_notifications + 1:
            # Send one final message about rate limiting
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=f"🔇 *Rate Limited*\nSimilar errors are being suppressed for {self._notification_window//60} minutes.\nSeen {count} times in the last {int(current_time - data['first_seen'])} seconds.",
                parse_mode='Markdown'
            )
        return False

    async def _sender(self):
        while True:
            record = await self._queue.get()
            try:
                if await self._should_send_notification(record):
                    message = self.format(record)
                    # Truncate message if too long
                    if len(message) > 4000:
                        message = message[:3997] + "..."

                    await self.bot.send_message(
                        chat_id=self.chat_id,
                        text=f"🚨 *ALERT*\n```\n{message}\n```",
                        parse_mode='Markdown'
                    )
            except Exception as e:
                print(f"Error sending Telegram message: {e}")
            finally:
                self._queue.task_done()

    def emit(self, record):
        # Nothing is delivered until start() runs inside the event loop
        if self._task is None:
            return
        try:
            self._queue.put_nowait(record)
        except Exception:
            self.handleError(record)

    def start(self):
        """Start the background sender task"""
        if not self._task:
            self._task = asyncio.create_task(self._sender())

    async def stop(self):
        """Stop the background sender task"""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

# Create logger
logger = logging.getLogger("arweave-daystream")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

# Console handler
console_handler = logging.StreamHandler()
formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)

# Telegram handler (only for ERROR and CRITICAL)
telegram_handler: Optional[TelegramHandler] = None
if settings.telegram_enabled:
    telegram_handler = TelegramHandler(
        token=settings.TELEGRAM_BOT_TOKEN,
        chat_id=settings.TELEGRAM_CHAT_ID,
        level=logging.ERROR
    )
    telegram_handler.setFormatter(formatter)
    logger.addHandler(telegram_handler)

def start_telegram_handler():
    if telegram_handler is not None:
        telegram_handler.start()

async def stop_telegram_handler():
    if telegram_handler is not None:
        await telegram_handler.stop()
