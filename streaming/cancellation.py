# streaming/cancellation.py
from typing import Optional

class CancelToken:
    """Cooperative cancellation flag shared by one stream's components.

    Only the session manager cancels a token; streaming code polls
    ``cancelled`` at its suspension points and never sets it.
    """

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled"):
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def __repr__(self) -> str:
        state = f"cancelled ({self.reason})" if self._cancelled else "active"
        return f"<CancelToken {state}>"
