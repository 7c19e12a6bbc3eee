"""
Cooperative cancellation for metadata retrieval.
"""

from typing import Optional

from shared.errors import OperationCancelledError


class CancellationToken:
    """A cancellation flag shared by every step of one retrieval.

    Steps call :meth:`raise_if_cancelled` right before they suspend on I/O,
    so a request made mid-sequence stops the next step from starting.
    """

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._cancelled:
            self.reason = reason
            self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(self.reason or "The operation was cancelled")


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise if ``token`` has been cancelled; ``None`` means never cancelled."""
    if token is not None:
        token.raise_if_cancelled()
