"""Cancellable clock shared by the waits of one lifecycle operation."""
import threading
import time
from typing import Optional

from .errors import OperationCancelled


class Timer:
    """Monotonic clock whose sleeps can be interrupted by the caller.

    Every wait of a create or delete operation (poll interval, drain
    timeout, pause between drains) goes through one ``Timer``, so setting
    its cancel event or passing its deadline aborts the operation at the
    next wait instead of when the operation's own timeout runs out.

    Args:
        cancel_event: Event that aborts the operation when set
        deadline: Absolute ``time.monotonic()`` value after which the
            operation is aborted
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None,
                 deadline: Optional[float] = None):
        self.cancel_event = cancel_event or threading.Event()
        self.deadline = deadline

    def now(self) -> float:
        return time.monotonic()

    def cancel(self) -> None:
        self.cancel_event.set()

    def check(self) -> None:
        """Raise OperationCancelled if the operation was cancelled or is past its deadline."""
        if self.cancel_event.is_set():
            raise OperationCancelled("operation cancelled")
        if self.deadline is not None and self.now() >= self.deadline:
            raise OperationCancelled("operation deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` unless cancelled first."""
        self.check()
        if seconds <= 0:
            return
        if self.deadline is not None:
            remaining = self.deadline - self.now()
            if remaining < seconds:
                self.cancel_event.wait(max(remaining, 0))
                self.check()
                raise OperationCancelled("operation deadline exceeded")
        if self.cancel_event.wait(seconds):
            raise OperationCancelled("operation cancelled")
