"""Cancellation token for async completions"""


class CancellationToken:
    """Liveness flag checked before applying the result of an async call.

    A cancelled token never becomes live again.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def alive(self) -> bool:
        return not self._cancelled
