"""
Cooperative Cancellation

A token passed explicitly through every long-running loop of the pipeline.
"""

import threading


class AnalysisCancelled(Exception):
    """Raised when a running analysis observes a cancellation request."""


class CancellationToken:
    """
    Thread-safe cancellation flag.

    The caller keeps a reference and calls ``cancel()`` from any thread; the
    worker calls ``check()`` at loop boundaries.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def check(self, where: str = "") -> None:
        """
        Raise AnalysisCancelled if cancellation was requested.

        Args:
            where: Short description of the loop being checked, used in the message
        """
        if self._event.is_set():
            raise AnalysisCancelled(f"Analysis cancelled{' during ' + where if where else ''}.")


def ensure_token(token=None) -> CancellationToken:
    """Return the given token or a fresh, never-cancelled one."""
    return token if token is not None else CancellationToken()
