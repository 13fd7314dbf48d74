"""
Cooperative cancellation for organization runs.
"""

import threading


class CancellationToken:
    """Flag checked by a run between files.

    Cancelling never interrupts a file that is already being relocated; it
    only stops new files from being started.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self):
        return f"CancellationToken(cancelled={self.is_cancelled})"
