"""Per-request time budget.

A :class:`Deadline` is created when a handler starts.  Before each
outbound call the handler asks for :meth:`Deadline.remaining`, which
both checks the budget and yields the timeout to hand to the gateway.
"""

from __future__ import annotations

import time

from mfaserver.core.errors import DeadlineExceededError


class Deadline:
    """Monotonic deadline ``seconds`` from construction."""

    def __init__(self, seconds: float) -> None:
        self._budget = seconds
        self._expires = time.monotonic() + seconds

    @property
    def budget(self) -> float:
        return self._budget

    def remaining(self) -> float:
        """Return seconds left, raising once the deadline has passed."""
        left = self._expires - time.monotonic()
        if left <= 0:
            msg = f"request deadline of {self._budget:g}s exceeded"
            raise DeadlineExceededError(msg)
        return left
