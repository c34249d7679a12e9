"""Cancellation token for in-flight draft generation."""

from __future__ import annotations

from ..errors import DraftAborted


class CancelToken:
    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise DraftAborted("Draft generation was superseded by a newer request")
