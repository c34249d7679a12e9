"""Clipboard adapter."""

from __future__ import annotations

from ..clipboard import set_clipboard


class ClipboardAdapter:
    def copy(self, text: str) -> bool:
        return set_clipboard(text)
