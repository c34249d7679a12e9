"""Transcript assembly from speech engine segments."""

from __future__ import annotations

import re
from dataclasses import dataclass

_ENDS_WITH_SPACE = re.compile(r"[\s\n\r]$")


@dataclass(frozen=True)
class TranscriptSegment:
    """One recognition result.

    Attributes:
        text: Recognized text
        is_final: False for interim results that may still change
    """

    text: str
    is_final: bool = True


def _join(prefix: str, addition: str) -> str:
    if not prefix:
        return addition
    separator = "" if _ENDS_WITH_SPACE.search(prefix) else " "
    return f"{prefix}{separator}{addition}"


class LiveTranscript:
    """Final text plus the latest interim text, as shown in the panel."""

    def __init__(self):
        self.final = ""
        self.interim = ""

    def feed(self, segment: TranscriptSegment) -> str:
        text = segment.text.strip()
        if segment.is_final:
            if text:
                self.final = _join(self.final, text).lstrip()
            self.interim = ""
        else:
            self.interim = text
        return self.display

    @property
    def display(self) -> str:
        if not self.interim:
            return self.final
        return _join(self.final, self.interim)

    def clear(self) -> None:
        self.final = ""
        self.interim = ""
