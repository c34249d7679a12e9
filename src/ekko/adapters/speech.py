"""Speech engine adapters producing transcript segments."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable

from ..transcript import TranscriptSegment


class ScriptedSpeechEngine:
    """Replays recognised lines as final segments, optionally with interim prefixes.

    Stands in for a real recognizer in the CLI demo and in tests.
    """

    def __init__(self, lines: Iterable[str], interim: bool = False, delay: float = 0.0):
        self._lines = list(lines)
        self._interim = interim
        self._delay = delay

    async def segments(self) -> AsyncIterator[TranscriptSegment]:
        for line in self._lines:
            if self._interim:
                words = line.split()
                for count in range(1, len(words)):
                    yield TranscriptSegment(" ".join(words[:count]), is_final=False)
                    await asyncio.sleep(self._delay)
            yield TranscriptSegment(line, is_final=True)
            await asyncio.sleep(self._delay)
