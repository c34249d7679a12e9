"""Structuring model adapters.

Wrap whatever produces model output (a plain callable, a sync iterator of
growing prefixes, or an async iterator) into the ``StructuringModel`` port.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable


class CallableStructuringModel:
    """Adapts ``fn(text, system_prompt)`` returning a value, an iterable or an async iterable."""

    def __init__(self, fn: Callable[[str, str], Any]):
        self._fn = fn

    async def generate(self, text: str, system_prompt: str) -> AsyncIterator[Any]:
        result = self._fn(text, system_prompt)
        if asyncio.iscoroutine(result):
            result = await result
        if hasattr(result, "__aiter__"):
            async for chunk in result:
                yield chunk
        elif result is None or isinstance(result, (str, dict)):
            yield result
        else:
            for chunk in result:
                yield chunk
                await asyncio.sleep(0)


class CannedStructuringModel:
    """Replays fixed chunks; used by the CLI demo and tests."""

    def __init__(self, *chunks: Any):
        self.chunks = list(chunks)
        self.calls: list[tuple[str, str]] = []

    async def generate(self, text: str, system_prompt: str) -> AsyncIterator[Any]:
        self.calls.append((text, system_prompt))
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
