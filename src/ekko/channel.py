"""In-process message channel between Ekko execution contexts.

The coordinator, every frame's insertion agent and every panel run as
cooperating tasks on one event loop and never touch each other's objects.
All interaction goes through this channel:

    panel ----send_to_coordinator----> coordinator
    coordinator --send_to_tab--------> frame agent(s)
    coordinator/agent --notify-------> panel listeners

Every send is a suspension point with its own timeout. A missing receiver,
a timeout or a crashing handler all surface as ``ChannelError`` so callers
can treat them uniformly as "no reply".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .errors import ChannelError
from .messages import Message, Response, Sender

logger = logging.getLogger(__name__)

Handler = Callable[[Message, Sender], Awaitable["Response | None"]]
Listener = Callable[[Message], None]


class MessageChannel:
    """Routes messages to the coordinator, to frames of a tab, and to panels."""

    def __init__(self, timeout: float = 2.0):
        self._timeout = timeout
        self._coordinator: Handler | None = None
        self._frames: dict[int, dict[int, Handler]] = {}
        self._listeners: list[Listener] = []

    # -- registration -------------------------------------------------

    def serve_coordinator(self, handler: Handler) -> None:
        self._coordinator = handler

    def stop_coordinator(self) -> None:
        self._coordinator = None

    def register_frame(self, tab_id: int, frame_id: int, handler: Handler) -> None:
        self._frames.setdefault(tab_id, {})[frame_id] = handler

    def unregister_frame(self, tab_id: int, frame_id: int) -> None:
        frames = self._frames.get(tab_id)
        if frames is not None:
            frames.pop(frame_id, None)
            if not frames:
                del self._frames[tab_id]

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- delivery -----------------------------------------------------

    async def send_to_coordinator(self, message: Message, sender: Sender | None = None) -> Response:
        if self._coordinator is None:
            raise ChannelError("Could not establish connection: coordinator is not running")
        response = await self._call(self._coordinator, message, sender or Sender(), "coordinator")
        if response is None:
            raise ChannelError(f"Coordinator returned no response to {message.type.value}")
        return response

    async def send_to_tab(self, tab_id: int, message: Message, frame_id: int | None = None) -> Response | None:
        """Send to one frame, or to every frame of the tab when ``frame_id`` is None.

        When fanning out, a frame that acknowledged delivery wins over one that
        merely answered ok, which wins over a failure. Failing frames are
        skipped as long as at least one frame answered.
        """
        frames = self._frames.get(tab_id, {})
        sender = Sender()

        if frame_id is not None:
            handler = frames.get(frame_id)
            if handler is None:
                raise ChannelError(f"Receiving end does not exist: tab {tab_id} frame {frame_id}")
            return await self._call(handler, message, sender, f"tab {tab_id} frame {frame_id}")

        if not frames:
            raise ChannelError(f"Receiving end does not exist: tab {tab_id}")

        best: Response | None = None
        answered = False
        last_error: ChannelError | None = None
        for target_frame, handler in sorted(frames.items()):
            try:
                response = await self._call(handler, message, sender, f"tab {tab_id} frame {target_frame}")
            except ChannelError as exc:
                last_error = exc
                continue
            answered = True
            if response is None:
                continue
            if best is None or _rank(response) > _rank(best):
                best = response
        if not answered and last_error is not None:
            raise last_error
        return best

    def notify(self, message: Message) -> None:
        """Broadcast a state notification to every panel listener."""
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Panel listener failed on %s", message.type.value)

    async def _call(self, handler: Handler, message: Message, sender: Sender, target: str) -> Response | None:
        try:
            # Runs in the caller's task: a cancelled sender never reaches the handler.
            async with asyncio.timeout(self._timeout):
                return await handler(message, sender)
        except TimeoutError as exc:
            raise ChannelError(f"No response from {target} within {self._timeout:.2f}s") from exc
        except ChannelError:
            raise
        except Exception as exc:
            logger.warning("Handler for %s failed on %s: %s", target, message.type.value, exc)
            raise ChannelError(f"{target} failed to handle {message.type.value}: {exc}") from exc


def _rank(response: Response) -> tuple[bool, bool]:
    return response.delivered, response.ok
