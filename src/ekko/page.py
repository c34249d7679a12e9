"""Tabs, frames and agent installation for the pages Ekko inserts into."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .agent import InsertionAgent
from .channel import MessageChannel
from .dom import Document
from .errors import ChannelError, FrameNotReadyError

logger = logging.getLogger(__name__)

TOP_FRAME_ID = 0


@dataclass
class Frame:
    frame_id: int
    document: Document | None = None
    agent: InsertionAgent | None = None


@dataclass
class Tab:
    tab_id: int
    frames: dict[int, Frame] = field(default_factory=dict)


class PageHost:
    """Owns open tabs and installs insertion agents into their frames.

    While the agent script is registered, every frame that finishes loading
    gets an agent automatically; ``inject`` covers frames that were already
    loaded when the script was registered.
    """

    def __init__(self, channel: MessageChannel):
        self._channel = channel
        self.tabs: dict[int, Tab] = {}
        self.active_tab_id: int | None = None
        self._script_registered = False

    def open_tab(self, tab_id: int, document: Document | None = None, activate: bool = True) -> Tab:
        tab = self.tabs.setdefault(tab_id, Tab(tab_id))
        tab.frames.setdefault(TOP_FRAME_ID, Frame(TOP_FRAME_ID, document))
        if activate:
            self.active_tab_id = tab_id
        return tab

    def add_frame(self, tab_id: int, frame_id: int, document: Document | None = None) -> Frame:
        tab = self.tabs.setdefault(tab_id, Tab(tab_id))
        frame = tab.frames.setdefault(frame_id, Frame(frame_id))
        if document is not None:
            frame.document = document
        return frame

    def close_tab(self, tab_id: int) -> None:
        tab = self.tabs.pop(tab_id, None)
        if tab is None:
            return
        for frame in tab.frames.values():
            if frame.agent is not None:
                frame.agent.uninstall()
        if self.active_tab_id == tab_id:
            self.active_tab_id = None

    def frame_ids(self, tab_id: int) -> list[int]:
        tab = self.tabs.get(tab_id)
        return sorted(tab.frames) if tab else []

    def agent(self, tab_id: int, frame_id: int = TOP_FRAME_ID) -> InsertionAgent | None:
        tab = self.tabs.get(tab_id)
        frame = tab.frames.get(frame_id) if tab else None
        return frame.agent if frame else None

    @property
    def script_registered(self) -> bool:
        return self._script_registered

    def register_agent_script(self) -> None:
        self._script_registered = True

    def unregister_agent_script(self) -> None:
        self._script_registered = False

    async def load_frame(self, tab_id: int, frame_id: int, document: Document) -> Frame:
        frame = self.add_frame(tab_id, frame_id, document)
        if self._script_registered:
            await self.inject(tab_id, frame_id)
        return frame

    async def inject(self, tab_id: int, frame_id: int) -> InsertionAgent:
        """Install the agent into one frame; a frame keeps at most one agent."""
        tab = self.tabs.get(tab_id)
        frame = tab.frames.get(frame_id) if tab else None
        if frame is None:
            raise ChannelError(f"No frame {frame_id} in tab {tab_id}")
        if frame.document is None:
            raise FrameNotReadyError(f"Frame {frame_id} of tab {tab_id} has not loaded")
        if frame.agent is not None:
            return frame.agent

        agent = InsertionAgent(tab_id, frame_id, frame.document, self._channel)
        frame.agent = agent
        await agent.install()
        return agent

    async def inject_all(self, tab_id: int) -> int:
        """Install into every frame of the tab; returns how many frames have an agent."""
        installed = 0
        for frame_id in self.frame_ids(tab_id):
            try:
                await self.inject(tab_id, frame_id)
                installed += 1
            except (ChannelError, FrameNotReadyError) as e:
                logger.debug("Skipping agent install in tab %s frame %s: %s", tab_id, frame_id, e)
        return installed
