"""Exception types shared across the coordinator, agents and panel."""

from __future__ import annotations


class EkkoError(RuntimeError):
    """Base class for recoverable Ekko failures."""


class ChannelError(EkkoError):
    """The receiving context is absent, not initialised, or did not answer in time."""


class NoActiveTabError(EkkoError):
    """The coordinator has no active tab to act on."""


class FrameNotReadyError(EkkoError):
    """A frame exists but has no loaded document to install the agent into."""


class InsertionError(EkkoError):
    """No editable surface could be resolved, or the surface rejected the value."""


class ToggleError(EkkoError):
    """The coordinator refused a bridge toggle request."""


class DraftAborted(EkkoError):
    """Structured draft generation was cancelled by a newer request."""
