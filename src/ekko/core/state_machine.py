"""Bridge state machine owned by the coordinator."""

from __future__ import annotations

from enum import Enum, auto


class BridgeState(Enum):
    DISABLED = auto()
    ENABLED = auto()


class BridgeEvent(Enum):
    ENABLE = auto()
    DISABLE = auto()


# A repeated ENABLE or DISABLE is legal; the coordinator broadcasts the state again.
_TRANSITIONS = {
    BridgeState.DISABLED: {
        BridgeEvent.ENABLE: BridgeState.ENABLED,
        BridgeEvent.DISABLE: BridgeState.DISABLED,
    },
    BridgeState.ENABLED: {
        BridgeEvent.ENABLE: BridgeState.ENABLED,
        BridgeEvent.DISABLE: BridgeState.DISABLED,
    },
}


class BridgeStateMachine:
    def __init__(self):
        self.state = BridgeState.DISABLED

    @property
    def enabled(self) -> bool:
        return self.state == BridgeState.ENABLED

    def transition(self, event: BridgeEvent) -> BridgeState:
        self.state = _TRANSITIONS[self.state][event]
        return self.state
