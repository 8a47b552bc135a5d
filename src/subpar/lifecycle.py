from __future__ import annotations

from enum import Enum


class RegistryStates(str, Enum):
    OPEN = "open"
    FROZEN = "frozen"


ALLOWED_TRANSITIONS = {
    RegistryStates.OPEN: {RegistryStates.FROZEN},
    RegistryStates.FROZEN: set(),
}


def can_transition(from_state: RegistryStates | str, to_state: RegistryStates | str) -> bool:
    """Return True if a transition from from_state -> to_state is allowed."""
    f = RegistryStates(from_state) if not isinstance(from_state, RegistryStates) else from_state
    t = RegistryStates(to_state) if not isinstance(to_state, RegistryStates) else to_state
    return t in ALLOWED_TRANSITIONS.get(f, set())
