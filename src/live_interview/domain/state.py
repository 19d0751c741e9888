from enum import Enum, auto

from live_interview.domain.errors import InvalidStateTransition


class SessionState(Enum):
    IDLE = auto()
    CONNECTING = auto()
    ACTIVE = auto()
    FINISHING = auto()
    CLOSED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.CONNECTING},
    SessionState.CONNECTING: {SessionState.ACTIVE, SessionState.FAILED},
    SessionState.ACTIVE: {SessionState.FINISHING, SessionState.FAILED},
    SessionState.FINISHING: {SessionState.CLOSED, SessionState.FAILED},
    SessionState.CLOSED: set(),
    SessionState.FAILED: set(),
}


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(f"Cannot transition from {current.name} to {target.name}")


def require_state(current: SessionState, operation: str, allowed: set[SessionState]) -> None:
    if current not in allowed:
        raise InvalidStateTransition(f"Cannot {operation} while {current.name}")
