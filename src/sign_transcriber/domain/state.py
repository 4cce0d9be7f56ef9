from enum import Enum, auto


class SessionState(Enum):
    IDLE = auto()
    ACQUIRING_DEVICE = auto()
    ACTIVE = auto()
    FAILED = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.ACQUIRING_DEVICE},
    SessionState.ACQUIRING_DEVICE: {SessionState.ACTIVE, SessionState.FAILED},
    SessionState.ACTIVE: {SessionState.IDLE},
    SessionState.FAILED: {SessionState.ACQUIRING_DEVICE, SessionState.IDLE},
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
