from dataclasses import dataclass, field
from time import time

from sign_transcriber.domain.state import SessionState


@dataclass(frozen=True)
class SessionEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class StateChanged(SessionEvent):
    previous: SessionState = SessionState.IDLE
    current: SessionState = SessionState.IDLE
    error: str | None = None


@dataclass(frozen=True)
class TokenAccepted(SessionEvent):
    token: str = ""
    transcript: str = ""


@dataclass(frozen=True)
class TranscriptCleared(SessionEvent):
    pass
