import logging

from sign_transcriber.domain.events import SessionEvent, StateChanged, TokenAccepted, TranscriptCleared
from sign_transcriber.domain.state import SessionState

logger = logging.getLogger(__name__)

STATE_MESSAGES = {
    SessionState.IDLE: "Camera is off. Send 'start' to begin.",
    SessionState.ACQUIRING_DEVICE: "Initializing camera...",
    SessionState.ACTIVE: "LIVE",
    SessionState.FAILED: "Camera not available.",
}


class ConsoleView:
    def __init__(self) -> None:
        self._transcript = ""
        self._banner: str | None = None

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def banner(self) -> str | None:
        return self._banner

    def __call__(self, event: SessionEvent) -> None:
        if isinstance(event, StateChanged):
            self._render_state(event)
        elif isinstance(event, TokenAccepted):
            self._transcript = event.transcript
            logger.info("Transcript: %s", event.transcript.rstrip())
        elif isinstance(event, TranscriptCleared):
            self._transcript = ""
            logger.info("Transcript: (empty)")

    def _render_state(self, event: StateChanged) -> None:
        if event.current == SessionState.FAILED:
            self._banner = event.error
            logger.error("Error: %s", event.error)
        elif event.current == SessionState.ACQUIRING_DEVICE:
            self._banner = None
        logger.info("Camera: %s", STATE_MESSAGES[event.current])
