import asyncio
import logging

from sign_transcriber.ports.camera import ImageBuffer
from sign_transcriber.ports.vision import VisionModelPort

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTION = (
    "You are an expert in American Sign Language. "
    "Transcribe the gesture in the image into a single letter or a short, common word. "
    "If no discernible ASL gesture is present, return an empty string. "
    "Do not add any extra explanations, formatting, or text. "
    "Only return the transcribed character or word."
)

REFUSAL_MARKERS = ("can't", "can’t", "cannot")


def normalize_token(raw: str | None) -> str:
    if not isinstance(raw, str):
        return ""
    text = raw.strip()
    lowered = text.lower()
    if any(marker in lowered for marker in REFUSAL_MARKERS):
        return ""
    return text


class RecognitionClient:
    """Turns one still image into a token.

    ``recognize`` never raises: timeouts, transport and quota errors, malformed
    and refusal responses all come back as an empty token. Failures are
    counted and logged so they stay visible without reaching the caller.
    """

    def __init__(
        self,
        model: VisionModelPort,
        instruction: str = DEFAULT_INSTRUCTION,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._model = model
        self._instruction = instruction
        self._timeout_seconds = timeout_seconds
        self._failure_count = 0
        self._refusal_count = 0

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def refusal_count(self) -> int:
        return self._refusal_count

    async def recognize(self, image: ImageBuffer) -> str:
        try:
            raw = await asyncio.wait_for(
                self._model.describe(image, self._instruction),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._failure_count += 1
            logger.warning("Recognition timed out after %.1fs", self._timeout_seconds)
            return ""
        except Exception:
            self._failure_count += 1
            logger.exception("Recognition request failed")
            return ""

        if not isinstance(raw, str):
            self._failure_count += 1
            logger.warning("Malformed recognition response: %r", raw)
            return ""

        token = normalize_token(raw)
        if raw.strip() and not token:
            self._refusal_count += 1
            logger.debug("Discarded refusal response: %r", raw[:80])
        return token
