import asyncio
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from sign_transcriber.domain.errors import CaptureDeviceError, CaptureError, DeviceUnavailableError
from sign_transcriber.domain.events import SessionEvent, StateChanged, TokenAccepted, TranscriptCleared
from sign_transcriber.domain.state import InvalidTransitionError, SessionState, validate_transition
from sign_transcriber.domain.transcript import Transcript
from sign_transcriber.ports.camera import CameraPort, FrameSamplerPort
from sign_transcriber.ports.vision import RecognizerPort

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_SECONDS = 1.5

SessionListener = Callable[[SessionEvent], None]


@dataclass
class SessionStats:
    ticks: int = 0
    skipped_ticks: int = 0
    capture_errors: int = 0
    recognitions: int = 0
    empty_results: int = 0
    duplicates: int = 0
    accepted: int = 0
    discarded: int = 0


class TranscriptionController:
    """Drives the capture -> recognize -> transcript loop for one camera.

    All state lives on the event loop thread. A session generation counter
    tags every recognition task, so a completion that arrives after ``stop``
    or ``close`` is recognised as stale and dropped.
    """

    def __init__(
        self,
        camera: CameraPort,
        sampler: FrameSamplerPort,
        recognizer: RecognizerPort,
        transcript: Transcript | None = None,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
    ) -> None:
        self._camera = camera
        self._sampler = sampler
        self._recognizer = recognizer
        self._transcript = transcript if transcript is not None else Transcript()
        self._tick_interval_seconds = tick_interval_seconds

        self._state = SessionState.IDLE
        self._error: str | None = None
        self._device: Any | None = None
        self._in_flight = False
        self._generation = 0
        self._timer_task: asyncio.Task | None = None
        self._recognition_tasks: set[asyncio.Task] = set()
        self._listeners: list[SessionListener] = []
        self._stats = SessionStats()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def transcript(self) -> str:
        return self._transcript.text

    @property
    def tokens(self) -> list[str]:
        return self._transcript.tokens

    @property
    def last_token(self) -> str:
        return self._transcript.last_token

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def stats(self) -> SessionStats:
        return self._stats

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self._state.name,
            "transcript": self._transcript.text,
            "error": self._error,
            "in_flight": self._in_flight,
            "stats": asdict(self._stats),
        }

    async def start(self) -> None:
        validate_transition(self._state, SessionState.ACQUIRING_DEVICE)
        self._error = None
        self._generation += 1
        generation = self._generation
        self._transition_to(SessionState.ACQUIRING_DEVICE)

        try:
            device = await self._camera.acquire()
        except asyncio.CancelledError:
            if generation == self._generation and self._state == SessionState.ACQUIRING_DEVICE:
                self._generation += 1
                self._force_idle()
            raise
        except CaptureDeviceError as exc:
            await self._fail_acquisition(generation, str(exc))
            return
        except Exception:
            logger.exception("Unexpected error while acquiring camera")
            await self._fail_acquisition(generation, str(DeviceUnavailableError()))
            return

        if generation != self._generation or self._state != SessionState.ACQUIRING_DEVICE:
            logger.info("Session closed while acquiring camera, releasing device")
            await self._camera.release(device)
            return

        self._device = device
        self._transcript.reset_last_token()
        self._in_flight = False
        self._stats = SessionStats()
        self._transition_to(SessionState.ACTIVE)
        self._timer_task = asyncio.create_task(self._run_timer(generation))

    async def stop(self) -> None:
        if self._state != SessionState.ACTIVE:
            raise InvalidTransitionError(f"Cannot stop from {self._state.name}")
        self._end_session()
        await self._release_device()
        self._transition_to(SessionState.IDLE)

    async def toggle(self) -> SessionState:
        if self._state == SessionState.ACTIVE:
            await self.stop()
        else:
            await self.start()
        return self._state

    async def close(self) -> None:
        self._end_session()
        pending = list(self._recognition_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._release_device()
        self._force_idle()

    def clear_transcript(self) -> None:
        self._transcript.clear()
        logger.info("Transcript cleared")
        self._emit(TranscriptCleared())

    def tick(self) -> asyncio.Task | None:
        if self._state != SessionState.ACTIVE or self._device is None:
            return None
        self._stats.ticks += 1
        if self._in_flight:
            self._stats.skipped_ticks += 1
            logger.debug("Skipped tick: recognition still in flight")
            return None

        self._in_flight = True
        task = asyncio.create_task(
            self._capture_and_recognize(self._generation, self._device)
        )
        self._recognition_tasks.add(task)
        task.add_done_callback(self._recognition_tasks.discard)
        return task

    async def _capture_and_recognize(self, generation: int, device: Any) -> None:
        try:
            try:
                image = await self._sampler.sample(device)
            except CaptureError as exc:
                self._stats.capture_errors += 1
                logger.debug("Skipped tick: %s", exc)
                return
            token = await self._recognizer.recognize(image)
            self._merge(generation, token)
        except Exception:
            logger.exception("Error while processing frame")
        finally:
            if generation == self._generation:
                self._in_flight = False

    def _merge(self, generation: int, token: str) -> None:
        if generation != self._generation or self._state != SessionState.ACTIVE:
            self._stats.discarded += 1
            logger.debug("Discarded stale recognition result %r", token)
            return

        self._stats.recognitions += 1
        if not token:
            self._stats.empty_results += 1
            return
        if not self._transcript.append(token):
            self._stats.duplicates += 1
            logger.debug("Duplicate token suppressed: %s", token)
            return

        self._stats.accepted += 1
        logger.info("Accepted: %s", token)
        self._emit(TokenAccepted(token=token, transcript=self._transcript.text))

    async def _run_timer(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        try:
            while generation == self._generation:
                deadline += self._tick_interval_seconds
                now = loop.time()
                if deadline < now:
                    deadline = now
                await asyncio.sleep(deadline - now)
                if generation != self._generation:
                    break
                self.tick()
        except asyncio.CancelledError:
            pass

    async def _fail_acquisition(self, generation: int, reason: str) -> None:
        if generation != self._generation or self._state != SessionState.ACQUIRING_DEVICE:
            return
        logger.error("Camera acquisition failed: %s", reason)
        await self._release_device()
        self._error = reason
        self._transition_to(SessionState.FAILED)

    def _force_idle(self) -> None:
        if self._state == SessionState.IDLE:
            return
        previous = self._state
        self._state = SessionState.IDLE
        self._error = None
        logger.info("State: %s -> %s", previous.name, SessionState.IDLE.name)
        self._emit(StateChanged(previous=previous, current=SessionState.IDLE))

    def _end_session(self) -> None:
        self._generation += 1
        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None
        self._in_flight = False
        self._transcript.reset_last_token()
        if self._stats.ticks:
            logger.info(
                "Session stats: %d ticks, %d skipped, %d accepted, %d duplicates",
                self._stats.ticks,
                self._stats.skipped_ticks,
                self._stats.accepted,
                self._stats.duplicates,
            )

    async def _release_device(self) -> None:
        device, self._device = self._device, None
        await self._camera.release(device)

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        previous = self._state
        logger.info("State: %s -> %s", previous.name, target.name)
        self._state = target
        self._emit(StateChanged(previous=previous, current=target, error=self._error))

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Session listener failed on %s", type(event).__name__)
