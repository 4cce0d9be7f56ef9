import asyncio

import pytest

from sign_transcriber.domain.controller import TranscriptionController
from sign_transcriber.domain.errors import CaptureError
from sign_transcriber.domain.transcript import Transcript
from sign_transcriber.ports.camera import ImageBuffer


IDLE_TICK_INTERVAL_SECONDS = 60.0


def make_image(width: int = 640, height: int = 480) -> ImageBuffer:
    return ImageBuffer(data=b"\xff\xd8fake-jpeg\xff\xd9", width=width, height=height)


class FakeDevice:
    def __init__(self, name: str = "fake-camera") -> None:
        self.name = name


class FakeCamera:
    def __init__(self, errors: list[Exception] | None = None) -> None:
        self._errors = list(errors or [])
        self.acquire_count = 0
        self.released: list[FakeDevice | None] = []
        self.acquire_gate: asyncio.Event | None = None
        self.devices: list[FakeDevice] = []

    async def acquire(self) -> FakeDevice:
        self.acquire_count += 1
        if self.acquire_gate is not None:
            await self.acquire_gate.wait()
        if self._errors:
            raise self._errors.pop(0)
        device = FakeDevice(name=f"fake-camera-{self.acquire_count}")
        self.devices.append(device)
        return device

    async def release(self, device: FakeDevice | None) -> None:
        self.released.append(device)

    @property
    def released_devices(self) -> list[FakeDevice]:
        return [d for d in self.released if d is not None]


class FakeSampler:
    def __init__(self, failures: list[bool] | None = None) -> None:
        self._failures = list(failures or [])
        self.sample_count = 0

    async def sample(self, device: FakeDevice) -> ImageBuffer:
        self.sample_count += 1
        if self._failures and self._failures.pop(0):
            raise CaptureError("No frame available")
        return make_image()


class FakeRecognizer:
    def __init__(self, tokens: list[str] | None = None) -> None:
        self._tokens = list(tokens or [])
        self.call_count = 0
        self.active_calls = 0
        self.max_active_calls = 0
        self.gate: asyncio.Event | None = None

    async def recognize(self, image: ImageBuffer) -> str:
        self.call_count += 1
        self.active_calls += 1
        self.max_active_calls = max(self.max_active_calls, self.active_calls)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            return self._tokens.pop(0) if self._tokens else ""
        finally:
            self.active_calls -= 1

    def queue_tokens(self, tokens: list[str]) -> None:
        self._tokens.extend(tokens)


class FakeVisionModel:
    def __init__(
        self,
        response: object = "",
        error: Exception | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self._response = response
        self._error = error
        self._delay_seconds = delay_seconds
        self.instructions: list[str] = []

    async def describe(self, image: ImageBuffer, instruction: str) -> str:
        self.instructions.append(instruction)
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._error is not None:
            raise self._error
        return self._response


@pytest.fixture
def fake_camera():
    return FakeCamera()


@pytest.fixture
def fake_sampler():
    return FakeSampler()


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer()


@pytest.fixture
def transcript():
    return Transcript()


@pytest.fixture
def controller(fake_camera, fake_sampler, fake_recognizer, transcript):
    return TranscriptionController(
        camera=fake_camera,
        sampler=fake_sampler,
        recognizer=fake_recognizer,
        transcript=transcript,
        tick_interval_seconds=IDLE_TICK_INTERVAL_SECONDS,
    )
