from typing import Protocol

from sign_transcriber.ports.camera import ImageBuffer


class VisionModelPort(Protocol):
    async def describe(self, image: ImageBuffer, instruction: str) -> str: ...


class RecognizerPort(Protocol):
    async def recognize(self, image: ImageBuffer) -> str: ...
