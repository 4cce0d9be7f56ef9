import base64
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ImageBuffer:
    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.standard_b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class CameraPort(Protocol):
    async def acquire(self) -> Any: ...
    async def release(self, device: Any | None) -> None: ...


class FrameSamplerPort(Protocol):
    async def sample(self, device: Any) -> ImageBuffer: ...
