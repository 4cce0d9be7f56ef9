"""OpenCV webcam adapters.

``OpenCVCamera`` owns the device lifecycle, ``OpenCVFrameSampler`` turns the
current frame into a JPEG still at the frame's native size. Blocking OpenCV
calls run in worker threads; the per-device lock keeps a pending read from
racing a release.
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cv2

from sign_transcriber.domain.errors import CaptureError, DeviceUnavailableError, PermissionDeniedError
from sign_transcriber.ports.camera import ImageBuffer

logger = logging.getLogger(__name__)


@dataclass
class VideoDevice:
    index: int
    capture: Any
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    released: bool = False


class OpenCVCamera:
    def __init__(self, index: int = 0) -> None:
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    async def acquire(self) -> VideoDevice:
        self._check_permission()
        try:
            capture = await asyncio.to_thread(cv2.VideoCapture, self._index)
        except Exception as exc:
            raise DeviceUnavailableError(f"Could not open camera {self._index}: {exc}") from exc

        if not capture.isOpened():
            await asyncio.to_thread(capture.release)
            raise DeviceUnavailableError()

        logger.info("Camera %d acquired", self._index)
        return VideoDevice(index=self._index, capture=capture)

    async def release(self, device: VideoDevice | None) -> None:
        if device is None or device.released:
            return
        async with device.lock:
            if device.released:
                return
            device.released = True
            await asyncio.to_thread(device.capture.release)
        logger.info("Camera %d released", device.index)

    def _check_permission(self) -> None:
        node = _device_node(self._index)
        if node.exists() and not os.access(node, os.R_OK):
            raise PermissionDeniedError()


def _device_node(index: int) -> Path:
    return Path(f"/dev/video{index}")


class OpenCVFrameSampler:
    def __init__(self, jpeg_quality: float = 0.8) -> None:
        if not 0.0 < jpeg_quality <= 1.0:
            raise ValueError(f"jpeg_quality must be in (0, 1], got {jpeg_quality}")
        self._jpeg_quality = jpeg_quality

    @property
    def jpeg_quality(self) -> float:
        return self._jpeg_quality

    async def sample(self, device: VideoDevice) -> ImageBuffer:
        async with device.lock:
            if device.released:
                raise CaptureError("Camera already released")
            ok, frame = await asyncio.to_thread(device.capture.read)

        if not ok or frame is None or frame.size == 0:
            raise CaptureError("No frame available")

        height, width = frame.shape[:2]
        params = [cv2.IMWRITE_JPEG_QUALITY, round(self._jpeg_quality * 100)]
        ok, encoded = await asyncio.to_thread(cv2.imencode, ".jpg", frame, params)
        if not ok:
            raise CaptureError("JPEG encoding failed")
        return ImageBuffer(data=encoded.tobytes(), width=width, height=height)
