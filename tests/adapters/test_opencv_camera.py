import asyncio

import cv2
import numpy as np
import pytest

from sign_transcriber.adapters import opencv_camera
from sign_transcriber.adapters.opencv_camera import OpenCVCamera, OpenCVFrameSampler, VideoDevice
from sign_transcriber.domain.errors import CaptureError, DeviceUnavailableError, PermissionDeniedError


class FakeVideoCapture:
    def __init__(self, opened: bool = True, frames: list | None = None) -> None:
        self._opened = opened
        self._frames = list(frames or [])
        self.release_count = 0

    def isOpened(self) -> bool:
        return self._opened

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def release(self) -> None:
        self.release_count += 1
        self._opened = False


def make_frame(width: int = 640, height: int = 480, noisy: bool = False) -> np.ndarray:
    if noisy:
        rng = np.random.default_rng(seed=7)
        return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return np.full((height, width, 3), 128, dtype=np.uint8)


@pytest.fixture
def no_device_node(monkeypatch, tmp_path):
    monkeypatch.setattr(opencv_camera, "_device_node", lambda index: tmp_path / f"video{index}")


class TestOpenCVCamera:
    @pytest.mark.asyncio
    async def test_acquire_returns_device(self, monkeypatch, no_device_node):
        capture = FakeVideoCapture()
        monkeypatch.setattr(opencv_camera.cv2, "VideoCapture", lambda index: capture)

        device = await OpenCVCamera(index=2).acquire()

        assert device.index == 2
        assert device.capture is capture
        assert not device.released

    @pytest.mark.asyncio
    async def test_acquire_unopened_raises_device_unavailable(self, monkeypatch, no_device_node):
        capture = FakeVideoCapture(opened=False)
        monkeypatch.setattr(opencv_camera.cv2, "VideoCapture", lambda index: capture)

        with pytest.raises(DeviceUnavailableError):
            await OpenCVCamera().acquire()
        assert capture.release_count == 1

    @pytest.mark.asyncio
    async def test_acquire_backend_error_raises_device_unavailable(self, monkeypatch, no_device_node):
        def broken_capture(index):
            raise cv2.error("backend failure")

        monkeypatch.setattr(opencv_camera.cv2, "VideoCapture", broken_capture)

        with pytest.raises(DeviceUnavailableError, match="backend failure"):
            await OpenCVCamera().acquire()

    @pytest.mark.asyncio
    async def test_unreadable_device_node_raises_permission_denied(self, monkeypatch, tmp_path):
        node = tmp_path / "video0"
        node.touch()
        monkeypatch.setattr(opencv_camera, "_device_node", lambda index: node)
        monkeypatch.setattr(opencv_camera.os, "access", lambda path, mode: False)

        with pytest.raises(PermissionDeniedError):
            await OpenCVCamera().acquire()

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self):
        capture = FakeVideoCapture()
        device = VideoDevice(index=0, capture=capture)
        camera = OpenCVCamera()

        await camera.release(device)
        await camera.release(device)
        await camera.release(None)

        assert capture.release_count == 1
        assert device.released


class TestOpenCVFrameSampler:
    @pytest.mark.asyncio
    async def test_sample_keeps_native_dimensions(self):
        device = VideoDevice(index=0, capture=FakeVideoCapture(frames=[make_frame(1280, 720)]))

        image = await OpenCVFrameSampler().sample(device)

        assert (image.width, image.height) == (1280, 720)
        assert image.mime_type == "image/jpeg"
        decoded = cv2.imdecode(np.frombuffer(image.data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (720, 1280, 3)

    @pytest.mark.asyncio
    async def test_lower_quality_produces_smaller_image(self):
        frame = make_frame(noisy=True)
        device = VideoDevice(index=0, capture=FakeVideoCapture(frames=[frame, frame.copy()]))

        compact = await OpenCVFrameSampler(jpeg_quality=0.8).sample(device)
        full = await OpenCVFrameSampler(jpeg_quality=1.0).sample(device)

        assert len(compact.data) < len(full.data)

    @pytest.mark.asyncio
    async def test_read_and_encode_run_off_the_event_loop(self, monkeypatch):
        offloaded = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, /, *args, **kwargs):
            offloaded.append(func)
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
        capture = FakeVideoCapture(frames=[make_frame()])
        device = VideoDevice(index=0, capture=capture)

        await OpenCVFrameSampler().sample(device)

        assert offloaded == [capture.read, cv2.imencode]

    @pytest.mark.asyncio
    async def test_missing_frame_raises_capture_error(self):
        device = VideoDevice(index=0, capture=FakeVideoCapture(frames=[]))

        with pytest.raises(CaptureError):
            await OpenCVFrameSampler().sample(device)

    @pytest.mark.asyncio
    async def test_released_device_raises_capture_error(self):
        device = VideoDevice(index=0, capture=FakeVideoCapture(frames=[make_frame()]))
        await OpenCVCamera().release(device)

        with pytest.raises(CaptureError):
            await OpenCVFrameSampler().sample(device)

    def test_rejects_out_of_range_quality(self):
        with pytest.raises(ValueError):
            OpenCVFrameSampler(jpeg_quality=1.5)
