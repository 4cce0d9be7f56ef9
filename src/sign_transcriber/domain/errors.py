class CaptureDeviceError(Exception):
    """Acquiring the camera failed; fatal to the session attempt."""

    default_message = "Could not access camera. Please check permissions."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class PermissionDeniedError(CaptureDeviceError):
    default_message = (
        "Camera access was denied. Please allow camera access in your system settings."
    )


class DeviceUnavailableError(CaptureDeviceError):
    pass


class CaptureError(Exception):
    """No frame could be sampled; the current tick is skipped."""
