import logging
from dataclasses import dataclass

import cv2
import numpy as np

from sign_transcriber.config import API_KEY_ENV_VARS, SignTranscriberConfig

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: SignTranscriberConfig) -> list[HealthCheckResult]:
    results = [
        _check_camera(config),
        _check_jpeg_encoder(config),
        _check_api_keys(config),
    ]

    passed = sum(1 for r in results if r.passed)

    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    critical_checks = {"jpeg_encoder", "api_keys"}
    return any(not r.passed and r.name in critical_checks for r in results)


def _check_camera(config: SignTranscriberConfig) -> HealthCheckResult:
    name = "camera"
    capture = None
    try:
        capture = cv2.VideoCapture(config.camera_index)
        if not capture.isOpened():
            return HealthCheckResult(
                name=name, passed=False, detail=f"Camera {config.camera_index} could not be opened"
            )
        ok, frame = capture.read()
        if not ok or frame is None:
            return HealthCheckResult(
                name=name, passed=False, detail=f"Camera {config.camera_index} opened but yielded no frame"
            )
        height, width = frame.shape[:2]
        return HealthCheckResult(
            name=name, passed=True, detail=f"Camera {config.camera_index} streaming {width}x{height}"
        )
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))
    finally:
        if capture is not None:
            capture.release()


def _check_jpeg_encoder(config: SignTranscriberConfig) -> HealthCheckResult:
    name = "jpeg_encoder"
    try:
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        quality = round(config.jpeg_quality * 100)
        ok, encoded = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            return HealthCheckResult(name=name, passed=False, detail="cv2.imencode rejected test frame")
        return HealthCheckResult(
            name=name, passed=True, detail=f"Encoded test frame ({len(encoded)} bytes, quality={quality})"
        )
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))


def _check_api_keys(config: SignTranscriberConfig) -> HealthCheckResult:
    name = "api_keys"
    engine = config.vision_engine
    if config.api_key():
        return HealthCheckResult(name=name, passed=True, detail=f"{engine} API key loaded")

    key_file = getattr(config, f"{engine}_api_key_file")
    sources = [key_file or "no key file"] + list(API_KEY_ENV_VARS[engine])
    return HealthCheckResult(
        name=name, passed=False, detail=f"Missing {engine} key (checked: {', '.join(sources)})"
    )
