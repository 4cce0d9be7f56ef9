import logging

from sign_transcriber.config import SignTranscriberConfig
from sign_transcriber.adapters.opencv_camera import OpenCVCamera, OpenCVFrameSampler
from sign_transcriber.adapters.unix_control import UnixSocketControlServer
from sign_transcriber.domain.controller import TranscriptionController
from sign_transcriber.domain.recognition import RecognitionClient
from sign_transcriber.domain.transcript import Transcript
from sign_transcriber.ports.control import ControlPort
from sign_transcriber.ports.vision import VisionModelPort

logger = logging.getLogger(__name__)


def create_vision_model(config: SignTranscriberConfig) -> VisionModelPort:
    api_key = config.api_key()

    if config.vision_engine == "anthropic":
        from sign_transcriber.adapters.anthropic_vision import AnthropicVisionModel

        return AnthropicVisionModel(
            api_key=api_key,
            model=config.anthropic_model,
            max_output_tokens=config.max_output_tokens,
        )

    if config.vision_engine == "openai":
        from sign_transcriber.adapters.openai_vision import OpenAIVisionModel

        return OpenAIVisionModel(
            api_key=api_key,
            model=config.openai_model,
            max_output_tokens=config.max_output_tokens,
        )

    from sign_transcriber.adapters.gemini_vision import GeminiVisionModel

    return GeminiVisionModel(
        api_key=api_key,
        model=config.gemini_model,
        max_output_tokens=config.max_output_tokens,
    )


def create_recognizer(config: SignTranscriberConfig) -> RecognitionClient:
    return RecognitionClient(
        model=create_vision_model(config),
        instruction=config.instruction,
        timeout_seconds=config.recognition_timeout_seconds,
    )


def create_controller(config: SignTranscriberConfig) -> TranscriptionController:
    logger.info(
        "Vision engine: %s (model=%s), camera=%d, interval=%dms",
        config.vision_engine,
        config.vision_model,
        config.camera_index,
        config.tick_interval_ms,
    )
    return TranscriptionController(
        camera=OpenCVCamera(index=config.camera_index),
        sampler=OpenCVFrameSampler(jpeg_quality=config.jpeg_quality),
        recognizer=create_recognizer(config),
        transcript=Transcript(separator=config.token_separator),
        tick_interval_seconds=config.tick_interval_ms / 1000,
    )


def create_app(
    config: SignTranscriberConfig,
) -> tuple[TranscriptionController, ControlPort]:
    controller = create_controller(config)
    return controller, UnixSocketControlServer(socket_path=config.socket_path)
