import os
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

from sign_transcriber.domain.recognition import DEFAULT_INSTRUCTION

API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
}


class SignTranscriberConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SIGN_TRANSCRIBER_")

    vision_engine: Literal["gemini", "anthropic", "openai"] = "gemini"
    gemini_model: str = "gemini-2.5-flash"
    anthropic_model: str = "claude-haiku-4-5"
    openai_model: str = "gpt-4o-mini"

    gemini_api_key_file: str = ""
    anthropic_api_key_file: str = ""
    openai_api_key_file: str = ""

    max_output_tokens: int = 20
    recognition_timeout_seconds: float = 10.0
    instruction: str = DEFAULT_INSTRUCTION

    camera_index: int = 0
    jpeg_quality: float = 0.8
    tick_interval_ms: int = 1500
    token_separator: str = " "

    autostart: bool = False
    socket_path: str = "/tmp/sign-transcriber.sock"
    log_file: str = ""

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def api_key(self) -> str:
        key_file = getattr(self, f"{self.vision_engine}_api_key_file")
        key = self.read_secret(key_file)
        if key:
            return key
        for name in API_KEY_ENV_VARS[self.vision_engine]:
            if os.environ.get(name):
                return os.environ[name]
        return ""

    @property
    def vision_model(self) -> str:
        return getattr(self, f"{self.vision_engine}_model")
