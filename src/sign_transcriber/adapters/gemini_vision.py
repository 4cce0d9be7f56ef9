import logging

from google import genai
from google.genai import types

from sign_transcriber.ports.camera import ImageBuffer

logger = logging.getLogger(__name__)


class GeminiVisionModel:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_output_tokens: int = 20,
    ) -> None:
        self._client = genai.Client(api_key=api_key or None)
        self._model = model
        self._config = types.GenerateContentConfig(
            max_output_tokens=max_output_tokens,
            thinking_config=types.ThinkingConfig(thinking_budget=0),
        )

    async def describe(self, image: ImageBuffer, instruction: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=[
                types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                instruction,
            ],
            config=self._config,
        )
        text = response.text
        if text is None:
            logger.debug("Gemini returned no text (%dx%d frame)", image.width, image.height)
            return ""
        return text
