import logging

import anthropic

from sign_transcriber.ports.camera import ImageBuffer

logger = logging.getLogger(__name__)


class AnthropicVisionModel:
    def __init__(
        self,
        api_key: str,
        model: str = "claude-haiku-4-5",
        max_output_tokens: int = 20,
    ) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key or None)
        self._model = model.removeprefix("anthropic/")
        self._max_output_tokens = max_output_tokens

    async def describe(self, image: ImageBuffer, instruction: str) -> str:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_output_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": image.mime_type,
                                    "data": image.to_base64(),
                                },
                            },
                            {"type": "text", "text": instruction},
                        ],
                    }
                ],
            )
        except anthropic.APIStatusError as exc:
            logger.error("Anthropic API error: %s %s", exc.status_code, exc.message)
            raise
        return "".join(block.text for block in message.content if block.type == "text")
