from openai import AsyncOpenAI

from sign_transcriber.ports.camera import ImageBuffer


class OpenAIVisionModel:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_output_tokens: int = 20,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key or None)
        self._model = model
        self._max_output_tokens = max_output_tokens

    async def describe(self, image: ImageBuffer, instruction: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            max_tokens=self._max_output_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {
                            "type": "image_url",
                            "image_url": {"url": image.to_data_url(), "detail": "low"},
                        },
                    ],
                }
            ],
        )
        return response.choices[0].message.content or ""
