"""OpenAI-compatible LLM provider (works with OpenAI, DeepSeek, etc.)."""

import base64

import httpx

from filehub.providers.llm import LLMProvider

IMAGE_PROMPT = (
    "Analyze this image and provide a description that would be useful for searching. "
    "Include what the image shows, any visible text, colors and style, and its likely "
    "purpose. Be concise but comprehensive."
)


class OpenAILLM(LLMProvider):
    """OpenAI-compatible LLM provider for file tagging and image description."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def chat(
        self,
        messages: list[dict],
        temperature: float = 0.1,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> str:
        payload: dict = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                f"{self._base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            resp.raise_for_status()
            data = resp.json()
            return data["choices"][0]["message"]["content"]

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        data_url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": IMAGE_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url, "detail": "low"}},
                ],
            }
        ]
        return await self.chat(messages, temperature=0.2, max_tokens=500)
