from collections.abc import AsyncIterator
from typing import Any

import httpx
import openai

from app.relay.client_base import BaseGenerationClient
from app.relay.exceptions import ErrorKind, UpstreamError


class OpenAIClientAdapter(BaseGenerationClient):
    """Streaming generation adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: float,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    async def open_stream(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        prompt: str,
        image_data_url: str,
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    }
                ],
            )
        except (openai.APIError, httpx.HTTPError) as exc:
            raise _wrap(exc) from exc
        return self._fragments(stream)

    @staticmethod
    async def _fragments(stream: Any) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except (openai.APIError, httpx.HTTPError) as exc:
            raise _wrap(exc) from exc
        finally:
            await stream.close()


def _wrap(exc: Exception) -> UpstreamError:
    if isinstance(exc, openai.APITimeoutError | httpx.TimeoutException):
        return UpstreamError(f"AI provider timeout: {exc}", kind=ErrorKind.TIMEOUT)
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return UpstreamError(f"AI provider rejected the API key: {exc}", kind=ErrorKind.CONFIGURATION)
    if isinstance(exc, openai.RateLimitError):
        return UpstreamError(f"AI provider quota exceeded: {exc}", kind=ErrorKind.QUOTA)
    if isinstance(exc, openai.APIConnectionError | httpx.TransportError):
        return UpstreamError(f"AI provider network error: {exc}", kind=ErrorKind.NETWORK)
    # Left unclassified; the relay matches on the provider message.
    return UpstreamError(f"AI provider API error: {exc}")
