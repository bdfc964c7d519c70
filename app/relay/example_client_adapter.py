"""Example generation client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseGenerationClient and register the provider in
GenerationClientFactory.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import ClassVar

from app.relay.client_base import BaseGenerationClient


class ExampleClientAdapter(BaseGenerationClient):
    """Example adapter that streams a fixed transcription.

    No network calls. Useful for local development, tests, and as a template
    for building real provider adapters. The canned text deliberately carries
    the hazards the normalizer repairs: list markers, a fenced block,
    bracketed formulas and a table.
    """

    DEFAULT_RESPONSE: ClassVar[str] = (
        "# Invoice\n"
        "1. Copy writing for the **landing** page\n"
        "```text\n"
        "Energy is \\(E = mc^2\\) per unit.\n"
        "```\n"
        "\\[\\int_0^1 x\\,dx = \\tfrac{1}{2}\\]\n"
        "| DESCRIPTION | RATE | HOURS | AMOUNT |\n"
        "|-------------|------|-------|--------|\n"
        "| Copy Writing | $50/hr | 4 | $200.00 |\n"
        "| Website Design | $50/hr | 2 | $100.00 |\n"
        "Total due in *thirty* days.\n"
    )

    def __init__(self, chunk_size: int = 24, delay_seconds: float = 0.0) -> None:
        self._chunk_size = chunk_size
        self._delay_seconds = delay_seconds

    async def open_stream(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        prompt: str,
        image_data_url: str,
    ) -> AsyncIterator[str]:
        _ = model, temperature, max_tokens, prompt, image_data_url
        return self._fragments()

    async def _fragments(self) -> AsyncIterator[str]:
        text = self.DEFAULT_RESPONSE
        for start in range(0, len(text), self._chunk_size):
            if self._delay_seconds:
                await asyncio.sleep(self._delay_seconds)
            yield text[start : start + self._chunk_size]
