from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class BaseGenerationClient(ABC):
    """Contract for provider-specific streaming generation clients."""

    @abstractmethod
    async def open_stream(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        prompt: str,
        image_data_url: str,
    ) -> AsyncIterator[str]:
        """Start one generation call and return an iterator of text fragments.

        Returning means the call was accepted; fragments then arrive lazily.
        The iterator may expose ``aclose()`` to release the connection early.
        """
