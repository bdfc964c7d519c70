from abc import ABC, abstractmethod


class BaseNormalizer(ABC):
    """Contract for all normalizers of the streamed raw buffer."""

    @abstractmethod
    def normalize(self, raw: str, final: bool = False) -> str:
        """Turn the whole raw buffer received so far into a renderable document.

        Args:
            raw: Concatenation of every fragment received so far.
            final: True once the stream has ended, so no construct at the end
                of ``raw`` is still waiting for its closing half.

        Returns:
            Normalized document text. Re-applying ``normalize`` to it is a no-op.
        """
