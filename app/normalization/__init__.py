from app.normalization.base import BaseNormalizer
from app.normalization.buffer import Fragment, IncrementBuffer
from app.normalization.normalizer import IncrementalNormalizer

__all__ = ["BaseNormalizer", "Fragment", "IncrementBuffer", "IncrementalNormalizer"]
