import base64

import pytest

from app.annotation.annotator import QualityAnnotator
from app.annotation.models import ConfidenceThresholds
from app.config.settings import Settings
from app.normalization.normalizer import IncrementalNormalizer


@pytest.fixture()
def normalizer() -> IncrementalNormalizer:
    return IncrementalNormalizer()


@pytest.fixture()
def annotator() -> QualityAnnotator:
    return QualityAnnotator(ConfidenceThresholds())


@pytest.fixture()
def dev_settings() -> Settings:
    return Settings(_env_file=None, app_env="dev", generation_provider="example")


@pytest.fixture()
def png_base64() -> str:
    """A tiny payload that is valid base64; the relay never decodes the image."""
    return base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image-bytes").decode("ascii")

