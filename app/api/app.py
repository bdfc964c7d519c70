from fastapi import FastAPI

from app.annotation.annotator import QualityAnnotator
from app.annotation.models import ConfidenceThresholds
from app.api.errors import register_error_handlers
from app.api.routes import router
from app.config.settings import Settings
from app.logging.logger import Log
from app.normalization.normalizer import IncrementalNormalizer
from app.relay.exceptions import RelayError
from app.relay.factory import GenerationClientFactory
from app.relay.models import RelayLimits
from app.relay.relay import StreamRelay


def create_app(settings: Settings | None = None, relay: StreamRelay | None = None) -> FastAPI:
    """Build the HTTP app; a relay that cannot be configured answers 503."""
    settings = settings or Settings()
    app = FastAPI(title="Transcription relay")
    app.state.settings = settings
    app.state.normalizer = IncrementalNormalizer()
    app.state.annotator = QualityAnnotator(ConfidenceThresholds.from_settings(settings))
    app.state.relay_error = None
    if relay is None:
        try:
            relay = GenerationClientFactory.create(settings)
        except RelayError as exc:
            Log.error(f"Generation provider is not usable: {exc}")
            app.state.relay_error = exc
    app.state.relay = relay
    app.state.limits = relay.limits if relay is not None else RelayLimits.from_settings(settings)
    register_error_handlers(app, settings)
    app.include_router(router)
    return app
