from typing import ClassVar

from app.config.settings import Settings
from app.normalization.normalizer import IncrementalNormalizer
from app.relay.client_base import BaseGenerationClient
from app.relay.example_client_adapter import ExampleClientAdapter
from app.relay.exceptions import ErrorKind, RelayError
from app.relay.models import RelayLimits
from app.relay.openai_client_adapter import OpenAIClientAdapter
from app.relay.relay import StreamRelay


class GenerationClientFactory:
    """Creates the configured generation client and the relay around it."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "ollama": "http://localhost:11434/v1",
    }

    # Local servers accept any key.
    KEYLESS_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama"})

    @classmethod
    def create(cls, settings: Settings) -> StreamRelay:
        """Create a configured relay from application settings."""
        provider = settings.generation_provider.lower()
        return StreamRelay(
            client=cls.create_client(settings),
            model=cls._resolve_model_name(provider, settings),
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
            limits=RelayLimits.from_settings(settings),
            normalizer=IncrementalNormalizer(),
        )

    @classmethod
    def create_client(cls, settings: Settings) -> BaseGenerationClient:
        provider = settings.generation_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        base_url = cls._resolve_base_url(provider, settings)
        api_key = cls._resolve_api_key(provider, settings)
        if not api_key:
            if provider not in cls.KEYLESS_PROVIDERS:
                raise RelayError(
                    f"API_KEY missing: generation_{provider}_api_key is not set",
                    kind=ErrorKind.CONFIGURATION,
                )
            api_key = provider
        return OpenAIClientAdapter(
            api_key=api_key,
            timeout_seconds=settings.request_timeout_seconds,
            base_url=base_url,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.generation_openai_compatible_base_url.strip()
            if not url:
                raise RelayError(
                    "generation_openai_compatible_base_url is required for "
                    "generation_provider=openai_compatible",
                    kind=ErrorKind.CONFIGURATION,
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise RelayError(
            f"Unknown generation provider '{provider}'. Choose from: {supported}",
            kind=ErrorKind.CONFIGURATION,
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.generation_openai_api_key,
            "openai_compatible": settings.generation_openai_compatible_api_key,
            "openrouter": settings.generation_openrouter_api_key,
            "ollama": settings.generation_ollama_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        if provider == "example":
            return "example"
        key_map = {
            "openai": settings.generation_openai_model_name,
            "openai_compatible": settings.generation_openai_compatible_model_name,
            "openrouter": settings.generation_openrouter_model_name,
            "ollama": settings.generation_ollama_model_name,
        }
        return key_map.get(provider, "") or ""
