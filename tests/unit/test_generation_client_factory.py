"""Tests for GenerationClientFactory provider selection."""

from unittest.mock import patch

import pytest

from app.config.settings import Settings
from app.relay.example_client_adapter import ExampleClientAdapter
from app.relay.exceptions import ErrorKind, RelayError
from app.relay.factory import GenerationClientFactory
from app.relay.openai_client_adapter import OpenAIClientAdapter
from app.relay.relay import StreamRelay


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestCreateClient:
    def test_example_provider(self) -> None:
        client = GenerationClientFactory.create_client(_settings(generation_provider="example"))
        assert isinstance(client, ExampleClientAdapter)

    def test_openai_without_key_is_configuration_error(self) -> None:
        with pytest.raises(RelayError, match="API_KEY missing") as exc_info:
            GenerationClientFactory.create_client(_settings(generation_provider="openai"))
        assert exc_info.value.kind is ErrorKind.CONFIGURATION

    def test_openai_uses_default_base_url(self) -> None:
        settings = _settings(
            generation_provider="openai",
            generation_openai_api_key="sk-test",
            request_timeout_seconds=12,
        )
        with patch("app.relay.factory.OpenAIClientAdapter") as mock_adapter:
            GenerationClientFactory.create_client(settings)
        mock_adapter.assert_called_once_with(
            api_key="sk-test", timeout_seconds=12, base_url=None
        )

    def test_provider_name_is_case_insensitive(self) -> None:
        settings = _settings(generation_provider="OpenAI", generation_openai_api_key="k")
        with patch("app.relay.factory.OpenAIClientAdapter") as mock_adapter:
            client = GenerationClientFactory.create_client(settings)
        assert client is mock_adapter.return_value

    def test_openrouter_base_url(self) -> None:
        settings = _settings(
            generation_provider="openrouter", generation_openrouter_api_key="k"
        )
        with patch("app.relay.factory.OpenAIClientAdapter") as mock_adapter:
            GenerationClientFactory.create_client(settings)
        assert mock_adapter.call_args.kwargs["base_url"] == "https://openrouter.ai/api/v1"

    def test_ollama_needs_no_key(self) -> None:
        settings = _settings(generation_provider="ollama")
        with patch("app.relay.factory.OpenAIClientAdapter") as mock_adapter:
            GenerationClientFactory.create_client(settings)
        kwargs = mock_adapter.call_args.kwargs
        assert kwargs["api_key"] == "ollama"
        assert kwargs["base_url"] == "http://localhost:11434/v1"

    def test_openai_compatible_requires_base_url(self) -> None:
        settings = _settings(
            generation_provider="openai_compatible",
            generation_openai_compatible_api_key="k",
        )
        with pytest.raises(RelayError, match="base_url is required"):
            GenerationClientFactory.create_client(settings)

    def test_openai_compatible_with_base_url(self) -> None:
        settings = _settings(
            generation_provider="openai_compatible",
            generation_openai_compatible_api_key="k",
            generation_openai_compatible_base_url=" https://llm.internal/v1 ",
        )
        client = GenerationClientFactory.create_client(settings)
        assert isinstance(client, OpenAIClientAdapter)

    def test_unknown_provider(self) -> None:
        with pytest.raises(RelayError, match="Unknown generation provider") as exc_info:
            GenerationClientFactory.create_client(_settings(generation_provider="mystery"))
        assert exc_info.value.kind is ErrorKind.CONFIGURATION


class TestCreateRelay:
    def test_relay_uses_settings(self) -> None:
        settings = _settings(
            generation_provider="example",
            read_timeout_seconds=7,
            max_payload_bytes=1024,
            emit_quality=False,
        )
        relay = GenerationClientFactory.create(settings)
        assert isinstance(relay, StreamRelay)
        assert relay.model == "example"
        assert relay.limits.read_timeout_seconds == 7
        assert relay.limits.max_payload_bytes == 1024
        assert relay.limits.emit_quality is False

    def test_relay_model_from_provider(self) -> None:
        settings = _settings(
            generation_provider="openrouter",
            generation_openrouter_api_key="k",
            generation_openrouter_model_name="vendor/vision",
        )
        with patch("app.relay.factory.OpenAIClientAdapter"):
            relay = GenerationClientFactory.create(settings)
        assert relay.model == "vendor/vision"
