from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.app import create_app
from app.config.settings import Settings
from app.relay.example_client_adapter import ExampleClientAdapter
from app.relay.models import RelayLimits
from app.relay.relay import StreamRelay

RelayBuilder = Callable[..., StreamRelay]


@pytest.fixture()
def make_relay() -> RelayBuilder:
    """Relay around the offline example adapter with an inline prompt."""

    def build(limits: RelayLimits | None = None, chunk_size: int = 16) -> StreamRelay:
        return StreamRelay(
            client=ExampleClientAdapter(chunk_size=chunk_size),
            model="example",
            limits=limits,
            prompt_template="Transcribe the image. {domain_hint}",
        )

    return build


@pytest.fixture()
def relay_app(dev_settings: Settings, make_relay: RelayBuilder) -> FastAPI:
    return create_app(dev_settings, relay=make_relay())


@pytest.fixture()
def api_client(relay_app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(relay_app) as client:
        yield client
