"""Integration tests for the recognize HTTP endpoints."""

import json
from collections.abc import Callable

from fastapi.testclient import TestClient

from app.api.app import create_app
from app.config.settings import Settings
from app.relay.example_client_adapter import ExampleClientAdapter
from app.relay.models import RelayLimits
from app.relay.relay import StreamRelay


def _frames(body: str) -> list[tuple[str, dict[str, object]]]:
    frames: list[tuple[str, dict[str, object]]] = []
    for block in body.strip().split("\n\n"):
        event = "message"
        data = ""
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line.removeprefix("event: ")
            elif line.startswith("data: "):
                data = line.removeprefix("data: ")
        frames.append((event, json.loads(data)))
    return frames


class TestRecognizeStream:
    def test_streams_fragments_then_quality_then_done(
        self, api_client: TestClient, png_base64: str
    ) -> None:
        response = api_client.post(
            "/api/recognize", json={"imageData": png_base64, "mimeType": "image/png"}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"].startswith("no-cache")

        frames = _frames(response.text)
        assert frames[-1] == ("done", {})
        assert frames[-2] == ("message", {"text": "", "quality": 1.0})
        text = "".join(str(data["text"]) for _, data in frames[:-2])
        assert text == ExampleClientAdapter.DEFAULT_RESPONSE

    def test_quality_frame_can_be_disabled(
        self, dev_settings: Settings, make_relay: Callable[..., StreamRelay], png_base64: str
    ) -> None:
        relay = make_relay(RelayLimits(emit_quality=False))
        with TestClient(create_app(dev_settings, relay=relay)) as client:
            response = client.post(
                "/api/recognize", json={"imageData": png_base64, "mimeType": "image/png"}
            )
        frames = _frames(response.text)
        assert frames[-1] == ("done", {})
        assert all("quality" not in data for _, data in frames)

    def test_accepts_data_url(self, api_client: TestClient, png_base64: str) -> None:
        response = api_client.post(
            "/api/recognize",
            json={"imageData": f"data:image/png;base64,{png_base64}", "mimeType": "image/png"},
        )
        assert response.status_code == 200


class TestRecognizeErrors:
    def test_get_is_method_not_allowed(self, api_client: TestClient) -> None:
        response = api_client.get("/api/recognize")
        assert response.status_code == 405
        assert response.json()["error"]["code"] == "method_not_allowed"
        assert response.json()["error"]["details"] == "Got GET"

    def test_invalid_json(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/recognize",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_request"
        assert "details" in error

    def test_production_hides_details(self, make_relay: Callable[..., StreamRelay]) -> None:
        settings = Settings(_env_file=None, app_env="production", generation_provider="example")
        app = create_app(settings, relay=make_relay())
        with TestClient(app) as client:
            response = client.post("/api/recognize", content=b"[]")
        assert response.status_code == 400
        assert "details" not in response.json()["error"]

    def test_missing_fields(self, api_client: TestClient) -> None:
        response = api_client.post("/api/recognize", json={"mimeType": "image/png"})
        assert response.status_code == 400

    def test_unsupported_mime_type(self, api_client: TestClient, png_base64: str) -> None:
        response = api_client.post(
            "/api/recognize", json={"imageData": png_base64, "mimeType": "application/pdf"}
        )
        assert response.status_code == 415
        assert response.json()["error"]["code"] == "unsupported_media_type"

    def test_payload_too_large(
        self, dev_settings: Settings, make_relay: Callable[..., StreamRelay], png_base64: str
    ) -> None:
        relay = make_relay(RelayLimits(max_payload_bytes=32))
        with TestClient(create_app(dev_settings, relay=relay)) as client:
            response = client.post(
                "/api/recognize", json={"imageData": png_base64, "mimeType": "image/png"}
            )
        assert response.status_code == 413
        assert response.json()["error"]["code"] == "payload_too_large"

    def test_missing_api_key_is_service_unavailable(self, png_base64: str) -> None:
        settings = Settings(_env_file=None, generation_provider="openai")
        with TestClient(create_app(settings)) as client:
            health = client.get("/api/health")
            response = client.post(
                "/api/recognize", json={"imageData": png_base64, "mimeType": "image/png"}
            )
        assert health.json() == {"status": "ok", "configured": False}
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "configuration_error"


class TestRecognizeSync:
    def test_returns_annotated_document(self, api_client: TestClient, png_base64: str) -> None:
        response = api_client.post(
            "/api/recognize/sync",
            json={"imageData": png_base64, "mimeType": "image/png", "domain": "printed"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["quality"] == 1.0
        assert body["needsReview"] is False
        assert "```" not in body["text"]
        kinds = {(a["kind"], a["text"]) for a in body["annotations"]}
        assert ("uncertain", "landing") in kinds
        assert ("corrected", "thirty") in kinds
        for annotation in body["annotations"]:
            assert body["text"][annotation["start"] : annotation["end"]] == annotation["text"]

    def test_health(self, api_client: TestClient) -> None:
        assert api_client.get("/api/health").json() == {"status": "ok", "configured": True}
