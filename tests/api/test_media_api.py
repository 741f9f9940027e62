from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import HTTPException, UploadFile
from fastapi.testclient import TestClient

from mediarelay.config import AppSettings, AuthSettings, RelaySettings, get_settings
from mediarelay.domain import RelayFailure, RelayFailureKind, RelayResult
from mediarelay.main import app, get_relay_store, upload_image


class FakeRelayStore:
    def __init__(self, failure: RelayFailure | None = None):
        self.failure = failure
        self.relayed = []
        self.stored = []

    async def relay(self, request):
        self.relayed.append(request)
        if self.failure:
            raise self.failure
        return RelayResult(
            resolved_url=f"https://media.test/{request.destination_key}",
            bucket=request.bucket or "media",
            key=request.destination_key,
            size_bytes=1024,
        )

    async def store_bytes(self, body, key, *, content_type=None, disposition=None, bucket=None, on_progress=None):
        self.stored.append({"body": body, "key": key, "content_type": content_type})
        if self.failure:
            raise self.failure
        return RelayResult(resolved_url=f"https://media.test/{key}", bucket="media", key=key, size_bytes=len(body))


@pytest.fixture
def relay_store() -> FakeRelayStore:
    return FakeRelayStore()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(auth=AuthSettings(api_tokens=""), relay=RelaySettings(max_attempts=4))


@pytest.fixture
def client(relay_store: FakeRelayStore, settings: AppSettings):
    app.dependency_overrides[get_relay_store] = lambda: relay_store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "mediarelay"}


def test_upload_image_stores_under_dated_key(client: TestClient, relay_store: FakeRelayStore):
    response = client.post("/upload/image", files={"image": ("cat.png", b"\x89PNG-bytes", "image/png")})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["code"] == 1000
    assert body["message"] == "success"
    key = body["data"]["key"]
    assert key.startswith("uploads/images/") and key.endswith(".png")
    assert body["data"]["url"] == f"https://media.test/{key}"
    assert relay_store.stored[0]["body"] == b"\x89PNG-bytes"
    assert relay_store.stored[0]["content_type"] == "image/png"


def test_upload_image_rejects_unsupported_type(client: TestClient, relay_store: FakeRelayStore):
    response = client.post("/upload/image", files={"image": ("doc.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 400
    assert relay_store.stored == []


def test_upload_image_rejects_oversized_file(client: TestClient, relay_store: FakeRelayStore):
    big = b"0" * (10 * 1024 * 1024 + 1)

    response = client.post("/upload/image", files={"image": ("big.png", big, "image/png")})

    assert response.status_code == 400
    assert "10MB" in response.json()["detail"]
    assert relay_store.stored == []


def test_upload_image_checks_declared_size_before_reading(relay_store: FakeRelayStore):
    image = Mock(spec=UploadFile)
    image.filename = "huge.png"
    image.content_type = "image/png"
    image.size = 10 * 1024 * 1024 + 1
    image.read = AsyncMock(return_value=b"")

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(upload_image(image=image, user=None, relay_store=relay_store))

    assert excinfo.value.status_code == 400
    assert "10MB" in excinfo.value.detail
    image.read.assert_not_awaited()
    assert relay_store.stored == []


def test_upload_store_rejection_returns_generic_error(client: TestClient, relay_store: FakeRelayStore):
    relay_store.failure = RelayFailure(RelayFailureKind.STORE_REJECTED, "AccessDenied: secret detail", 0)

    response = client.post("/upload/image", files={"image": ("cat.png", b"png", "image/png")})

    assert response.status_code == 500
    assert response.json()["detail"] == {"message": "Upload failed", "kind": "StoreRejected"}
    assert "secret detail" not in response.text


def test_relay_uses_given_key_and_configured_attempts(client: TestClient, relay_store: FakeRelayStore):
    response = client.post(
        "/media/relay",
        json={"source_url": "https://example/ok.png", "key": "a/b/1.png", "disposition": "attachment"},
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data == {
        "url": "https://media.test/a/b/1.png",
        "key": "a/b/1.png",
        "bucket": "media",
        "size_bytes": 1024,
        "filename": "1.png",
    }
    request = relay_store.relayed[0]
    assert request.max_attempts == 4
    assert request.disposition.value == "attachment"


def test_relay_generates_key_from_prefix(client: TestClient, relay_store: FakeRelayStore):
    response = client.post(
        "/media/relay",
        json={"source_url": "https://example/v.mp4", "key_prefix": "generated/videos", "content_type": "video/mp4"},
    )

    assert response.status_code == 200, response.text
    key = relay_store.relayed[0].destination_key
    assert key.startswith("generated/videos/") and key.endswith(".mp4")


def test_relay_rejects_relative_url(client: TestClient, relay_store: FakeRelayStore):
    response = client.post("/media/relay", json={"source_url": "/local/file.png", "key": "a.png"})

    assert response.status_code == 400
    assert relay_store.relayed == []


def test_relay_rejects_explicit_empty_key(client: TestClient, relay_store: FakeRelayStore):
    response = client.post("/media/relay", json={"source_url": "https://example/ok.png", "key": ""})

    assert response.status_code == 400
    assert "destination_key" in response.json()["detail"]
    assert relay_store.relayed == []


def test_relay_store_rejection_reports_kind(client: TestClient, relay_store: FakeRelayStore):
    relay_store.failure = RelayFailure(RelayFailureKind.STORE_REJECTED, "ValueError: Invalid endpoint: x", 1)

    response = client.post("/media/relay", json={"source_url": "https://example/ok.png", "key": "a.png"})

    assert response.status_code == 500
    assert response.json()["detail"]["kind"] == "StoreRejected"
    assert "Invalid endpoint" not in response.text


def test_relay_exhausted_maps_to_bad_gateway(client: TestClient, relay_store: FakeRelayStore):
    relay_store.failure = RelayFailure(RelayFailureKind.ALL_ATTEMPTS_EXHAUSTED, "HTTP error! status: 503", 3)

    response = client.post("/media/relay", json={"source_url": "https://example/ok.png", "key": "a.png"})

    assert response.status_code == 502
    assert response.json()["detail"] == {
        "message": "Failed to download source after retries",
        "kind": "AllAttemptsExhausted",
    }


def test_gate_requires_token_when_configured(client: TestClient, settings: AppSettings):
    settings.auth.api_tokens = "alpha,beta"
    payload = {"source_url": "https://example/ok.png", "key": "a.png"}

    assert client.post("/media/relay", json=payload).status_code == 401
    assert client.post("/media/relay", json=payload, headers={"Authorization": "Bearer mallory"}).status_code == 403
    assert client.post("/media/relay", json=payload, headers={"Authorization": "Bearer beta"}).status_code == 200
