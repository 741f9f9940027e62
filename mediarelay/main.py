"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from mediarelay.api.schemas import ApiResponse, HealthResponse, RelayCreateRequest, RelayData, UploadData
from mediarelay.config import AppSettings, get_settings
from mediarelay.domain import Disposition, RelayFailure, RelayFailureKind, RelayRequest
from mediarelay.security import require_user
from mediarelay.services.object_storage import build_object_store
from mediarelay.services.relay_store import FetchAndRelayStore
from mediarelay.services.source_fetcher import HttpxSourceFetcher
from mediarelay.utils import build_object_key, configured, validate_image_upload

logger = logging.getLogger(__name__)

app = FastAPI(title="Media Relay Service")

_FAILURE_STATUS = {
    RelayFailureKind.FETCH_FAILED: 502,
    RelayFailureKind.EMPTY_BODY: 502,
    RelayFailureKind.ALL_ATTEMPTS_EXHAUSTED: 502,
    RelayFailureKind.STORE_REJECTED: 500,
}

_FAILURE_MESSAGES = {
    RelayFailureKind.FETCH_FAILED: "Failed to download source",
    RelayFailureKind.EMPTY_BODY: "Source returned an empty body",
    RelayFailureKind.ALL_ATTEMPTS_EXHAUSTED: "Failed to download source after retries",
    RelayFailureKind.STORE_REJECTED: "Upload failed",
}


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@lru_cache(maxsize=1)
def get_relay_store() -> FetchAndRelayStore:
    settings = get_settings()
    return build_relay_store(settings)


def build_relay_store(settings: AppSettings) -> FetchAndRelayStore:
    storage = settings.storage
    if not configured(storage.bucket):
        logger.warning("STORAGE_BUCKET is not configured; uploads will be rejected unless a bucket is given")
    object_store = build_object_store(storage)
    fetcher = HttpxSourceFetcher(timeout=settings.relay.fetch_timeout_seconds)
    return FetchAndRelayStore(
        fetcher,
        object_store,
        default_bucket=configured(storage.bucket),
        public_domain=configured(storage.domain),
        base_delay=settings.relay.base_delay_seconds,
        empty_body_retryable=settings.relay.empty_body_retryable,
    )


def _failure_to_http(failure: RelayFailure) -> HTTPException:
    return HTTPException(
        status_code=_FAILURE_STATUS.get(failure.kind, 500),
        detail={
            "message": _FAILURE_MESSAGES.get(failure.kind, "Relay failed"),
            "kind": failure.kind.value,
        },
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", service="mediarelay")


@app.post("/upload/image", response_model=ApiResponse)
async def upload_image(
    image: UploadFile = File(...),
    user: Optional[str] = Depends(require_user),
    relay_store: FetchAndRelayStore = Depends(get_relay_store),
) -> ApiResponse:
    try:
        # Reject by the declared size before buffering the upload.
        if image.size is not None:
            validate_image_upload(image.content_type, image.size)
        body = await image.read()
        validate_image_upload(image.content_type, len(body))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "[Upload Image] user=%s file=%s size=%d type=%s", user, image.filename, len(body), image.content_type
    )
    key = build_object_key("uploads/images", image.content_type)
    try:
        result = await relay_store.store_bytes(
            body, key, content_type=image.content_type, disposition=Disposition.INLINE
        )
    except RelayFailure as exc:
        logger.error("[Upload Image] failed for %s: %s", key, exc)
        raise _failure_to_http(exc) from exc

    logger.info("[Upload Image] ✅ stored %s", result.resolved_url)
    return ApiResponse(data=UploadData(url=result.resolved_url, key=result.key))


@app.post("/media/relay", response_model=ApiResponse)
async def relay_media(
    request: RelayCreateRequest,
    user: Optional[str] = Depends(require_user),
    relay_store: FetchAndRelayStore = Depends(get_relay_store),
    settings: AppSettings = Depends(get_settings),
) -> ApiResponse:
    if request.key is not None:
        destination_key = request.key
    else:
        destination_key = build_object_key(request.key_prefix, request.content_type)
    try:
        relay_request = RelayRequest(
            source_url=request.source_url,
            destination_key=destination_key,
            content_type=request.content_type,
            disposition=request.disposition,
            max_attempts=request.max_attempts if request.max_attempts is not None else settings.relay.max_attempts,
            bucket=request.bucket,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info("[Relay] user=%s source=%s key=%s", user, relay_request.source_url, relay_request.destination_key)
    try:
        result = await relay_store.relay(relay_request)
    except RelayFailure as exc:
        logger.error("[Relay] %s -> %s failed: %s", relay_request.source_url, relay_request.destination_key, exc)
        raise _failure_to_http(exc) from exc

    return ApiResponse(
        data=RelayData(
            url=result.resolved_url,
            key=result.key,
            bucket=result.bucket,
            size_bytes=result.size_bytes,
            filename=result.filename,
        )
    )


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=8000)
