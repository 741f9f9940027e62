"""API request/response schemas."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from mediarelay.domain.dto import Disposition

SUCCESS_CODE = 1000


class RelayCreateRequest(BaseModel):
    source_url: str
    key: Optional[str] = Field(
        default=None,
        description="Destination key. When omitted one is generated under key_prefix.",
    )
    key_prefix: str = "uploads/relayed"
    content_type: Optional[str] = None
    disposition: Disposition = Disposition.INLINE
    max_attempts: Optional[int] = None
    bucket: Optional[str] = None


class UploadData(BaseModel):
    url: str
    key: str


class RelayData(BaseModel):
    url: str
    key: str
    bucket: str
    size_bytes: int
    filename: str


class ApiResponse(BaseModel):
    code: int = SUCCESS_CODE
    message: str = "success"
    data: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str
    service: str
