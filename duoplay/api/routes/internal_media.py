from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from duoplay.core.config import get_settings
from duoplay.media.blob_store import BlobStore, build_blob_store
from duoplay.media.janitor import collect_storage_stats_async, manual_cleanup_async
from duoplay.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

router = APIRouter(prefix="/internal/media", tags=["internal", "media"])
logger = structlog.get_logger(__name__)


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    return build_blob_store()


class ManualCleanupRequest(BaseModel):
    session_code: str | None = Field(default=None, min_length=1, max_length=16)
    force: bool = False


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_media_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(
        request,
        expected_token=settings.internal_api_token,
    ):
        logger.warning("internal_media_auth_failed", reason="invalid_credentials", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


@router.post("/cleanup")
async def manual_cleanup(
    request: Request,
    body: ManualCleanupRequest,
    blob_store: BlobStore = Depends(get_blob_store),
) -> dict[str, Any]:
    _assert_internal_access(request)
    return await manual_cleanup_async(
        session_code=body.session_code,
        force=body.force,
        blob_store=blob_store,
    )


@router.get("/stats")
async def storage_stats(
    request: Request,
    blob_store: BlobStore = Depends(get_blob_store),
) -> dict[str, Any]:
    _assert_internal_access(request)
    return await collect_storage_stats_async(blob_store=blob_store)
