from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from duoplay.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
# Blobs held in process memory vanish with each worker job.
_MEMORY_BACKEND_ENVS = frozenset({"dev", "test"})


@dataclass(frozen=True, slots=True)
class BlobInfo:
    path: str
    size: int


class BlobStore(Protocol):
    async def delete(self, path: str) -> bool: ...

    async def list(self, prefix: str) -> list[BlobInfo]: ...


class InMemoryBlobStore:
    def __init__(self, blobs: dict[str, int] | None = None) -> None:
        self._blobs: dict[str, int] = dict(blobs or {})

    def put(self, path: str, size: int = 0) -> None:
        self._blobs[path] = size

    def paths(self) -> list[str]:
        return sorted(self._blobs)

    async def delete(self, path: str) -> bool:
        self._blobs.pop(path, None)
        return True

    async def list(self, prefix: str) -> list[BlobInfo]:
        return [
            BlobInfo(path=path, size=size)
            for path, size in sorted(self._blobs.items())
            if path.startswith(prefix)
        ]


class S3BlobStore:
    """S3-compatible bucket; boto3 calls run in a worker thread."""

    def __init__(self, *, bucket: str, client: Any) -> None:
        self._bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> S3BlobStore:
        client = boto3.client(
            "s3",
            region_name=settings.media_s3_region,
            endpoint_url=settings.media_s3_endpoint_url,
        )
        return cls(bucket=settings.media_bucket, client=client)

    def _delete_sync(self, path: str) -> bool:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=path)
            return True
        except ClientError as exc:
            error_code = str(exc.response.get("Error", {}).get("Code", ""))
            if error_code in _MISSING_OBJECT_CODES:
                logger.info("media_blob_already_deleted", path=path)
                return True
            logger.warning("media_blob_delete_failed", path=path, error_code=error_code)
            return False
        except BotoCoreError as exc:
            logger.warning("media_blob_delete_failed", path=path, error=str(exc))
            return False

    def _list_sync(self, prefix: str) -> list[BlobInfo]:
        paginator = self._client.get_paginator("list_objects_v2")
        blobs: list[BlobInfo] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                blobs.append(BlobInfo(path=str(item["Key"]), size=int(item.get("Size", 0))))
        return blobs

    async def delete(self, path: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, path)

    async def list(self, prefix: str) -> list[BlobInfo]:
        return await asyncio.to_thread(self._list_sync, prefix)


def build_blob_store(settings: Settings | None = None) -> BlobStore:
    resolved = settings or get_settings()
    backend = resolved.media_storage_backend.strip().lower()
    if backend == "s3":
        return S3BlobStore.from_settings(resolved)
    if backend == "memory":
        app_env = str(resolved.app_env).strip().lower()
        if app_env not in _MEMORY_BACKEND_ENVS:
            raise ValueError(f"memory media storage backend is not allowed in APP_ENV={app_env}")
        logger.warning("media_blob_store_memory_backend", app_env=app_env)
        return InMemoryBlobStore()
    raise ValueError(f"unknown media storage backend: {resolved.media_storage_backend}")
