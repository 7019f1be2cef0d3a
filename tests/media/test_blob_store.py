from __future__ import annotations

from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from duoplay.media.blob_store import (
    BlobInfo,
    InMemoryBlobStore,
    S3BlobStore,
    build_blob_store,
)


class _FakeS3Client:
    def __init__(self, *, delete_error: Exception | None = None, pages=None) -> None:
        self.deleted: list[tuple[str, str]] = []
        self._delete_error = delete_error
        self._pages = pages or []

    def delete_object(self, *, Bucket: str, Key: str) -> None:
        if self._delete_error is not None:
            raise self._delete_error
        self.deleted.append((Bucket, Key))

    def get_paginator(self, name: str):
        assert name == "list_objects_v2"
        pages = self._pages

        class _Paginator:
            def paginate(self, *, Bucket: str, Prefix: str):
                for page in pages:
                    yield {
                        "Contents": [item for item in page if item["Key"].startswith(Prefix)]
                    }

        return _Paginator()


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "DeleteObject")


@pytest.mark.asyncio
async def test_s3_delete_succeeds() -> None:
    client = _FakeS3Client()
    store = S3BlobStore(bucket="media", client=client)

    assert await store.delete("sessions/ABC234/media/a.jpg") is True
    assert client.deleted == [("media", "sessions/ABC234/media/a.jpg")]


@pytest.mark.asyncio
async def test_s3_delete_treats_missing_object_as_deleted() -> None:
    store = S3BlobStore(bucket="media", client=_FakeS3Client(delete_error=_client_error("NoSuchKey")))

    assert await store.delete("sessions/ABC234/media/a.jpg") is True


@pytest.mark.asyncio
async def test_s3_delete_reports_other_failures() -> None:
    denied = S3BlobStore(bucket="media", client=_FakeS3Client(delete_error=_client_error("AccessDenied")))
    offline = S3BlobStore(
        bucket="media",
        client=_FakeS3Client(delete_error=EndpointConnectionError(endpoint_url="https://s3")),
    )

    assert await denied.delete("sessions/ABC234/media/a.jpg") is False
    assert await offline.delete("sessions/ABC234/media/a.jpg") is False


@pytest.mark.asyncio
async def test_s3_list_walks_every_page() -> None:
    client = _FakeS3Client(
        pages=[
            [{"Key": "sessions/ABC234/media/a.jpg", "Size": 10}],
            [
                {"Key": "sessions/ABC234/media/b.m4a", "Size": 20},
                {"Key": "sessions/XYZ789/media/c.jpg", "Size": 30},
            ],
        ]
    )
    store = S3BlobStore(bucket="media", client=client)

    assert await store.list("sessions/ABC234/media/") == [
        BlobInfo(path="sessions/ABC234/media/a.jpg", size=10),
        BlobInfo(path="sessions/ABC234/media/b.m4a", size=20),
    ]


@pytest.mark.asyncio
async def test_in_memory_store_lists_by_prefix() -> None:
    store = InMemoryBlobStore()
    store.put("sessions/ABC234/media/a.jpg", 5)
    store.put("sessions/XYZ789/media/b.jpg", 7)

    assert await store.list("sessions/ABC234/") == [BlobInfo(path="sessions/ABC234/media/a.jpg", size=5)]
    assert await store.delete("sessions/ABC234/media/a.jpg") is True
    assert store.paths() == ["sessions/XYZ789/media/b.jpg"]


def test_build_blob_store_selects_backend() -> None:
    dev_settings = SimpleNamespace(media_storage_backend="memory", app_env="dev")
    assert isinstance(build_blob_store(dev_settings), InMemoryBlobStore)
    with pytest.raises(ValueError):
        build_blob_store(SimpleNamespace(media_storage_backend="ftp", app_env="dev"))


def test_build_blob_store_refuses_memory_backend_outside_dev() -> None:
    with pytest.raises(ValueError, match="APP_ENV=prod"):
        build_blob_store(SimpleNamespace(media_storage_backend="memory", app_env="prod"))
    test_settings = SimpleNamespace(media_storage_backend=" Memory ", app_env="test")
    assert isinstance(build_blob_store(test_settings), InMemoryBlobStore)
