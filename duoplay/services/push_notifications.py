from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from duoplay.core.config import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "to": self.token,
            "title": self.title,
            "body": self.body,
            "data": dict(self.data),
            "sound": "default",
        }


class PushNotifier(Protocol):
    async def send(self, messages: list[PushMessage]) -> bool: ...


async def post_json(
    *,
    client: httpx.AsyncClient,
    url: str,
    body: Any,
    event: str,
) -> bool:
    try:
        response = await client.post(url, json=body)
        response.raise_for_status()
        return True
    except Exception:
        logger.exception("push_delivery_failed", push_event=event, url=url)
        return False


class ExpoPushNotifier:
    """Fire-and-forget client for the Expo push API. Failures are only logged."""

    def __init__(
        self,
        *,
        url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url or settings.expo_push_url
        self._timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.push_timeout_seconds
        )
        self._transport = transport

    async def send(self, messages: list[PushMessage]) -> bool:
        payload = [message.to_payload() for message in messages if message.token]
        if not payload:
            return True
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as client:
            delivered = await post_json(
                client=client,
                url=self._url,
                body=payload,
                event="session_push",
            )
        if delivered:
            logger.info("push_delivered", messages=len(payload))
        return delivered


class NullPushNotifier:
    async def send(self, messages: list[PushMessage]) -> bool:
        return True
