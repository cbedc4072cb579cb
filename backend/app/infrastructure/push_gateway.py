"""Expo Push Gateway: submits push batches to the Expo push HTTP API.

Invariants:
    - One POST per batch; the response carries one ticket per message, in order
    - Transport errors, timeouts, non-2xx responses and unparseable bodies
      raise UpstreamDegradedError (never an httpx exception)
    - The client timeout is bounded by settings.push_timeout_seconds
    - An empty batch makes no network call

Design Decisions:
    - httpx.AsyncClient per batch: the gateway is called from background tasks
      with no shared client lifecycle to hook into
    - transport is injectable so tests can use httpx.MockTransport
"""

import logging
from typing import Any, Sequence

import httpx

from app.core.domain_types import PushMessage, PushTicket
from app.core.errors import UpstreamDegradedError

logger = logging.getLogger(__name__)

SERVICE_NAME = "expo_push"


class ExpoPushGateway:
    """PushGateway implementation for https://exp.host/--/api/v2/push/send."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._access_token = access_token
        self._transport = transport

    async def submit(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        if not messages:
            return []
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.post(
                    self._url,
                    json=[m.to_payload() for m in messages],
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise UpstreamDegradedError(SERVICE_NAME, str(e) or type(e).__name__) from e
        if not resp.is_success:
            logger.warning(f"Expo push API returned {resp.status_code}: {resp.text[:200]}")
            raise UpstreamDegradedError(SERVICE_NAME, f"HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise UpstreamDegradedError(SERVICE_NAME, "invalid JSON response") from e
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise UpstreamDegradedError(SERVICE_NAME, "response has no ticket list")
        return [_parse_ticket(item) for item in data]


def _parse_ticket(item: Any) -> PushTicket:
    if not isinstance(item, dict):
        return PushTicket(status="error", error_reason="MalformedTicket")
    if item.get("status") == "ok":
        return PushTicket(status="ok")
    details = item.get("details") or {}
    reason = details.get("error") if isinstance(details, dict) else None
    return PushTicket(status="error", error_reason=reason or item.get("message"))
