"""Single-attempt webhook delivery over httpx.

One call to :meth:`WebhookTransport.deliver` performs exactly one HTTP request.
Retry and pacing policy belong to the caller (the upload queue).
"""
from __future__ import annotations

import json
import re
from typing import Any, Protocol, Sequence, runtime_checkable

import httpx

from cfgrelay.domain.exceptions import DeliveryFailed, WebhookNotConfigured
from cfgrelay.domain.jobs import FileRef
from cfgrelay.logging import get_logger

log = get_logger("webhook")

_WEBHOOK_TOKEN_RE = re.compile(r"(https?://[^/\s]+/api/webhooks/\d+/)([\w-]+)")

# Error bodies are kept for diagnostics, not stored whole.
_MAX_ERROR_BODY = 500


def sanitize_webhook_for_logging(url: str) -> str:
    """Hide the token part of a webhook URL."""
    if not url:
        return ""
    match = _WEBHOOK_TOKEN_RE.match(url)
    if match:
        return f"{match.group(1)}[REDACTED]"
    return "[REDACTED_WEBHOOK_URL]"


def sanitize_token_from_text(text: str, url: str) -> str:
    """Remove every occurrence of the webhook token (and full URL) from *text*."""
    if not text or not url:
        return text
    text = text.replace(url, sanitize_webhook_for_logging(url))
    match = _WEBHOOK_TOKEN_RE.match(url)
    if match:
        text = text.replace(match.group(2), "[REDACTED]")
    return text


@runtime_checkable
class Transport(Protocol):
    """What the upload queue needs from a delivery backend."""

    async def deliver(
        self,
        content: str,
        *,
        file: FileRef | None = None,
        embeds: Sequence[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        ...


class WebhookTransport:
    """Posts one message (JSON) or one message plus file (multipart) to a webhook."""

    def __init__(
        self,
        url: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._url = (url or "").strip()
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=timeout) if timeout else httpx.AsyncClient()
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._url)

    @property
    def display_url(self) -> str:
        return sanitize_webhook_for_logging(self._url)

    async def deliver(
        self,
        content: str,
        *,
        file: FileRef | None = None,
        embeds: Sequence[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Send once and return the parsed response body.

        Raises:
            WebhookNotConfigured: no URL was supplied; nothing is sent.
            DeliveryFailed: non-2xx status, or no response at all.
        """
        if not self._url:
            raise WebhookNotConfigured()

        try:
            if file is not None:
                response = await self._client.post(
                    self._url,
                    data={"content": content},
                    files={"file": (file.name, file.data, file.content_type)},
                )
            else:
                payload: dict[str, Any] = {"content": content}
                if embeds:
                    payload["embeds"] = list(embeds)
                response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            reason = sanitize_token_from_text(str(exc) or type(exc).__name__, self._url)
            raise DeliveryFailed(None, reason) from exc

        if not response.is_success:
            body = sanitize_token_from_text(response.text[:_MAX_ERROR_BODY], self._url)
            raise DeliveryFailed(response.status_code, body)

        log.debug("Delivered to %s (%s)", self.display_url, response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError:
            return {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
