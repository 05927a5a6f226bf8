"""Outbound webhook delivery."""

from cfgrelay.infra.webhook.transport import (
    Transport,
    WebhookTransport,
    sanitize_token_from_text,
    sanitize_webhook_for_logging,
)

__all__ = [
    "Transport",
    "WebhookTransport",
    "sanitize_token_from_text",
    "sanitize_webhook_for_logging",
]
