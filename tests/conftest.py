"""Shared test fixtures.

Outbound HTTP never leaves the process: every httpx client the app builds is
handed ``FakeUpstream.transport``, an ``httpx.MockTransport`` that plays both
the Discord webhook and the Storage Service and records what it receives.

Fixtures:
  upstream      the fake webhook and storage, with knobs for failure modes.
  make_settings Settings factory isolated from the developer's .env.
  make_client   TestClient factory for a given Settings.
  client        TestClient with the default test settings.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

WEBHOOK_URL = "https://discord.com/api/webhooks/123456789/SuperSecretToken"
STORAGE_URL = "http://storage.test"


def parse_multipart(request: httpx.Request) -> dict[str, tuple[str | None, bytes]]:
    """Return ``{field: (filename, body)}`` for a multipart request."""
    boundary = request.headers["content-type"].split("boundary=")[1].encode()
    fields: dict[str, tuple[str | None, bytes]] = {}
    for part in request.content.split(b"--" + boundary):
        if not part.strip() or part.startswith(b"--"):
            continue
        head, _, body = part.partition(b"\r\n\r\n")
        if body.endswith(b"\r\n"):
            body = body[:-2]
        name = re.search(rb'name="([^"]+)"', head).group(1).decode()
        filename = re.search(rb'filename="([^"]+)"', head)
        fields[name] = (filename.group(1).decode() if filename else None, body)
    return fields


@dataclass
class WebhookCall:
    kind: str
    content: str
    file: tuple[str, bytes] | None = None
    embeds: list[dict[str, Any]] | None = None


@dataclass
class FakeUpstream:
    webhook_status: int = 204
    webhook_body: str = ""
    storage_up: bool = True
    health_status: int = 200
    store_status: int = 200
    # plain-text replies in place of the JSON ones
    health_text: str | None = None
    store_text: str | None = None
    config_id: str = "1700000000000"
    configs: dict[str, dict[str, Any]] = field(default_factory=dict)
    webhook_calls: list[WebhookCall] = field(default_factory=list)
    storage_calls: list[tuple[str, str]] = field(default_factory=list)
    stored_forms: list[dict[str, tuple[str | None, bytes]]] = field(default_factory=list)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def store_calls(self) -> list[tuple[str, str]]:
        return [c for c in self.storage_calls if c[1] == "/api/store-config"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == WEBHOOK_URL:
            return self._webhook(request)
        if str(request.url).startswith(STORAGE_URL):
            return self._storage(request)
        return httpx.Response(404, json={"error": f"unexpected {request.url}"})

    def _webhook(self, request: httpx.Request) -> httpx.Response:
        if request.headers["content-type"].startswith("multipart/form-data"):
            fields = parse_multipart(request)
            filename, data = fields["file"]
            self.webhook_calls.append(WebhookCall(
                kind="multipart",
                content=fields["content"][1].decode(),
                file=(filename, data),
            ))
        else:
            payload = json.loads(request.content)
            self.webhook_calls.append(WebhookCall(
                kind="json", content=payload["content"], embeds=payload.get("embeds"),
            ))
        return httpx.Response(self.webhook_status, text=self.webhook_body)

    def _storage(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.storage_calls.append((request.method, path))
        if not self.storage_up:
            raise httpx.ConnectError("Connection refused", request=request)

        if path == "/health":
            if self.health_text is not None:
                return httpx.Response(self.health_status, text=self.health_text)
            return httpx.Response(self.health_status, json={"status": "OK"})

        if path == "/api/store-config" and request.method == "POST":
            self.stored_forms.append(parse_multipart(request))
            if self.store_status != 200:
                return httpx.Response(self.store_status, json={"error": "disk full"})
            if self.store_text is not None:
                return httpx.Response(200, text=self.store_text)
            filename, _ = self.stored_forms[-1]["file"]
            return httpx.Response(200, json={
                "success": True,
                "configId": self.config_id,
                "filename": f"{self.config_id}_{filename}",
                "metadata": {"id": self.config_id, "originalName": filename},
            })

        if path == "/api/configs":
            configs = list(self.configs.values())
            return httpx.Response(200, json={"configs": configs, "total": len(configs)})

        match = re.fullmatch(r"/api/config/([^/]+)(/content)?", path)
        if match:
            config_id, content_only = match.groups()
            if config_id not in self.configs:
                return httpx.Response(404, json={"error": "Config not found"})
            if request.method == "DELETE":
                del self.configs[config_id]
                return httpx.Response(
                    200, json={"success": True, "message": "Config deleted successfully"},
                )
            if content_only:
                return httpx.Response(200, text="[General]\nfov=90\n")
            return httpx.Response(
                200, json={"metadata": self.configs[config_id], "content": "[General]\nfov=90\n"},
            )

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_settings():
    from cfgrelay.config import Settings

    def _make(**overrides):
        values = {
            "CLOUD_WEBHOOK": WEBHOOK_URL,
            "STORAGE_API_URL": STORAGE_URL,
            "STORAGE_HEALTH_INTERVAL_SECS": 3600.0,
            "SHUTDOWN_GRACE_SECS": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def make_client(upstream, make_settings):
    """Return a factory yielding a TestClient context for given settings overrides."""
    from fastapi.testclient import TestClient
    from cfgrelay.api.app import create_app

    def _make(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides), http_transport=upstream.transport)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    with make_client() as c:
        yield c
