"""Async client for the config Storage Service.

One method per Storage Service endpoint. Non-success responses raise
``StorageError``; transport failures surface as ``httpx.HTTPError`` so the
facade can tell "service down" from "service said no".
"""
from __future__ import annotations

from typing import Any

import httpx

from cfgrelay.domain.exceptions import StorageError
from cfgrelay.domain.jobs import FileRef, StorageMetadata


class StorageClient:
    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        health_timeout: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout
        self._health_timeout = health_timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        try:
            detail = resp.json().get("error", resp.text)
        except (ValueError, AttributeError):
            detail = resp.text
        raise StorageError(resp.status_code, str(detail)[:500])

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        """JSON body when the reply says so and parses, otherwise its text."""
        if "application/json" in resp.headers.get("content-type", ""):
            try:
                return resp.json()
            except ValueError:
                pass
        return resp.text

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._client.request(
            method, self._url(path), timeout=kwargs.pop("timeout", self._timeout), **kwargs,
        )
        self._raise_for_status(resp)
        return self._decode(resp)

    async def _request_object(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        body = await self._request_json(method, path, **kwargs)
        if not isinstance(body, dict):
            raise StorageError(502, f"Expected a JSON object from {path}, got: {str(body)[:200]}")
        return body

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        """Any 2xx counts as healthy; the body is informational only."""
        body = await self._request_json("GET", "/health", timeout=self._health_timeout)
        if isinstance(body, dict):
            return body
        return {"status": str(body).strip() or "OK"}

    # ------------------------------------------------------------------
    # Configs
    # ------------------------------------------------------------------

    async def store_config(self, file: FileRef, metadata: StorageMetadata) -> dict[str, Any]:
        return await self._request_object(
            "POST",
            "/api/store-config",
            data=metadata.form_fields(),
            files={"file": (file.name, file.data, file.content_type)},
        )

    async def get_config(self, config_id: str) -> dict[str, Any]:
        return await self._request_object("GET", f"/api/config/{config_id}")

    async def get_config_content(self, config_id: str) -> str:
        resp = await self._client.get(
            self._url(f"/api/config/{config_id}/content"), timeout=self._timeout,
        )
        self._raise_for_status(resp)
        return resp.text

    async def list_configs(self) -> dict[str, Any]:
        return await self._request_object("GET", "/api/configs")

    async def delete_config(self, config_id: str) -> dict[str, Any]:
        return await self._request_object("DELETE", f"/api/config/{config_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
