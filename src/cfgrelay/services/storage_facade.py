"""Best-effort persistence in front of the Storage Service.

``try_store`` never raises: the caller gets a ``StoreResult`` and decides
what to do with it. A cached availability flag, refreshed by a periodic
health probe and by request outcomes, lets known-down periods skip the
network entirely. The flag is advisory, so last write wins.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

import httpx

from cfgrelay.domain.exceptions import StorageError, StorageUnavailable
from cfgrelay.domain.jobs import FileRef, StorageMetadata
from cfgrelay.infra.storage.client import StorageClient
from cfgrelay.logging import get_logger

log = get_logger("storage")


@dataclass(frozen=True, slots=True)
class Stored:
    config_id: str


@dataclass(frozen=True, slots=True)
class Unavailable:
    pass


@dataclass(frozen=True, slots=True)
class Failed:
    reason: str


StoreResult = Union[Stored, Unavailable, Failed]


class StorageFacade:
    def __init__(self, client: StorageClient, *, probe_interval: float = 30.0) -> None:
        self._client = client
        self._probe_interval = probe_interval
        self._available = False
        self._last_check: datetime | None = None
        self._probe_task: asyncio.Task | None = None

    @property
    def client(self) -> StorageClient:
        return self._client

    @property
    def available(self) -> bool:
        return self._available

    # ------------------------------------------------------------------
    # Health probe
    # ------------------------------------------------------------------

    async def check_health(self) -> bool:
        try:
            await self._client.health()
            self._available = True
            log.debug("Storage API is healthy")
        except StorageError as exc:
            self._available = False
            log.warning("Storage API returned non-OK status: %s", exc.status)
        except httpx.HTTPError as exc:
            self._available = False
            log.warning("Storage API health check failed: %s", exc)
        except Exception:
            self._available = False
            log.exception("Storage API health check raised unexpectedly")
        self._last_check = datetime.now(timezone.utc)
        return self._available

    async def _probe_loop(self) -> None:
        while True:
            await asyncio.sleep(self._probe_interval)
            try:
                await self.check_health()
            except Exception:
                # keep probing; the flag stays as last set
                log.exception("Storage health probe failed")

    async def start(self) -> None:
        """Probe once now, then every ``probe_interval`` seconds."""
        await self.check_health()
        if self._probe_task is None or self._probe_task.done():
            self._probe_task = asyncio.get_running_loop().create_task(
                self._probe_loop(), name="storage-health-probe",
            )

    async def stop(self) -> None:
        task, self._probe_task = self._probe_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    async def try_store(self, file: FileRef, metadata: StorageMetadata) -> StoreResult:
        if not self._available:
            return Unavailable()
        try:
            body = await self._client.store_config(file, metadata)
        except httpx.HTTPError as exc:
            self._available = False
            return Failed(f"Storage API unreachable: {exc}")
        except StorageError as exc:
            return Failed(exc.message)
        except Exception as exc:
            log.exception("Storing %s raised unexpectedly", file.name)
            return Failed(f"Unexpected storage error: {exc}")

        config_id = body.get("configId") if isinstance(body, dict) else None
        if not config_id:
            return Failed("Storage API response carried no configId")
        self._available = True
        return Stored(str(config_id))

    def require_available(self) -> None:
        if not self._available:
            raise StorageUnavailable()

    def status(self) -> dict[str, Any]:
        return {
            "available": self._available,
            "lastCheck": self._last_check.isoformat() if self._last_check else None,
            "baseUrl": self._client.base_url,
        }
