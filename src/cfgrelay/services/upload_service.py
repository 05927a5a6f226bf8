"""Upload admission: the boundary where requests become queued jobs.

Configuration and validation errors surface here, synchronously. Storage
problems are logged and fall through to Discord-only delivery, unless the
service is configured to require storage.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from cfgrelay.config import Settings
from cfgrelay.domain.exceptions import StorageUnavailable, WebhookNotConfigured
from cfgrelay.domain.jobs import FileRef, StorageMetadata, config_stem
from cfgrelay.logging import get_logger
from cfgrelay.services.storage_facade import Failed, StorageFacade, Stored, Unavailable
from cfgrelay.services.upload_queue import UploadQueue
from cfgrelay.services.validation import UploadLimits, validate_upload

log = get_logger("upload")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class QueueReceipt:
    message: str
    queue_time: datetime
    job_id: str
    config_id: str | None = None
    success: bool = True


class UploadService:
    def __init__(
        self,
        settings: Settings,
        queue: UploadQueue,
        storage: StorageFacade | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._queue = queue
        self._storage = storage
        self._clock = clock
        self._limits = UploadLimits.from_settings(settings)

    async def admit(
        self,
        *,
        file: FileRef | None,
        content: str | None,
        embeds: str | None,
        metadata: StorageMetadata | None = None,
    ) -> QueueReceipt:
        if not self._settings.webhook_url:
            raise WebhookNotConfigured()

        job = validate_upload(
            file=file,
            content=content,
            embeds=embeds,
            destination=self._settings.CONFIGS_CHANNEL_ID,
            limits=self._limits,
        )

        config_id: str | None = None
        if job.has_file and self._storage is not None:
            config_id = await self._store(job.file, metadata or self._default_metadata(job.file, job.embed))
            if config_id:
                job = dataclasses.replace(job, correlation_id=config_id)

        self._queue.enqueue(job)
        return QueueReceipt(
            message="Config queued for upload",
            queue_time=self._clock(),
            job_id=job.job_id,
            config_id=config_id,
        )

    async def _store(self, file: FileRef, metadata: StorageMetadata) -> str | None:
        result = await self._storage.try_store(file, metadata)
        if isinstance(result, Stored):
            log.info("Stored %s as config %s", file.name, result.config_id)
            return result.config_id
        if isinstance(result, Unavailable):
            log.info("Storage unavailable; relaying %s to Discord only", file.name)
        elif isinstance(result, Failed):
            log.warning("Storing %s failed (%s); relaying to Discord only", file.name, result.reason)
        if self._settings.STORAGE_REQUIRED:
            raise StorageUnavailable()
        return None

    def _default_metadata(self, file: FileRef, embed: dict | None) -> StorageMetadata:
        name = config_stem(file.name, self._limits.allowed_extension)
        description = ""
        if embed and embed.get("description"):
            description = str(embed["description"])
        return StorageMetadata(name=name, description=description)
