"""In-process upload queue.

Single consumer, FIFO, at-most-once per process lifetime. ``enqueue`` is
synchronous and only appends; the drain task is started on demand and exits
when the queue runs dry. The ``_draining`` flag is the only guard needed:
everything here runs on one event loop, and there is no await between the
final emptiness check and clearing the flag.
"""
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from cfgrelay.domain.exceptions import DeliveryFailed, QueueClosed
from cfgrelay.domain.jobs import UploadJob
from cfgrelay.infra.webhook.transport import Transport
from cfgrelay.logging import get_logger

log = get_logger("queue")

DEFAULT_FILE_NAME = "config.ini"
MAX_MESSAGE_LENGTH = 2000
_TRUNCATION_NOTICE = "\n...[Message truncated]"


def default_content(job: UploadJob) -> str:
    """Message text for *job*; never empty."""
    if job.content:
        return job.content
    name = job.file.name if job.file is not None else DEFAULT_FILE_NAME
    return f"📁 New config uploaded: {name}"


def fold_embed(content: str, embed: dict[str, Any] | None) -> str:
    """Render an embed as plain text appended to *content*.

    Used on the multipart path, which carries only ``content`` and ``file``.
    """
    if not embed:
        return content
    lines = []
    if embed.get("title"):
        lines.append(f"**{embed['title']}**")
    if embed.get("description"):
        lines.append(str(embed["description"]))
    for fld in embed.get("fields") or []:
        if isinstance(fld, dict) and fld.get("name"):
            lines.append(f"**{fld['name']}:** {fld.get('value', '')}")
    if not lines:
        return content
    return content + "\n\n" + "\n".join(lines)


def truncate_message(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    if len(message) <= max_length:
        return message
    return message[:max_length - len(_TRUNCATION_NOTICE)] + _TRUNCATION_NOTICE


@dataclass
class QueueStats:
    enqueued: int = 0
    delivered: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"enqueued": self.enqueued, "delivered": self.delivered, "failed": self.failed}


class UploadQueue:
    """Buffers upload jobs and relays them one at a time through *transport*."""

    def __init__(
        self,
        transport: Transport,
        *,
        pacing_seconds: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._pacing = max(0.0, pacing_seconds)
        self._sleep = sleep
        self._jobs: deque[UploadJob] = deque()
        self._draining = False
        self._closed = False
        self._task: asyncio.Task | None = None
        self.stats = QueueStats()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def enqueue(self, job: UploadJob) -> int:
        """Append *job* and make sure a drain is running. Returns queue length."""
        if self._closed:
            raise QueueClosed()
        self._jobs.append(job)
        self.stats.enqueued += 1
        log.info("Added job %s to upload queue. Queue length: %d", job.job_id, len(self._jobs))
        self._ensure_draining()
        return len(self._jobs)

    def _ensure_draining(self) -> None:
        if self._draining:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._drain(), name="upload-queue-drain",
        )
        self._draining = True

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def _drain(self) -> None:
        log.debug("Processing upload queue...")
        try:
            while self._jobs:
                job = self._jobs.popleft()
                await self._process(job)
                if self._pacing and self._jobs:
                    await self._sleep(self._pacing)
        finally:
            self._draining = False
        log.debug("Upload queue drained")

    async def _process(self, job: UploadJob) -> None:
        content = default_content(job)
        try:
            if job.has_file:
                await self._transport.deliver(
                    truncate_message(fold_embed(content, job.embed)), file=job.file,
                )
            else:
                embeds = [job.embed] if job.embed else None
                await self._transport.deliver(content, embeds=embeds)
        except DeliveryFailed as exc:
            self.stats.failed += 1
            log.error("Upload %s failed, dropping: %s", job.job_id, exc.message)
            return
        except Exception:
            self.stats.failed += 1
            log.exception("Upload %s raised unexpectedly, dropping", job.job_id)
            return

        self.stats.delivered += 1
        log.info("Relayed upload %s to channel %s", job.job_id, job.destination)
        if job.correlation_id:
            log.info("Upload %s stored as config %s", job.job_id, job.correlation_id)

    # ------------------------------------------------------------------
    # Introspection / lifecycle
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._jobs)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def snapshot(self) -> dict[str, Any]:
        return {"pending": self.size, "draining": self._draining, **self.stats.as_dict()}

    async def wait_idle(self) -> None:
        """Return once no drain is running (new enqueues during the wait are included)."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def close(self, grace_seconds: float = 5.0) -> None:
        """Stop admitting jobs and give the current drain *grace_seconds* to finish."""
        self._closed = True
        task = self._task
        if task is None or task.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=grace_seconds)
        except asyncio.TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            lost = len(self._jobs)
            self._jobs.clear()
            log.warning("Shutdown grace expired; abandoned %d pending upload(s)", lost)
