"""Upload job value objects shared by the validator, queue and transport."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class FileRef:
    """Binary payload of one uploaded file."""

    name: str
    data: bytes = field(repr=False)
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class UploadJob:
    """One pending relay of a file and/or message to the webhook destination.

    ``correlation_id`` is the Storage Service id of the same file when storing
    succeeded; it is only ever logged.
    """

    destination: str
    file: FileRef | None = None
    content: str | None = None
    embed: dict[str, Any] | None = None
    correlation_id: str | None = None
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_file(self) -> bool:
        return self.file is not None


@dataclass(frozen=True, slots=True)
class StorageMetadata:
    """Descriptive fields stored next to a config file."""

    name: str = ""
    description: str = ""
    author: str = "Anonymous"
    tags: tuple[str, ...] = ()

    def form_fields(self) -> dict[str, str]:
        return {
            "name": self.name,
            "description": self.description,
            "author": self.author or "Anonymous",
            "tags": ",".join(self.tags),
        }

    @classmethod
    def from_form(
        cls,
        *,
        name: str | None = None,
        description: str | None = None,
        author: str | None = None,
        tags: str | None = None,
    ) -> "StorageMetadata":
        parsed_tags = tuple(t.strip() for t in (tags or "").split(",") if t.strip())
        return cls(
            name=name or "",
            description=description or "",
            author=author or "Anonymous",
            tags=parsed_tags,
        )


def config_stem(filename: str, extension: str = ".ini") -> str:
    """*filename* without a trailing *extension* (case-insensitive)."""
    if extension and filename.lower().endswith(extension.lower()):
        return filename[: -len(extension)]
    return filename
