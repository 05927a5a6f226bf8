"""Ingress validation: raw request parts in, well-formed ``UploadJob`` out."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from cfgrelay.domain.exceptions import (
    ContentTooLong,
    FileTooLarge,
    InvalidEmbedFormat,
    InvalidFileType,
)
from cfgrelay.domain.jobs import FileRef, UploadJob


@dataclass(frozen=True, slots=True)
class UploadLimits:
    allowed_extension: str = ".ini"
    max_file_bytes: int = 1024 * 1024
    max_content_length: int = 2000
    max_embeds: int = 1

    @classmethod
    def from_settings(cls, settings: Any) -> "UploadLimits":
        return cls(
            allowed_extension=settings.ALLOWED_EXTENSION,
            max_file_bytes=settings.MAX_UPLOAD_BYTES,
            max_content_length=settings.MAX_CONTENT_LENGTH,
            max_embeds=settings.MAX_EMBEDS,
        )


def parse_embeds(raw: str, max_embeds: int = 1) -> dict[str, Any] | None:
    """Parse the ``embeds`` form field.

    Accepts a JSON array of at most *max_embeds* objects and returns the first
    one (or None for ``[]``).
    """
    try:
        embeds = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise InvalidEmbedFormat("Invalid embeds format") from exc

    if not isinstance(embeds, list) or len(embeds) > max_embeds:
        raise InvalidEmbedFormat("Invalid embeds format")
    if not all(isinstance(e, dict) for e in embeds):
        raise InvalidEmbedFormat("Invalid embeds format")
    return embeds[0] if embeds else None


def validate_config_file(file: FileRef, limits: UploadLimits = UploadLimits()) -> None:
    """Check extension, then size."""
    if not file.name.lower().endswith(limits.allowed_extension.lower()):
        raise InvalidFileType(f"Only {limits.allowed_extension} files are allowed")
    if file.size > limits.max_file_bytes:
        raise FileTooLarge("File too large")


def validate_upload(
    *,
    file: FileRef | None,
    content: str | None,
    embeds: str | None,
    destination: str,
    limits: UploadLimits = UploadLimits(),
) -> UploadJob:
    """Validate one upload request and build its job.

    Raises:
        InvalidFileType, FileTooLarge, ContentTooLong, InvalidEmbedFormat
    """
    if file is not None:
        validate_config_file(file, limits)

    if content and len(content) > limits.max_content_length:
        raise ContentTooLong("Content too long")

    embed = parse_embeds(embeds, limits.max_embeds) if embeds else None

    return UploadJob(
        destination=destination,
        file=file,
        content=content or None,
        embed=embed,
    )
