"""Storage proxy DTOs. Records are the Storage Service's own JSON, passed through."""
from __future__ import annotations
from typing import Any
from pydantic import BaseModel, ConfigDict


class StoredConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    description: str = ""
    author: str = "Anonymous"
    tags: list[str] = []
    filename: str | None = None
    originalName: str | None = None
    size: int | None = None
    uploadDate: str | None = None
    downloadCount: int = 0


class StoredConfigList(BaseModel):
    configs: list[StoredConfig]
    total: int


class StoredConfigWithContent(BaseModel):
    metadata: StoredConfig
    content: str


class StorageStatus(BaseModel):
    available: bool
    lastCheck: str | None = None
    baseUrl: str


class DeleteResult(BaseModel):
    success: bool
    message: str | None = None


class StorageUploadResult(BaseModel):
    success: bool = True
    message: str = "Config uploaded successfully"
    configId: str
    filename: str | None = None
    storageUrl: str
    metadata: dict[str, Any] | None = None
