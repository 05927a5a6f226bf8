"""FastAPI dependencies.

The composition root (``create_app``'s lifespan) owns every long-lived object
and parks it on ``app.state``; routes reach them only through these helpers.
"""
from __future__ import annotations
from fastapi import Request
from cfgrelay.config import Settings
from cfgrelay.domain.exceptions import StorageUnavailable
from cfgrelay.services.storage_facade import StorageFacade
from cfgrelay.services.upload_queue import UploadQueue
from cfgrelay.services.upload_service import UploadService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_upload_queue(request: Request) -> UploadQueue:
    return request.app.state.upload_queue


def get_storage(request: Request) -> StorageFacade:
    """Storage facade, or 503 when storage is disabled for this process."""
    storage: StorageFacade | None = request.app.state.storage
    if storage is None:
        raise StorageUnavailable("Storage is disabled")
    return storage
