"""Storage proxy router.

Direct upload, read and delete access to the Storage Service. Unlike the relay upload path, these
routes depend on storage outright and answer 503 while it is known down.
"""
import dataclasses
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import PlainTextResponse
from cfgrelay.api.deps import get_settings, get_storage
from cfgrelay.api.schemas.storage import (
    DeleteResult,
    StorageStatus,
    StorageUploadResult,
    StoredConfigList,
    StoredConfigWithContent,
)
from cfgrelay.config import Settings
from cfgrelay.domain.exceptions import MissingFile, StorageError
from cfgrelay.domain.jobs import FileRef, StorageMetadata, config_stem
from cfgrelay.logging import logger
from cfgrelay.services.storage_facade import StorageFacade
from cfgrelay.services.validation import UploadLimits, validate_config_file

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/status", response_model=StorageStatus)
def storage_status(storage: StorageFacade = Depends(get_storage)) -> StorageStatus:
    return StorageStatus(**storage.status())


@router.get("/health")
async def storage_health(storage: StorageFacade = Depends(get_storage)) -> dict:
    """Live probe; also refreshes the cached availability flag."""
    if not await storage.check_health():
        storage.require_available()
    return await storage.client.health()


@router.get("/configs", response_model=StoredConfigList)
async def list_configs(storage: StorageFacade = Depends(get_storage)) -> StoredConfigList:
    storage.require_available()
    return StoredConfigList.model_validate(await storage.client.list_configs())


@router.get("/config/{config_id}", response_model=StoredConfigWithContent)
async def get_config(
    config_id: str, storage: StorageFacade = Depends(get_storage),
) -> StoredConfigWithContent:
    storage.require_available()
    return StoredConfigWithContent.model_validate(await storage.client.get_config(config_id))


@router.get("/config/{config_id}/content", response_class=PlainTextResponse)
async def get_config_content(
    config_id: str, storage: StorageFacade = Depends(get_storage),
) -> str:
    storage.require_available()
    return await storage.client.get_config_content(config_id)


@router.delete("/config/{config_id}", response_model=DeleteResult)
async def delete_config(
    config_id: str, storage: StorageFacade = Depends(get_storage),
) -> DeleteResult:
    storage.require_available()
    return DeleteResult.model_validate(await storage.client.delete_config(config_id))


@router.post("/upload", response_model=StorageUploadResult)
async def upload_to_storage(
    config: UploadFile | None = File(None),
    name: str | None = Form(None),
    description: str | None = Form(None),
    author: str | None = Form(None),
    tags: str | None = Form(None),
    storage: StorageFacade = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> StorageUploadResult:
    """Store a config in the Storage Service only; nothing is sent to Discord."""
    if config is None or not config.filename:
        raise MissingFile("No config file provided")
    file = FileRef(
        name=config.filename,
        data=await config.read(),
        content_type=config.content_type or "application/octet-stream",
    )
    limits = dataclasses.replace(
        UploadLimits.from_settings(settings), max_file_bytes=settings.STORAGE_MAX_UPLOAD_BYTES,
    )
    validate_config_file(file, limits)
    storage.require_available()

    metadata = StorageMetadata.from_form(
        name=name, description=description, author=author, tags=tags,
    )
    if not metadata.name:
        metadata = dataclasses.replace(
            metadata, name=config_stem(file.name, limits.allowed_extension),
        )

    body = await storage.client.store_config(file, metadata)
    config_id = body.get("configId")
    if not config_id:
        raise StorageError(502, "Storage API response carried no configId")

    logger.info("Config %s uploaded to storage as %s", file.name, config_id)
    return StorageUploadResult(
        configId=str(config_id),
        filename=body.get("filename"),
        storageUrl=f"{storage.client.base_url}/api/config/{config_id}",
        metadata=body.get("metadata"),
    )
