"""Upload router: admission only; delivery happens later on the queue."""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from cfgrelay.api.deps import get_upload_service
from cfgrelay.api.schemas.upload import ErrorBody, UploadAccepted
from cfgrelay.domain.exceptions import RelayError
from cfgrelay.domain.jobs import FileRef, StorageMetadata
from cfgrelay.logging import logger
from cfgrelay.services.upload_service import UploadService

router = APIRouter(prefix="/api/service", tags=["upload"])


@router.post(
    "/upload",
    response_model=UploadAccepted,
    responses={400: {"model": ErrorBody}, 500: {"model": ErrorBody}, 503: {"model": ErrorBody}},
)
async def upload_config(
    file: UploadFile | None = File(None),
    content: str | None = Form(None),
    embeds: str | None = Form(None),
    name: str | None = Form(None),
    description: str | None = Form(None),
    author: str | None = Form(None),
    tags: str | None = Form(None),
    service: UploadService = Depends(get_upload_service),
):
    """Validate, store best-effort, and queue one config for the webhook.

    A 200 here means "queued", not "delivered".
    """
    file_ref = None
    if file is not None and file.filename:
        file_ref = FileRef(
            name=file.filename,
            data=await file.read(),
            content_type=file.content_type or "application/octet-stream",
        )

    metadata = None
    if any(v is not None for v in (name, description, author, tags)):
        metadata = StorageMetadata.from_form(
            name=name, description=description, author=author, tags=tags,
        )

    try:
        receipt = await service.admit(
            file=file_ref, content=content, embeds=embeds, metadata=metadata,
        )
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Error queueing config upload")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to queue config upload", "message": str(exc)},
        )

    return UploadAccepted(message=receipt.message, queue_time=receipt.queue_time)
