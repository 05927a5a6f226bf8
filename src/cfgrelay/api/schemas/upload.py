"""Upload DTOs."""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class UploadAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    queue_time: datetime = Field(alias="queueTime")


class ErrorBody(BaseModel):
    error: str
    message: str | None = None
