from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class Attachment(BaseModel):
    """Response schema for a task attachment."""

    id: UUID = Field(description="Unique identifier")
    task_id: UUID = Field(description="Owning task ID")
    name: str = Field(description="Original filename as uploaded")
    stored_name: str = Field(description="Generated on-disk filename")
    url: str = Field(description="Public path of the stored file")
    type: str = Field(
        validation_alias=AliasChoices("content_type", "type"),
        description="MIME type declared by the uploader",
    )
    size: int = Field(description="File size in bytes")
    uploaded_by: UUID = Field(description="ID of the uploading user")
    uploaded_at: datetime = Field(description="Upload timestamp")

    model_config = {"from_attributes": True}


class DeleteResult(BaseModel):
    success: bool = Field(description="Whether the attachment was removed")
