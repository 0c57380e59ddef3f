import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from devteam.auth import RequireAuth
from devteam.config import settings
from devteam.database import get_db
from devteam.schemas import Attachment, DeleteResult, StandardError
from devteam.services.attachments import (
    AttachmentStorage,
    delete_attachment,
    ensure_task_exists,
    get_attachment,
    get_attachment_for_download,
    get_attachment_storage,
    list_attachments,
    store_uploads,
)
from devteam.services.errors import AttachmentError
from devteam.services.multipart import extract_boundary, parse_multipart

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(error: AttachmentError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


# =============================================================================
# Task Attachment Endpoints
# =============================================================================


@router.get(
    "/tasks/{task_id}/attachments",
    response_model=list[Attachment],
    summary="List task attachments",
    description="Get all files attached to a task, oldest first.",
    responses={
        401: {"model": StandardError, "description": "Unauthorized"},
        404: {"model": StandardError, "description": "Task not found"},
    },
)
async def list_task_attachments(
    task_id: str,
    current_user: RequireAuth,
    db: Session = Depends(get_db),
):
    try:
        attachments = list_attachments(db, task_id)
    except AttachmentError as e:
        raise _http_error(e)
    return [Attachment.model_validate(a) for a in attachments]


@router.post(
    "/tasks/{task_id}/attachments",
    response_model=list[Attachment],
    status_code=status.HTTP_201_CREATED,
    summary="Upload files to task",
    description="""
Upload one or more files to a task as a `multipart/form-data` body.

Every part carrying a `filename` is stored; other form fields are ignored.
Each file may be at most 25 MB by default. When a part is rejected the
remaining parts are not processed, but files stored for earlier parts of the
same request are kept.
    """,
    responses={
        400: {"model": StandardError, "description": "Not multipart or missing boundary"},
        401: {"model": StandardError, "description": "Unauthorized"},
        404: {"model": StandardError, "description": "Task not found"},
        413: {"model": StandardError, "description": "A file exceeds the size limit"},
        500: {"model": StandardError, "description": "Failed to process upload"},
    },
)
async def upload_task_attachments(
    task_id: str,
    request: Request,
    current_user: RequireAuth,
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    try:
        boundary = extract_boundary(request.headers.get("content-type"))
        task_uuid = ensure_task_exists(db, task_id)

        body = await request.body()
        logger.debug(f"Received {len(body)} byte multipart body for task {task_id}")

        attachments = store_uploads(
            db,
            storage,
            task_id=task_uuid,
            uploaded_by=current_user.id,
            parts=parse_multipart(body, boundary),
            max_size_bytes=settings.max_attachment_size_bytes,
        )
    except AttachmentError as e:
        raise _http_error(e)

    return [Attachment.model_validate(a) for a in attachments]


# =============================================================================
# Attachment Endpoints
# =============================================================================


@router.get(
    "/attachments/{attachment_id}",
    response_model=Attachment,
    summary="Get attachment",
    description="Get the metadata record of an attachment.",
    responses={
        401: {"model": StandardError, "description": "Unauthorized"},
        404: {"model": StandardError, "description": "Attachment not found"},
    },
)
async def get_task_attachment(
    attachment_id: str,
    current_user: RequireAuth,
    db: Session = Depends(get_db),
):
    try:
        attachment = get_attachment(db, attachment_id)
    except AttachmentError as e:
        raise _http_error(e)
    return Attachment.model_validate(attachment)


@router.get(
    "/attachments/{attachment_id}/download",
    response_class=FileResponse,
    summary="Download attachment",
    description="Stream the stored file under its original name and declared type.",
    responses={
        200: {"description": "File contents", "content": {"application/octet-stream": {}}},
        401: {"model": StandardError, "description": "Unauthorized"},
        404: {"model": StandardError, "description": "Attachment or file not found"},
    },
)
async def download_attachment(
    attachment_id: str,
    current_user: RequireAuth,
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    try:
        target = get_attachment_for_download(db, storage, attachment_id)
    except AttachmentError as e:
        raise _http_error(e)

    return FileResponse(
        path=target.path,
        media_type=target.content_type,
        filename=target.filename,
    )


@router.delete(
    "/attachments/{attachment_id}",
    response_model=DeleteResult,
    summary="Delete attachment",
    description="Delete an attachment's stored file and its record.",
    responses={
        401: {"model": StandardError, "description": "Unauthorized"},
        404: {"model": StandardError, "description": "Attachment not found"},
        500: {"model": StandardError, "description": "Failed to delete attachment"},
    },
)
async def delete_task_attachment(
    attachment_id: str,
    current_user: RequireAuth,
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    # TODO: restrict to the uploader or members of the task's project once memberships exist
    try:
        delete_attachment(db, storage, attachment_id)
    except AttachmentError as e:
        raise _http_error(e)

    logger.info(f"User {current_user.id} deleted attachment {attachment_id}")
    return DeleteResult(success=True)
