"""Errors raised while ingesting, serving and removing task attachments.

Each error carries the HTTP status it maps to so routers can translate it
without a lookup table.
"""

from fastapi import status


class AttachmentError(Exception):
    """Base class for attachment handling errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MalformedRequestError(AttachmentError):
    """Raised when a multipart request is missing its boundary parameter."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedMediaTypeError(AttachmentError):
    """Raised when the request body is not multipart/form-data.

    Answered with 400 rather than 415 to keep the client contract unchanged.
    """

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AttachmentError):
    """Raised when a task, attachment record or stored file is missing."""

    status_code = status.HTTP_404_NOT_FOUND


class PayloadTooLargeError(AttachmentError):
    """Raised when a single uploaded part exceeds the size ceiling."""

    status_code = status.HTTP_413_CONTENT_TOO_LARGE

    def __init__(self, filename: str, limit_bytes: int):
        limit_mb = limit_bytes // (1024 * 1024)
        super().__init__(f"{filename} exceeds {limit_mb}MB limit")
        self.filename = filename
        self.limit_bytes = limit_bytes


class InternalFailureError(AttachmentError):
    """Raised when the file store or metadata store fails unexpectedly."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
