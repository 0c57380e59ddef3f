"""multipart/form-data parsing for attachment uploads.

The parser works on a fully buffered request body and has no dependency on
the web framework, so it can be driven directly with byte literals.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from devteam.services.errors import (
    MalformedRequestError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)

logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = "multipart/form-data"

CRLF = b"\r\n"
HEADER_SEPARATOR = b"\r\n\r\n"

_BOUNDARY_RE = re.compile(r"boundary=([^;]*)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename="([^"]+)"')
_CONTENT_TYPE_RE = re.compile(r"Content-Type:\s*(.+)", re.IGNORECASE)


@dataclass(frozen=True)
class MultipartPart:
    """One file part of a multipart body."""

    filename: str | None
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


# =============================================================================
# Boundary Extraction
# =============================================================================


def extract_boundary(content_type: str | None) -> str:
    """Get the boundary token from a Content-Type header value.

    Args:
        content_type: Raw Content-Type header value (may be empty).

    Returns:
        The boundary token exactly as declared, minus optional quoting.

    Raises:
        UnsupportedMediaTypeError: If the body is not multipart/form-data.
        MalformedRequestError: If no boundary parameter is present.
    """
    if not content_type or MULTIPART_FORM_DATA not in content_type.lower():
        raise UnsupportedMediaTypeError("Expected multipart/form-data")

    match = _BOUNDARY_RE.search(content_type)
    boundary = match.group(1).strip().strip('"') if match else ""
    if not boundary:
        raise MalformedRequestError("No boundary found")
    return boundary


# =============================================================================
# Body Parsing
# =============================================================================


def _parse_part(raw: bytes) -> MultipartPart | None:
    header_end = raw.find(HEADER_SEPARATOR)
    if header_end == -1:
        logger.debug("Skipping multipart part without a header block")
        return None

    headers = raw[:header_end].decode("utf-8", errors="replace")
    filename_match = _FILENAME_RE.search(headers)
    if not filename_match:
        logger.debug("Skipping multipart part without a filename")
        return None

    content_type_match = _CONTENT_TYPE_RE.search(headers)
    return MultipartPart(
        filename=filename_match.group(1),
        content_type=content_type_match.group(1).strip() if content_type_match else None,
        data=raw[header_end + len(HEADER_SEPARATOR) :],
    )


def parse_multipart(body: bytes, boundary: str) -> Iterator[MultipartPart]:
    """Split a buffered multipart body into its file parts.

    Each part runs from the end of one delimiter line to the CRLF preceding the
    next delimiter. Parts without a header block or without a ``filename`` are
    skipped. Scanning stops at the last delimiter found, so the closing
    ``--boundary--`` marker needs no special handling.

    Args:
        body: Complete request body.
        boundary: Token returned by :func:`extract_boundary`.

    Yields:
        MultipartPart for every file part, in body order.
    """
    delimiter = b"--" + boundary.encode("latin-1")

    first = body.find(delimiter)
    if first == -1:
        return

    start = first + len(delimiter) + len(CRLF)
    while start < len(body):
        next_delimiter = body.find(delimiter, start)
        if next_delimiter == -1:
            break

        part = _parse_part(body[start : next_delimiter - len(CRLF)])
        if part is not None:
            yield part

        start = next_delimiter + len(delimiter) + len(CRLF)


# =============================================================================
# Validation
# =============================================================================


def validate_part(part: MultipartPart, max_size_bytes: int) -> None:
    """Reject a part whose payload is larger than ``max_size_bytes``.

    Raises:
        PayloadTooLargeError: Naming the offending file.
    """
    if part.size > max_size_bytes:
        raise PayloadTooLargeError(part.filename or "file", max_size_bytes)
