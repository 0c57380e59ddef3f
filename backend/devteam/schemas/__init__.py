from devteam.schemas.attachment import Attachment, DeleteResult
from devteam.schemas.base import HealthStatus, StandardError

__all__ = [
    # Base
    "HealthStatus",
    "StandardError",
    # Attachment
    "Attachment",
    "DeleteResult",
]
