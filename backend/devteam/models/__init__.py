from devteam.models.attachment import Attachment
from devteam.models.base import Base
from devteam.models.project import Project
from devteam.models.task import Task

__all__ = [
    # Base
    "Base",
    # Models
    "Project",
    "Task",
    "Attachment",
]
