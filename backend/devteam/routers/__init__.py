from devteam.routers.attachments import router as attachments_router
from devteam.routers.system import router as system_router

__all__ = [
    "attachments_router",
    "system_router",
]
