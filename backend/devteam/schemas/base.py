from pydantic import BaseModel, Field


class StandardError(BaseModel):
    detail: str = Field(description="Human-readable error message")


class HealthStatus(BaseModel):
    status: str = Field(description="Service status")
    version: str = Field(description="API version")
