"""Request bodies of the content routes."""

from pydantic import BaseModel, Field


class VersionRequest(BaseModel):
    """Site configuration version to publish or revert."""

    name: str = Field(..., description="Name of the `AppInfo` version")
