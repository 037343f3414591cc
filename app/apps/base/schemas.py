"""Schemas shared across apps."""

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Authenticated caller, as placed on the request by the auth middleware."""

    id: str = Field(..., description="User name of the authenticated member")
    email: str | None = Field(None, description="Email address")
    name: str | None = Field(None, description="Display name")

    @property
    def identity(self) -> str:
        """Key under which the user's activity is tracked (email, else id)."""
        return self.email or self.id


class CountResponse(BaseModel):
    """Number of records affected or matched."""

    count: int
