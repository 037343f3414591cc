"""Transport shape of the activity state."""

from pydantic import BaseModel, Field


class Activity(BaseModel):
    """Snapshot of the whole activity state (`domain -> kind -> user -> value`)."""

    data: dict[str, dict[str, dict[str, str]]] | None = Field(
        default_factory=dict, description="Activity state"
    )
