from pydantic import BaseModel, ConfigDict, Field


class Task(BaseModel):
    """A stored task. Instances are immutable snapshots."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: int = Field(ge=0, description="Server-side identifier")
    description: str = Field(description="Free-text task description")


class TaskDraft(BaseModel):
    """POST body. Any client-supplied id is ignored."""

    model_config = ConfigDict(strict=True)

    id: int | None = Field(default=None, ge=0)
    description: str
