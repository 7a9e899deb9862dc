from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import RemoteTask, TaskStatus


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Input for creating a new local task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
            }
        }
    )

    title: str = Field(..., description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        if v is None:
            raise ValueError("title is required")
        return _clean_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Input for editing an existing local task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: Optional[TaskStatus] = Field(default=None, description="'Pending' or 'Completed'")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)


# PUBLIC_INTERFACE
class RemoteTaskIn(BaseModel):
    """
    Wire representation of a task sent to the remote authority.

    The id and last_updated are assigned by the client; the authority stores
    them as given so that last-write-wins comparisons stay meaningful.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f0c2a3c9d2b4a4e8b1d6f7e8a9b0c1d",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "Pending",
                "last_updated": 1737800130123,
            }
        }
    )

    id: str = Field(..., description="Client-assigned unique identifier", min_length=1, max_length=64)
    title: str = Field(..., description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="'Pending' or 'Completed'")
    last_updated: int = Field(..., description="Milliseconds timestamp of this revision", ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)  # type: ignore[return-value]

    def to_task(self) -> RemoteTask:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "last_updated": self.last_updated,
        }


# PUBLIC_INTERFACE
class RemoteTaskOut(RemoteTaskIn):
    """
    Schema returned by the authority for a task.
    """


# PUBLIC_INTERFACE
class TaskListEnvelope(BaseModel):
    """
    Envelope for the authority's full task listing.
    """

    items: List[RemoteTaskOut] = Field(..., description="All tasks held by the authority")
    total: int = Field(..., description="Number of tasks")
