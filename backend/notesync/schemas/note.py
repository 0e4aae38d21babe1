from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class NoteCreate(BaseModel):
    title: str = ""
    folder_id: str
    parent_id: str | None = None
    content: Any = None
    tags: list[str] = []
    is_locked: bool = False
    has_attachments: bool = False


class NoteUpdate(BaseModel):
    """Partial update. Hierarchy changes go through NoteHierarchyUpdate."""

    title: str | None = None
    content: Any = None
    folder_id: str | None = None
    tags: list[str] | None = None
    is_locked: bool | None = None
    has_attachments: bool | None = None


class NoteHierarchyUpdate(BaseModel):
    parent_id: str | None = None


class NoteLockUpdate(BaseModel):
    is_locked: bool


class NoteResponse(BaseModel):
    id: str
    folder_id: str
    parent_id: str | None
    title: str
    content: Any = None
    plain_content: str
    level: int
    is_locked: bool
    word_count: int
    character_count: int
    has_attachments: bool
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
