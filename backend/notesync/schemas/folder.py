from datetime import datetime

from pydantic import BaseModel, Field


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: str | None = None
    provider: str | None = None
    order_index: int = 0


class FolderUpdate(BaseModel):
    """Partial update. An explicit ``parent_id: null`` moves the folder to the root."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_id: str | None = None
    provider: str | None = None
    order_index: int | None = None


class FolderResponse(BaseModel):
    id: str
    name: str
    provider: str | None
    parent_id: str | None
    path: str
    level: int
    note_count: int
    order_index: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteRef(BaseModel):
    id: str
    title: str
    level: int = 0
    is_locked: bool = False
    updated_at: datetime | None = None
    children: list["NoteRef"] = []

    model_config = {"from_attributes": True}


class FolderTree(FolderResponse):
    children: list["FolderTree"] = []
    notes: list[NoteRef] = []


class FolderTreeResponse(BaseModel):
    roots: list[FolderTree] = []


NoteRef.model_rebuild()
FolderTree.model_rebuild()
