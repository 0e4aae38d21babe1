from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

Permission = Literal["view", "edit"]


class ShareLinkCreate(BaseModel):
    note_id: str
    permissions: Permission = "view"
    expires_at: datetime | None = None


class ShareLinkResponse(BaseModel):
    id: str
    note_id: str
    url: str
    permissions: str
    expires_at: datetime | None
    access_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SharedNote(BaseModel):
    id: str
    title: str
    content: Any = None
    plain_content: str
    created_at: datetime
    updated_at: datetime
    word_count: int
    character_count: int

    model_config = {"from_attributes": True}


class SharedLinkInfo(BaseModel):
    permissions: str
    expires_at: datetime | None


class SharedNoteResponse(BaseModel):
    note: SharedNote
    share_link: SharedLinkInfo
