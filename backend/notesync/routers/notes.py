from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.database import get_db
from notesync.dependencies import get_current_user
from notesync.models import Note, User
from notesync.schemas.note import NoteCreate, NoteHierarchyUpdate, NoteLockUpdate, NoteResponse, NoteUpdate
from notesync.services import note_tree

router = APIRouter(prefix="/notes", tags=["notes"])

ROOT_SENTINELS = {"root", "null"}


@router.get("", response_model=list[NoteResponse])
async def list_notes(
    folder_id: str | None = Query(None),
    parent_id: str | None = Query(None, description="Exact parent note id, or 'root' for top-level notes"),
    search: str | None = Query(None, max_length=500),
    locked: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Note]:
    """Notes newest first. ``search`` switches to title/content substring search."""
    if search:
        return await note_tree.search_notes(db, user.id, search, folder_id=folder_id, is_locked=locked)
    if parent_id in ROOT_SENTINELS:
        return await note_tree.list_notes(db, user.id, folder_id=folder_id, root_only=True)
    return await note_tree.list_notes(db, user.id, folder_id=folder_id, parent_id=parent_id)


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Note:
    return await note_tree.get_note(db, user.id, note_id)


@router.get("/{note_id}/children", response_model=list[NoteResponse])
async def list_children(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Note]:
    return await note_tree.list_children(db, user.id, note_id)


@router.post("", response_model=NoteResponse, status_code=201)
async def create_note(
    data: NoteCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Note:
    note = await note_tree.create_note(db, user.id, data)
    await db.commit()
    await db.refresh(note)
    return note


@router.patch("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: str,
    data: NoteUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Note:
    note = await note_tree.update_note(db, user.id, note_id, data)
    await db.commit()
    await db.refresh(note)
    return note


@router.put("/{note_id}/hierarchy", response_model=NoteResponse)
async def reparent_note(
    note_id: str,
    data: NoteHierarchyUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Note:
    note = await note_tree.reparent_note(db, user.id, note_id, data.parent_id or None)
    await db.commit()
    await db.refresh(note)
    return note


@router.put("/{note_id}/lock", response_model=NoteResponse)
async def set_note_lock(
    note_id: str,
    data: NoteLockUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Note:
    note = await note_tree.set_lock(db, user.id, note_id, data.is_locked)
    await db.commit()
    await db.refresh(note)
    return note


@router.delete("/{note_id}", status_code=204)
async def delete_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> None:
    await note_tree.delete_note(db, user.id, note_id)
    await db.commit()
