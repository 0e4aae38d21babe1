"""Note hierarchy: creation, nesting levels, content metrics and cascading deletes."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.config import settings
from notesync.exceptions import DeletionFailedError, NoteLockedError, NotFoundError, ValidationError
from notesync.models import Folder, Note, ShareLink
from notesync.schemas.note import NoteCreate, NoteUpdate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def derive_plain_content(content: Any) -> str:
    """Text projection of note content used for search and metrics."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


def count_words(text: str) -> int:
    # str.split() with no separator yields [] for "" and whitespace-only input
    return len(text.split())


def apply_content(note: Note, content: Any) -> None:
    note.content = content
    note.plain_content = derive_plain_content(content)
    note.word_count = count_words(note.plain_content)
    note.character_count = len(note.plain_content)


def _normalize_title(title: str) -> str:
    return title if title.strip() else settings.default_note_title


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def _get_folder_for_user(db: AsyncSession, folder_id: str, user_id: str) -> Folder:
    result = await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
    )
    folder = result.scalar_one_or_none()
    if folder is None:
        raise NotFoundError("folder", folder_id)
    return folder


async def _adjust_note_count(db: AsyncSession, folder_id: str, delta: int) -> None:
    stmt = (
        update(Folder)
        .where(Folder.id == folder_id)
        .values(note_count=Folder.note_count + delta)
    )
    if delta < 0:
        # floored at zero
        stmt = stmt.where(Folder.note_count >= -delta)
    await db.execute(stmt)


async def get_note(
    db: AsyncSession, user_id: str, note_id: str, kind: str = "note"
) -> Note:
    result = await db.execute(select(Note).where(Note.id == note_id, Note.user_id == user_id))
    note = result.scalar_one_or_none()
    if note is None:
        raise NotFoundError(kind, note_id)
    return note


async def list_notes(
    db: AsyncSession,
    user_id: str,
    folder_id: str | None = None,
    parent_id: str | None = None,
    root_only: bool = False,
) -> list[Note]:
    q = select(Note).where(Note.user_id == user_id)
    if folder_id is not None:
        q = q.where(Note.folder_id == folder_id)
    if parent_id is not None:
        q = q.where(Note.parent_id == parent_id)
    elif root_only:
        q = q.where(Note.parent_id.is_(None))
    result = await db.execute(q.order_by(Note.updated_at.desc()))
    return list(result.scalars().all())


async def list_children(db: AsyncSession, user_id: str, note_id: str) -> list[Note]:
    note = await get_note(db, user_id, note_id)
    return await list_notes(db, user_id, parent_id=note.id)


async def search_notes(
    db: AsyncSession,
    user_id: str,
    query: str,
    folder_id: str | None = None,
    is_locked: bool | None = None,
) -> list[Note]:
    """Case-insensitive substring match on title or plain content, newest first."""
    pattern = _like_pattern(query)
    q = select(Note).where(
        Note.user_id == user_id,
        or_(
            Note.title.ilike(pattern, escape="\\"),
            Note.plain_content.ilike(pattern, escape="\\"),
        ),
    )
    if folder_id is not None:
        q = q.where(Note.folder_id == folder_id)
    if is_locked is not None:
        q = q.where(Note.is_locked.is_(is_locked))
    result = await db.execute(q.order_by(Note.updated_at.desc()))
    return list(result.scalars().all())


async def get_descendant_note_ids(db: AsyncSession, note_id: str) -> set[str]:
    result: set[str] = set()
    frontier = [note_id]
    while frontier:
        r = await db.execute(select(Note.id).where(Note.parent_id.in_(frontier)))
        next_ids = list(r.scalars().all())
        frontier = [i for i in next_ids if i not in result]
        result.update(next_ids)
    return result


async def create_note(db: AsyncSession, user_id: str, data: NoteCreate) -> Note:
    folder = await _get_folder_for_user(db, data.folder_id, user_id)
    level = 0
    if data.parent_id is not None:
        parent = await get_note(db, user_id, data.parent_id, kind="parent note")
        level = parent.level + 1

    now = _utcnow()
    note = Note(
        user_id=user_id,
        folder_id=folder.id,
        parent_id=data.parent_id,
        title=_normalize_title(data.title),
        level=level,
        is_locked=data.is_locked,
        has_attachments=data.has_attachments,
        tags=list(data.tags),
        created_at=now,
        updated_at=now,
    )
    apply_content(note, data.content)
    db.add(note)
    await _adjust_note_count(db, folder.id, 1)
    await db.flush()
    logger.info(
        "Note created",
        extra={"note_id": note.id, "folder_id": folder.id, "level": level},
    )
    return note


async def update_note(db: AsyncSession, user_id: str, note_id: str, data: NoteUpdate) -> Note:
    note = await get_note(db, user_id, note_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("title") is not None:
        changes["title"] = _normalize_title(changes["title"])

    edits = [
        field for field in ("title", "content")
        if field in changes
        and (field == "content" or changes[field] is not None)
        and changes[field] != getattr(note, field)
    ]
    if note.is_locked and edits and changes.get("is_locked") is not False:
        raise NoteLockedError(note.id)

    if changes.get("title") is not None:
        note.title = changes["title"]
    if "content" in changes:
        apply_content(note, changes["content"])
    if changes.get("folder_id") is not None and changes["folder_id"] != note.folder_id:
        target = await _get_folder_for_user(db, changes["folder_id"], user_id)
        await _adjust_note_count(db, note.folder_id, -1)
        await _adjust_note_count(db, target.id, 1)
        note.folder_id = target.id
    if changes.get("tags") is not None:
        note.tags = list(changes["tags"])
    if changes.get("is_locked") is not None:
        note.is_locked = changes["is_locked"]
    if changes.get("has_attachments") is not None:
        note.has_attachments = changes["has_attachments"]

    note.updated_at = _utcnow()
    await db.flush()
    return note


async def set_lock(db: AsyncSession, user_id: str, note_id: str, locked: bool) -> Note:
    note = await get_note(db, user_id, note_id)
    if note.is_locked != locked:
        note.is_locked = locked
        note.updated_at = _utcnow()
        await db.flush()
        logger.info("Note lock changed", extra={"note_id": note.id, "locked": locked})
    return note


async def _relevel_descendants(db: AsyncSession, note: Note) -> int:
    """Push level changes down the subtree. Returns number of notes touched."""
    touched = 0
    frontier = [note]
    while frontier:
        parent_levels = {n.id: n.level for n in frontier}
        result = await db.execute(select(Note).where(Note.parent_id.in_(list(parent_levels))))
        children = list(result.scalars().all())
        for child in children:
            child.level = parent_levels[child.parent_id] + 1
        touched += len(children)
        frontier = children
    return touched


async def reparent_note(
    db: AsyncSession, user_id: str, note_id: str, parent_id: str | None
) -> Note:
    """Move a note under another note (or to the top level) and re-level its subtree."""
    note = await get_note(db, user_id, note_id)
    level = 0
    if parent_id is not None:
        if parent_id == note.id:
            raise ValidationError("A note cannot be its own parent")
        parent = await get_note(db, user_id, parent_id, kind="parent note")
        if parent.id in await get_descendant_note_ids(db, note.id):
            raise ValidationError("Cannot move a note under its own descendant")
        level = parent.level + 1

    note.parent_id = parent_id
    note.level = level
    note.updated_at = _utcnow()
    touched = await _relevel_descendants(db, note)
    await db.flush()
    logger.info(
        "Note reparented",
        extra={"note_id": note.id, "parent_id": parent_id, "level": level, "descendants": touched},
    )
    return note


async def delete_note_tree(db: AsyncSession, note: Note) -> int:
    """Delete a note with its share links and descendants. Returns number of notes removed.

    Does not commit; callers own the unit of work.
    """
    await db.execute(delete(ShareLink).where(ShareLink.note_id == note.id))

    removed = 0
    result = await db.execute(select(Note).where(Note.parent_id == note.id))
    for child in list(result.scalars().all()):
        removed += await delete_note_tree(db, child)

    await _adjust_note_count(db, note.folder_id, -1)
    await db.delete(note)
    await db.flush()
    return removed + 1


async def delete_note(db: AsyncSession, user_id: str, note_id: str) -> int:
    note = await get_note(db, user_id, note_id)
    try:
        removed = await delete_note_tree(db, note)
    except SQLAlchemyError as e:
        logger.exception("Note cascade delete failed", extra={"note_id": note_id})
        raise DeletionFailedError("note", note_id) from e
    logger.info("Note deleted", extra={"note_id": note_id, "removed": removed})
    return removed
