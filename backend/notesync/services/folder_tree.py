"""Folder hierarchy: levels, materialized paths, note counts and cascading deletes."""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.exceptions import DeletionFailedError, NotFoundError, ValidationError
from notesync.models import Folder, Note
from notesync.schemas.folder import FolderCreate, FolderTree, FolderTreeResponse, FolderUpdate, NoteRef
from notesync.services import note_tree

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Folder name must not be empty")
    return name


def _place(folder: Folder, parent: Folder | None) -> None:
    if parent is None:
        folder.level = 0
        folder.path = f"/{folder.name}"
    else:
        folder.level = parent.level + 1
        folder.path = f"{parent.path}/{folder.name}"


async def get_folder(db: AsyncSession, user_id: str, folder_id: str, kind: str = "folder") -> Folder:
    result = await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
    )
    folder = result.scalar_one_or_none()
    if folder is None:
        raise NotFoundError(kind, folder_id)
    return folder


async def list_folders(
    db: AsyncSession,
    user_id: str,
    parent_id: str | None = None,
    root_only: bool = False,
    provider: str | None = None,
) -> list[Folder]:
    q = select(Folder).where(Folder.user_id == user_id)
    if parent_id is not None:
        q = q.where(Folder.parent_id == parent_id)
    elif root_only:
        q = q.where(Folder.parent_id.is_(None))
    if provider is not None:
        q = q.where(Folder.provider == provider)
    result = await db.execute(q.order_by(Folder.order_index, Folder.path))
    return list(result.scalars().all())


async def get_descendant_folder_ids(db: AsyncSession, folder_id: str, user_id: str) -> set[str]:
    result: set[str] = set()
    frontier = [folder_id]
    while frontier:
        q = select(Folder.id).where(
            Folder.user_id == user_id,
            Folder.parent_id.in_(frontier),
        )
        r = await db.execute(q)
        next_ids = list(r.scalars().all())
        frontier = [i for i in next_ids if i not in result]
        result.update(next_ids)
    return result


async def create_folder(db: AsyncSession, user_id: str, data: FolderCreate) -> Folder:
    parent = None
    if data.parent_id is not None:
        parent = await get_folder(db, user_id, data.parent_id, kind="parent folder")
    now = _utcnow()
    folder = Folder(
        user_id=user_id,
        name=_clean_name(data.name),
        provider=data.provider,
        parent_id=data.parent_id,
        note_count=0,
        order_index=data.order_index,
        created_at=now,
        updated_at=now,
    )
    _place(folder, parent)
    db.add(folder)
    await db.flush()
    logger.info("Folder created", extra={"folder_id": folder.id, "level": folder.level})
    return folder


async def _relocate_descendants(db: AsyncSession, folder: Folder) -> int:
    """Recompute level and path below ``folder``. Returns number of folders touched."""
    touched = 0
    frontier = [folder]
    while frontier:
        parents = {f.id: f for f in frontier}
        result = await db.execute(select(Folder).where(Folder.parent_id.in_(list(parents))))
        children = list(result.scalars().all())
        for child in children:
            _place(child, parents[child.parent_id])
        touched += len(children)
        frontier = children
    return touched


async def update_folder(
    db: AsyncSession, user_id: str, folder_id: str, data: FolderUpdate
) -> Folder:
    """Merge a partial update. Renames and moves re-derive path and level for the subtree."""
    folder = await get_folder(db, user_id, folder_id)
    changes = data.model_dump(exclude_unset=True)
    relocate = False

    if changes.get("name") is not None:
        name = _clean_name(changes["name"])
        if name != folder.name:
            folder.name = name
            relocate = True
    if "provider" in changes:
        folder.provider = changes["provider"]
    if changes.get("order_index") is not None:
        folder.order_index = changes["order_index"]

    if "parent_id" in changes and changes["parent_id"] != folder.parent_id:
        new_parent_id = changes["parent_id"]
        if new_parent_id is not None:
            if new_parent_id == folder.id:
                raise ValidationError("Folder cannot be its own parent")
            parent = await get_folder(db, user_id, new_parent_id, kind="parent folder")
            descendants = await get_descendant_folder_ids(db, folder.id, user_id)
            if parent.id in descendants:
                raise ValidationError("Cannot move folder into its own subfolder")
        folder.parent_id = new_parent_id
        relocate = True

    if relocate:
        parent = None
        if folder.parent_id is not None:
            parent = await get_folder(db, user_id, folder.parent_id, kind="parent folder")
        _place(folder, parent)
        touched = await _relocate_descendants(db, folder)
        logger.info(
            "Folder relocated",
            extra={"folder_id": folder.id, "path": folder.path, "descendants": touched},
        )

    folder.updated_at = _utcnow()
    await db.flush()
    return folder


async def _delete_folder_tree(db: AsyncSession, folder: Folder) -> None:
    # Notes first: a note may already be gone as the descendant of an earlier one
    r = await db.execute(select(Note.id).where(Note.folder_id == folder.id))
    for note_id in list(r.scalars().all()):
        result = await db.execute(select(Note).where(Note.id == note_id))
        note = result.scalar_one_or_none()
        if note is not None:
            await note_tree.delete_note_tree(db, note)

    result = await db.execute(select(Folder).where(Folder.parent_id == folder.id))
    for child in list(result.scalars().all()):
        await _delete_folder_tree(db, child)

    await db.delete(folder)
    await db.flush()


async def delete_folder(db: AsyncSession, user_id: str, folder_id: str) -> None:
    """Delete a folder with its notes and subfolders. Does not commit."""
    folder = await get_folder(db, user_id, folder_id)
    try:
        await _delete_folder_tree(db, folder)
    except SQLAlchemyError as e:
        logger.exception("Folder cascade delete failed", extra={"folder_id": folder_id})
        raise DeletionFailedError("folder", folder_id) from e
    logger.info("Folder deleted", extra={"folder_id": folder_id})


async def get_folder_tree(db: AsyncSession, user_id: str) -> FolderTreeResponse:
    """Build the user's folder tree with notes nested under their parent notes."""
    folders = await list_folders(db, user_id)
    notes = await note_tree.list_notes(db, user_id)

    folder_map: dict[str, FolderTree] = {
        f.id: FolderTree.model_validate(f, from_attributes=True) for f in folders
    }

    refs: dict[str, NoteRef] = {n.id: NoteRef.model_validate(n, from_attributes=True) for n in notes}
    top_level_by_folder: dict[str, list[NoteRef]] = defaultdict(list)
    for n in notes:
        parent_ref = refs.get(n.parent_id) if n.parent_id is not None else None
        if parent_ref is not None:
            parent_ref.children.append(refs[n.id])
        else:
            top_level_by_folder[n.folder_id].append(refs[n.id])

    roots: list[FolderTree] = []
    for f in folders:
        tree = folder_map[f.id]
        tree.notes.extend(top_level_by_folder.get(f.id, []))
        if f.parent_id is None:
            roots.append(tree)
        else:
            parent = folder_map.get(f.parent_id)
            if parent is not None:
                parent.children.append(tree)
    return FolderTreeResponse(roots=roots)
