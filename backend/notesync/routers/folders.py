from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.database import get_db
from notesync.dependencies import get_current_user
from notesync.models import Folder, User
from notesync.schemas.folder import FolderCreate, FolderResponse, FolderTreeResponse, FolderUpdate
from notesync.services import folder_tree

router = APIRouter(prefix="/folders", tags=["folders"])

# Query values that select top-level folders explicitly
ROOT_SENTINELS = {"root", "null"}


@router.get("", response_model=list[FolderResponse])
async def list_folders(
    parent_id: str | None = Query(None, description="Exact parent id, or 'root' for top-level folders"),
    provider: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Folder]:
    if parent_id in ROOT_SENTINELS:
        return await folder_tree.list_folders(db, user.id, root_only=True, provider=provider)
    return await folder_tree.list_folders(db, user.id, parent_id=parent_id, provider=provider)


@router.get("/tree", response_model=FolderTreeResponse)
async def get_folder_tree(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> FolderTreeResponse:
    return await folder_tree.get_folder_tree(db, user.id)


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(
    folder_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Folder:
    return await folder_tree.get_folder(db, user.id, folder_id)


@router.post("", response_model=FolderResponse, status_code=201)
async def create_folder(
    data: FolderCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Folder:
    folder = await folder_tree.create_folder(db, user.id, data)
    await db.commit()
    await db.refresh(folder)
    return folder


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    data: FolderUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Folder:
    folder = await folder_tree.update_folder(db, user.id, folder_id, data)
    await db.commit()
    await db.refresh(folder)
    return folder


@router.delete("/{folder_id}", status_code=204)
async def delete_folder(
    folder_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> None:
    await folder_tree.delete_folder(db, user.id, folder_id)
    await db.commit()
