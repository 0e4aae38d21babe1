from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.database import get_db
from notesync.dependencies import get_current_user, get_public_base_url
from notesync.models import ShareLink, User
from notesync.schemas.share_link import ShareLinkCreate, ShareLinkResponse
from notesync.services import share_links

router = APIRouter(prefix="/share-links", tags=["share-links"])


@router.get("/note/{note_id}", response_model=list[ShareLinkResponse])
async def list_share_links(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[ShareLink]:
    return await share_links.list_share_links(db, user.id, note_id)


@router.post("", response_model=ShareLinkResponse, status_code=201)
async def create_share_link(
    data: ShareLinkCreate,
    base_url: str = Depends(get_public_base_url),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ShareLink:
    link = await share_links.create_share_link(db, user.id, data, base_url)
    await db.commit()
    await db.refresh(link)
    return link


@router.delete("/{link_id}", status_code=204)
async def delete_share_link(
    link_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> None:
    await share_links.delete_share_link(db, user.id, link_id)
    await db.commit()
