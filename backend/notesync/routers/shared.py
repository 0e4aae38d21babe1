"""Anonymous access to shared notes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.database import get_db
from notesync.dependencies import get_public_base_url
from notesync.middleware.rate_limit import shared_limiter
from notesync.schemas.share_link import SharedNoteResponse
from notesync.services import share_links

router = APIRouter(prefix="/shared", tags=["shared"])


@router.get("/{note_id}/{token}", response_model=SharedNoteResponse)
@shared_limiter
async def get_shared_note(
    request: Request,
    note_id: str,
    token: str,
    db: AsyncSession = Depends(get_db),
) -> SharedNoteResponse:
    url = share_links.build_share_url(get_public_base_url(request), note_id, token)
    shared = await share_links.resolve_share_link(db, url)
    await db.commit()
    return shared
