"""Public read-only links to a single note."""

import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notesync.config import settings
from notesync.exceptions import NotFoundError, ShareLinkExpiredError
from notesync.models import Note, ShareLink
from notesync.schemas.share_link import SharedLinkInfo, SharedNote, SharedNoteResponse, ShareLinkCreate
from notesync.services import note_tree

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def generate_token() -> str:
    return secrets.token_urlsafe(settings.share_token_bytes)


def build_share_url(base_url: str, note_id: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/shared/{note_id}/{token}"


def is_expired(link: ShareLink, now: datetime | None = None) -> bool:
    if link.expires_at is None:
        return False
    now = _to_naive_utc(now) or _utcnow()
    return now > link.expires_at


async def create_share_link(
    db: AsyncSession, user_id: str, data: ShareLinkCreate, base_url: str
) -> ShareLink:
    note = await note_tree.get_note(db, user_id, data.note_id)
    token = generate_token()
    link = ShareLink(
        note_id=note.id,
        token=token,
        url=build_share_url(base_url, note.id, token),
        permissions=data.permissions,
        expires_at=_to_naive_utc(data.expires_at),
        access_count=0,
        created_at=_utcnow(),
    )
    db.add(link)
    await db.flush()
    logger.info("Share link created", extra={"share_link_id": link.id, "note_id": note.id})
    return link


async def list_share_links(db: AsyncSession, user_id: str, note_id: str) -> list[ShareLink]:
    note = await note_tree.get_note(db, user_id, note_id)
    result = await db.execute(
        select(ShareLink)
        .where(ShareLink.note_id == note.id)
        .order_by(ShareLink.created_at.desc())
    )
    return list(result.scalars().all())


async def get_share_link(db: AsyncSession, user_id: str, link_id: str) -> ShareLink:
    result = await db.execute(
        select(ShareLink)
        .join(Note, Note.id == ShareLink.note_id)
        .where(ShareLink.id == link_id, Note.user_id == user_id)
    )
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError("share link", link_id)
    return link


async def delete_share_link(db: AsyncSession, user_id: str, link_id: str) -> None:
    """Remove a link owned by the user. Unknown ids are ignored."""
    try:
        link = await get_share_link(db, user_id, link_id)
    except NotFoundError:
        logger.info("Share link already gone", extra={"share_link_id": link_id})
        return
    await db.delete(link)
    await db.flush()


async def resolve_share_link(
    db: AsyncSession, url: str, now: datetime | None = None
) -> SharedNoteResponse:
    """Resolve a public URL to a read-only note projection and count the access."""
    result = await db.execute(select(ShareLink).where(ShareLink.url == url))
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError("share link", url)
    if is_expired(link, now):
        logger.info("Expired share link requested", extra={"share_link_id": link.id})
        raise ShareLinkExpiredError(url)

    await db.execute(
        update(ShareLink)
        .where(ShareLink.id == link.id)
        .values(access_count=ShareLink.access_count + 1)
    )
    await db.refresh(link)

    note = await db.get(Note, link.note_id)
    if note is None:
        # Should not happen while note deletes cascade to their links
        logger.error("Share link points at a missing note", extra={"share_link_id": link.id})
        raise NotFoundError("note", link.note_id)

    return SharedNoteResponse(
        note=SharedNote.model_validate(note, from_attributes=True),
        share_link=SharedLinkInfo(permissions=link.permissions, expires_at=link.expires_at),
    )
