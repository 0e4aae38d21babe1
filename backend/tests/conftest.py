import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from notesync.database import Base, get_db
from notesync.main import app
from notesync.models import Folder, Note, User
from notesync.schemas.folder import FolderCreate
from notesync.schemas.note import NoteCreate
from notesync.services import folder_tree, note_tree


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def user(db) -> User:
    user = User(email="alice@example.com", hashed_password="not-a-real-hash")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_user(db) -> User:
    user = User(email="bob@example.com", hashed_password="not-a-real-hash")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def folder(db, user) -> Folder:
    return await folder_tree.create_folder(db, user.id, FolderCreate(name="Notes"))


async def make_note(db, user_id: str, folder_id: str, title: str = "Note", **fields) -> Note:
    return await note_tree.create_note(
        db, user_id, NoteCreate(title=title, folder_id=folder_id, **fields)
    )


async def exists(db, model, entity_id: str) -> bool:
    result = await db.execute(select(model.id).where(model.id == entity_id))
    return result.scalar_one_or_none() is not None


def fail_note_delete_on_call(monkeypatch, call_number: int) -> None:
    """Make the n-th note subtree delete hit a storage error."""
    real_delete = note_tree.delete_note_tree
    calls = 0

    async def flaky_delete(db, note):
        nonlocal calls
        calls += 1
        if calls == call_number:
            raise OperationalError("DELETE FROM notes", {}, Exception("disk I/O error"))
        return await real_delete(db, note)

    monkeypatch.setattr(note_tree, "delete_note_tree", flaky_delete)


@pytest.fixture
async def client(session_maker):
    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_headers(client) -> dict[str, str]:
    resp = await client.post(
        "/auth/register", json={"email": "carol@example.com", "password": "s3cret-pass"}
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
