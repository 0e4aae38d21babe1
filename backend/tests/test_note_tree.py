from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from notesync.exceptions import DeletionFailedError, NoteLockedError, NotFoundError, ValidationError
from notesync.models import Folder, Note, ShareLink
from notesync.schemas.folder import FolderCreate
from notesync.schemas.note import NoteCreate, NoteUpdate
from notesync.schemas.share_link import ShareLinkCreate
from notesync.services import folder_tree, note_tree, share_links
from tests.conftest import exists, fail_note_delete_on_call, make_note


async def test_create_root_note(db, user, folder):
    note = await make_note(db, user.id, folder.id, "A", content="hello brave new world")
    assert note.level == 0
    assert note.parent_id is None
    assert note.plain_content == "hello brave new world"
    assert note.word_count == 4
    assert note.character_count == 21
    assert folder.note_count == 1


async def test_empty_content_has_zero_counts(db, user, folder):
    note = await make_note(db, user.id, folder.id, "Empty", content="")
    assert note.word_count == 0
    assert note.character_count == 0


async def test_blank_title_gets_default(db, user, folder):
    note = await make_note(db, user.id, folder.id, "  ")
    assert note.title == "Untitled Note"


async def test_structured_content_metrics(db, user, folder):
    content = {"type": "doc", "content": [{"text": "two words"}]}
    note = await make_note(db, user.id, folder.id, content=content)
    assert note.content == content
    assert note.plain_content == note_tree.derive_plain_content(content)
    assert note.character_count == len(note.plain_content)
    assert note.word_count == len(note.plain_content.split())


async def test_nested_levels(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B", parent_id=a.id)
    c = await make_note(db, user.id, folder.id, "C", parent_id=b.id)
    assert (a.level, b.level, c.level) == (0, 1, 2)
    assert folder.note_count == 3


async def test_create_requires_known_folder(db, user):
    with pytest.raises(NotFoundError):
        await note_tree.create_note(db, user.id, NoteCreate(title="x", folder_id="missing"))


async def test_create_with_unknown_parent(db, user, folder):
    with pytest.raises(NotFoundError) as exc_info:
        await make_note(db, user.id, folder.id, parent_id="missing")
    assert exc_info.value.kind == "parent note"
    assert folder.note_count == 0


async def test_update_content_recomputes_metrics(db, user, folder):
    note = await make_note(db, user.id, folder.id, content="one two three")
    await note_tree.update_note(db, user.id, note.id, NoteUpdate(content="four"))
    assert (note.plain_content, note.word_count, note.character_count) == ("four", 1, 4)

    await note_tree.update_note(db, user.id, note.id, NoteUpdate(content=""))
    assert (note.plain_content, note.word_count, note.character_count) == ("", 0, 0)


async def test_update_without_content_keeps_metrics(db, user, folder):
    note = await make_note(db, user.id, folder.id, content="one two three")
    before = note.updated_at
    await note_tree.update_note(db, user.id, note.id, NoteUpdate(title="Renamed", tags=["x"]))
    assert note.title == "Renamed"
    assert note.tags == ["x"]
    assert note.word_count == 3
    assert note.updated_at >= before


async def test_move_between_folders_adjusts_counts(db, user, folder):
    other = await folder_tree.create_folder(db, user.id, FolderCreate(name="Other"))
    note = await make_note(db, user.id, folder.id)
    await note_tree.update_note(db, user.id, note.id, NoteUpdate(folder_id=other.id))
    assert note.folder_id == other.id
    assert (folder.note_count, other.note_count) == (0, 1)


async def test_locked_note_rejects_content_changes(db, user, folder):
    note = await make_note(db, user.id, folder.id, content="secret", is_locked=True)
    with pytest.raises(NoteLockedError):
        await note_tree.update_note(db, user.id, note.id, NoteUpdate(content="changed"))
    with pytest.raises(NoteLockedError):
        await note_tree.update_note(db, user.id, note.id, NoteUpdate(title="changed"))
    assert note.plain_content == "secret"


async def test_locked_note_allows_metadata_and_unlocking_edit(db, user, folder):
    note = await make_note(db, user.id, folder.id, "T", content="secret", is_locked=True)
    await note_tree.update_note(db, user.id, note.id, NoteUpdate(tags=["kept"], title="T"))
    assert note.tags == ["kept"]

    await note_tree.update_note(db, user.id, note.id, NoteUpdate(content="open", is_locked=False))
    assert note.is_locked is False
    assert note.plain_content == "open"


async def test_blank_title_on_locked_default_title_is_not_an_edit(db, user, folder):
    note = await make_note(db, user.id, folder.id, "", is_locked=True)
    assert note.title == "Untitled Note"

    await note_tree.update_note(db, user.id, note.id, NoteUpdate(title="  "))
    assert note.title == "Untitled Note"


async def test_lock_toggle(db, user, folder):
    note = await make_note(db, user.id, folder.id)
    await note_tree.set_lock(db, user.id, note.id, True)
    assert note.is_locked is True
    await note_tree.set_lock(db, user.id, note.id, False)
    assert note.is_locked is False


async def test_reparent_cascades_levels(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B")
    c = await make_note(db, user.id, folder.id, "C", parent_id=b.id)
    d = await make_note(db, user.id, folder.id, "D", parent_id=c.id)

    await note_tree.reparent_note(db, user.id, b.id, a.id)
    assert (b.level, c.level, d.level) == (1, 2, 3)

    await note_tree.reparent_note(db, user.id, b.id, None)
    assert b.parent_id is None
    assert (b.level, c.level, d.level) == (0, 1, 2)


async def test_reparent_rejects_cycles(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B", parent_id=a.id)
    with pytest.raises(ValidationError):
        await note_tree.reparent_note(db, user.id, a.id, b.id)
    with pytest.raises(ValidationError):
        await note_tree.reparent_note(db, user.id, a.id, a.id)


async def test_reparent_unknown_parent(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    with pytest.raises(NotFoundError):
        await note_tree.reparent_note(db, user.id, a.id, "missing")


async def test_delete_cascades_to_descendants_and_links(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B", parent_id=a.id)
    c = await make_note(db, user.id, folder.id, "C", parent_id=b.id)
    link_a = await share_links.create_share_link(
        db, user.id, ShareLinkCreate(note_id=a.id), "http://example.com"
    )
    link_c = await share_links.create_share_link(
        db, user.id, ShareLinkCreate(note_id=c.id), "http://example.com"
    )
    assert folder.note_count == 3

    removed = await note_tree.delete_note(db, user.id, a.id)
    await db.commit()

    assert removed == 3
    for note in (a, b, c):
        assert not await exists(db, Note, note.id)
    assert not await exists(db, ShareLink, link_a.id)
    assert not await exists(db, ShareLink, link_c.id)
    assert folder.note_count == 0


async def test_failed_cascade_reports_note_and_rolls_back(db, user, folder, monkeypatch):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B", parent_id=a.id)
    a_id, b_id = a.id, b.id
    await db.commit()
    fail_note_delete_on_call(monkeypatch, 2)

    with pytest.raises(DeletionFailedError) as excinfo:
        await note_tree.delete_note(db, user.id, a_id)
    assert excinfo.value.kind == "note"
    assert excinfo.value.entity_id == a_id
    assert isinstance(excinfo.value.__cause__, OperationalError)

    await db.rollback()
    assert await exists(db, Note, a_id)
    assert await exists(db, Note, b_id)


async def test_delete_floors_note_count(db, user, folder):
    note = await make_note(db, user.id, folder.id)
    folder.note_count = 0
    await note_tree.delete_note(db, user.id, note.id)
    assert folder.note_count == 0


async def test_delete_unknown_note(db, user):
    with pytest.raises(NotFoundError):
        await note_tree.delete_note(db, user.id, "missing")


async def test_notes_are_scoped_to_owner(db, user, other_user, folder):
    note = await make_note(db, user.id, folder.id)
    with pytest.raises(NotFoundError):
        await note_tree.get_note(db, other_user.id, note.id)
    assert await note_tree.list_notes(db, other_user.id) == []


async def test_search_matches_title_or_content_case_insensitively(db, user, folder):
    by_title = await make_note(db, user.id, folder.id, "Groceries", content="milk")
    by_content = await make_note(db, user.id, folder.id, "Misc", content="buy GROCERIES later")
    await make_note(db, user.id, folder.id, "Other", content="nothing here")

    found = await note_tree.search_notes(db, user.id, "groceries")
    assert {n.id for n in found} == {by_title.id, by_content.id}


async def test_search_filters(db, user, folder):
    other = await folder_tree.create_folder(db, user.id, FolderCreate(name="Other"))
    locked = await make_note(db, user.id, folder.id, "plan A", is_locked=True)
    unlocked = await make_note(db, user.id, folder.id, "plan B")
    elsewhere = await make_note(db, user.id, other.id, "plan C")

    in_folder = await note_tree.search_notes(db, user.id, "plan", folder_id=folder.id)
    only_locked = await note_tree.search_notes(db, user.id, "plan", is_locked=True)
    only_unlocked = await note_tree.search_notes(db, user.id, "plan", is_locked=False)

    assert {n.id for n in in_folder} == {locked.id, unlocked.id}
    assert [n.id for n in only_locked] == [locked.id]
    assert {n.id for n in only_unlocked} == {unlocked.id, elsewhere.id}


async def test_search_treats_wildcards_literally(db, user, folder):
    await make_note(db, user.id, folder.id, "100 percent")
    hit = await make_note(db, user.id, folder.id, "100% done")
    found = await note_tree.search_notes(db, user.id, "100%")
    assert [n.id for n in found] == [hit.id]


async def test_list_orders_by_updated_at_desc(db, user, folder):
    old = await make_note(db, user.id, folder.id, "old")
    new = await make_note(db, user.id, folder.id, "new")
    old.updated_at = datetime.utcnow() - timedelta(days=1)
    new.updated_at = datetime.utcnow()
    await db.flush()

    notes = await note_tree.list_notes(db, user.id, folder_id=folder.id)
    assert [n.id for n in notes] == [new.id, old.id]


async def test_list_children_and_roots(db, user, folder):
    a = await make_note(db, user.id, folder.id, "A")
    b = await make_note(db, user.id, folder.id, "B", parent_id=a.id)

    children = await note_tree.list_children(db, user.id, a.id)
    roots = await note_tree.list_notes(db, user.id, root_only=True)

    assert [n.id for n in children] == [b.id]
    assert [n.id for n in roots] == [a.id]


async def test_note_count_survives_concurrent_creates(db, session_maker, user, folder):
    folder_id = folder.id
    await db.commit()

    async with session_maker() as other:
        await make_note(other, user.id, folder_id, "from other session")
        await other.commit()

    await make_note(db, user.id, folder_id, "from this session")
    await db.commit()

    async with session_maker() as fresh:
        stored = await fresh.get(Folder, folder_id)
        assert stored.note_count == 2
