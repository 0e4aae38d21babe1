"""Errors raised by the note store services. Routers let them propagate; main.py maps them to HTTP."""


class NoteStoreError(RuntimeError):
    """Base class for note store failures."""


class NotFoundError(NoteStoreError):
    def __init__(self, kind: str, entity_id: str | None) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ValidationError(NoteStoreError):
    """Malformed or inconsistent input, e.g. a move that would create a cycle."""


class ShareLinkExpiredError(NoteStoreError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__("Share link has expired")


class DeletionFailedError(NoteStoreError):
    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"Failed to delete {kind} {entity_id}")


class NoteLockedError(NoteStoreError):
    def __init__(self, note_id: str) -> None:
        self.note_id = note_id
        super().__init__(f"Note {note_id} is locked")
