from notesync.models.folder import Folder
from notesync.models.note import Note
from notesync.models.share_link import ShareLink
from notesync.models.user import User

__all__ = ["User", "Folder", "Note", "ShareLink"]
