from notesync.schemas.auth import AuthConfig, Token, TokenData, UserCreate, UserLogin, UserResponse
from notesync.schemas.folder import FolderCreate, FolderResponse, FolderTree, FolderTreeResponse, FolderUpdate, NoteRef
from notesync.schemas.note import NoteCreate, NoteHierarchyUpdate, NoteLockUpdate, NoteResponse, NoteUpdate
from notesync.schemas.share_link import ShareLinkCreate, ShareLinkResponse, SharedNoteResponse

__all__ = [
    "AuthConfig",
    "Token",
    "TokenData",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "FolderCreate",
    "FolderResponse",
    "FolderTree",
    "FolderTreeResponse",
    "FolderUpdate",
    "NoteRef",
    "NoteCreate",
    "NoteHierarchyUpdate",
    "NoteLockUpdate",
    "NoteResponse",
    "NoteUpdate",
    "ShareLinkCreate",
    "ShareLinkResponse",
    "SharedNoteResponse",
]
