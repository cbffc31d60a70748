"""Scheduled playlist (SMIL) descriptor schemas."""

from pydantic import BaseModel


class PlaylistDescriptor(BaseModel):
    """A playlist file found on the remote host with recognizable playlist markup."""

    application: str
    file_name: str
    resolved_path: str
    validated: bool = True


class PlaylistNotFound(BaseModel):
    """No usable playlist file: missing everywhere, or the first match was invalid."""

    application: str
    file_name: str
    reason: str
