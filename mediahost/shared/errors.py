"""Error types raised inside the orchestrator.

Only `ValidationFailure` is ever surfaced to an immediate caller; every other
failure is converted to a typed result at the component boundary.
"""

from enum import Enum
from uuid import uuid4


class ErrorCode(str, Enum):
    """Error codes carried by `MediaHostError`."""

    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_IDENTITY = "E_INVALID_IDENTITY"
    E_INVALID_RELAY_URL = "E_INVALID_RELAY_URL"
    E_REMOTE_COMMAND = "E_REMOTE_COMMAND"
    E_SESSION_NOT_INITIALIZED = "E_SESSION_NOT_INITIALIZED"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class MediaHostError(Exception):
    """Base error with an error code, a message and a short resolution id for logs."""

    def __init__(self, errcode: ErrorCode | str, errmesg: str):
        self.errcode = str(errcode)
        self.errmesg = errmesg
        self.erresid = uuid4().hex[:10]
        super().__init__(f"{self.errcode}: {errmesg}")


class ValidationFailure(MediaHostError):
    """Malformed input (identity, relay URL, playlist file name)."""

    def __init__(self, errmesg: str, errcode: ErrorCode | str = ErrorCode.E_INVALID_REQUEST):
        super().__init__(errcode, errmesg)


class RemoteCommandFailure(MediaHostError):
    """A remote command failed or its output carried an error marker.

    The raw output is attached for diagnostics.
    """

    def __init__(self, errmesg: str, *, command: str | None = None, output: str | None = None):
        super().__init__(ErrorCode.E_REMOTE_COMMAND, errmesg)
        self.command = command
        self.output = output
