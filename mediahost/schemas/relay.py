"""Push-publish (relay) schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RelayDestination(BaseModel):
    """External endpoint a tenant stream is forwarded to."""

    scheme: str
    host: str
    port: int
    application: str
    stream_key: str = ""

    def render(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}/{self.application}/{self.stream_key}"


class RelayTarget(BaseModel):
    """Relay platform configured by a tenant.

    `rtmp_url` is either a full destination URL or a platform base URL, in which
    case `stream_key` is appended.
    """

    name: str
    rtmp_url: str
    stream_key: str | None = None


class PushPublishEntry(BaseModel):
    """One `identity=destination` line of a push-publish map file."""

    application_identity: str
    target: str

    @property
    def line(self) -> str:
        return f"{self.application_identity}={self.target}"

    @classmethod
    def from_line(cls, line: str) -> PushPublishEntry | None:
        """Parse a map line; blank lines, comments and lines without `=` yield None.

        The key is taken verbatim from column 1, the same way the line-removal
        command matches it.
        """
        raw = line.rstrip("\r\n")
        if not raw.strip() or raw.lstrip().startswith("#") or "=" not in raw:
            return None
        key, _, value = raw.partition("=")
        if not key:
            return None
        return cls(application_identity=key, target=value.strip())


class RelayUpsertResult(BaseModel):
    """Result of writing one relay rule."""

    application: str
    entry: str
    entry_written: bool = True
    replaced: bool = Field(default=False, description="An existing line for the identity was removed first")
