"""Results returned by the orchestrator facade.

Facade operations never raise; each returns one of these with `success` set
and, on failure, an `error` message and optional error code.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from mediahost.schemas.application import ApplicationState, ProvisionOutcome
from mediahost.schemas.relay import RelayUpsertResult


class OperationResult(BaseModel):
    success: bool
    error: str | None = None
    errcode: str | None = None
    details: str | None = None


class InitResult(OperationResult):
    server_host: str | None = None
    surface: str | None = None


class ConnectionCheck(OperationResult):
    version: str | None = None
    surface: str | None = None


class ApplicationStateResult(OperationResult):
    application: str | None = None
    state: ApplicationState = ApplicationState.ABSENT


class PlaybackUrls(BaseModel):
    hls: str
    rtmp: str
    rtsp: str


class RelayOutcome(BaseModel):
    """Result of configuring one relay target of a playlist stream."""

    name: str
    success: bool
    entry: str | None = None
    replaced: bool = False
    error: str | None = None


class PushPublishResult(OperationResult):
    application: str | None = None
    relay: RelayUpsertResult | None = None


class PlaylistStreamResult(OperationResult):
    application: str | None = None
    playlist_path: str | None = None
    provision_outcome: ProvisionOutcome | None = None
    urls: PlaybackUrls | None = None
    relays: list[RelayOutcome] = Field(default_factory=list)


class HttpActionResult(OperationResult):
    """Result of a best-effort HTTP action (disconnect, pause, play)."""

    action: str | None = None
    target: str | None = None


class ApplicationStatusResult(OperationResult):
    application: str | None = None
    loaded: bool = False
    raw_output: str | None = None


class RecordingsResult(OperationResult):
    application: str | None = None
    recordings: list[Any] = Field(default_factory=list)
    path: str | None = None


class UserLimits(BaseModel):
    bitrate_limit_kbps: int = Field(default=2500, gt=0)
    viewer_limit: int = Field(default=100, gt=0)


class UserLimitsResult(OperationResult):
    limits: UserLimits
    requested_bitrate_kbps: int | None = None
    allowed_bitrate_kbps: int
    warnings: list[str] = Field(default_factory=list)
