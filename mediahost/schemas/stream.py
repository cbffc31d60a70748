"""Live stream status schemas.

`IncomingStream` and `ApplicationMonitoring` mirror the JSON bodies of the HTTP
management API; unknown fields are ignored.
"""

from __future__ import annotations

from datetime import timedelta

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IncomingStream(BaseModel):
    """Entry of the `incomingStreams` list."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    source_ip: str | None = Field(default=None, validation_alias=AliasChoices("sourceIp", "source_ip"))
    protocol: str | None = None
    is_recording: bool = Field(
        default=False,
        validation_alias=AliasChoices("isRecording", "isRecordingSet", "is_recording"),
    )
    audio_codec: str | None = Field(default=None, validation_alias=AliasChoices("audioCodec", "audio_codec"))
    video_codec: str | None = Field(default=None, validation_alias=AliasChoices("videoCodec", "video_codec"))
    connections_current: int = Field(
        default=0,
        validation_alias=AliasChoices("connectionsCurrent", "connections_current"),
    )
    messages_in_bytes_rate: float = Field(
        default=0,
        validation_alias=AliasChoices("messagesInBytesRate", "messages_in_bytes_rate"),
    )
    time_running_ms: float = Field(
        default=0,
        validation_alias=AliasChoices("timeRunning", "time_running_ms"),
    )


class IncomingStreamList(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    incoming_streams: list[IncomingStream] = Field(
        default_factory=list,
        validation_alias=AliasChoices("incomingStreams", "incoming_streams"),
    )


class ApplicationMonitoring(BaseModel):
    """Body of `monitoring/current` for one application."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    connections_current: int = Field(
        default=0,
        validation_alias=AliasChoices("connectionsCurrent", "connections_current"),
    )
    messages_in_bytes_rate: float = Field(
        default=0,
        validation_alias=AliasChoices("messagesInBytesRate", "messages_in_bytes_rate"),
    )
    time_running_ms: float = Field(
        default=0,
        validation_alias=AliasChoices("timeRunning", "time_running_ms"),
    )


class StreamInfo(BaseModel):
    source_ip: str | None = None
    protocol: str = "RTMP"
    is_recording: bool = False
    audio_codec: str | None = None
    video_codec: str | None = None


class StreamSessionSnapshot(BaseModel):
    """Point-in-time status of one stream. Never persisted."""

    stream_name: str
    viewer_count: int = 0
    bitrate_bytes_per_sec: int = 0
    uptime: timedelta = timedelta(0)
    is_active: bool = False
    stream_info: StreamInfo | None = None

    @classmethod
    def inactive(cls, stream_name: str) -> StreamSessionSnapshot:
        return cls(stream_name=stream_name)

    @classmethod
    def from_incoming_stream(cls, stream: IncomingStream) -> StreamSessionSnapshot:
        return cls(
            stream_name=stream.name,
            viewer_count=stream.connections_current,
            bitrate_bytes_per_sec=int(stream.messages_in_bytes_rate),
            uptime=timedelta(milliseconds=stream.time_running_ms),
            is_active=True,
            stream_info=StreamInfo(
                source_ip=stream.source_ip,
                protocol=stream.protocol or "RTMP",
                is_recording=stream.is_recording,
                audio_codec=stream.audio_codec,
                video_codec=stream.video_codec,
            ),
        )


class IncomingStreamsReport(BaseModel):
    """Incoming streams visible on the live application, optionally filtered to one tenant."""

    success: bool
    streams: list[IncomingStream] = Field(default_factory=list)
    total_streams: int = 0
    identity: str | None = None
    error: str | None = None

    @property
    def has_active_streams(self) -> bool:
        return bool(self.streams)


class StreamDetails(BaseModel):
    success: bool
    stream: IncomingStream | None = None
    is_active: bool = False
    error: str | None = None
