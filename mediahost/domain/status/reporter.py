"""Live stream status over the HTTP management API.

Every method here returns display data; an unreachable API or an unknown
stream yields a zeroed or empty result, never an exception.
"""

from datetime import timedelta

from loguru import logger
from pydantic import ValidationError

from mediahost.app_config import OrchestratorConfig
from mediahost.schemas.stream import (
    ApplicationMonitoring,
    IncomingStream,
    IncomingStreamList,
    IncomingStreamsReport,
    StreamDetails,
    StreamSessionSnapshot,
)
from mediahost.services.media_server.media_server_client import MediaServerClient
from mediahost.services.media_server.media_server_schemas import HttpResult


def _stream_rules(identity: str, suffix: str):
    live_name = f"{identity}{suffix}"
    return (
        lambda name: name == identity,
        lambda name: name == live_name,
        lambda name: identity in name,
    )


def match_stream(streams: list[IncomingStream], identity: str, suffix: str = "_live") -> IncomingStream | None:
    """Pick the stream of `identity`: exact name, then `<identity><suffix>`, then substring.

    Each rule is tried across the whole list before the next one.
    """
    for rule in _stream_rules(identity, suffix):
        for stream in streams:
            if rule(stream.name):
                return stream
    return None


def matching_streams(streams: list[IncomingStream], identity: str, suffix: str = "_live") -> list[IncomingStream]:
    """All streams of `identity`, ordered by match precedence."""
    ordered: list[IncomingStream] = []
    for rule in _stream_rules(identity, suffix):
        ordered.extend(s for s in streams if rule(s.name) and s not in ordered)
    return ordered


class StreamStatusReporter:
    def __init__(self, http: MediaServerClient, config: OrchestratorConfig):
        self._http = http
        self._config = config

    def _parse_streams(self, result: HttpResult) -> list[IncomingStream] | None:
        if not result.available:
            return None
        try:
            return IncomingStreamList.model_validate(result.data or {}).incoming_streams
        except ValidationError as e:
            logger.warning(f"Unexpected incoming streams body: {e}")
            return None

    async def _incoming_streams(self) -> tuple[list[IncomingStream] | None, HttpResult]:
        result = await self._http.list_incoming_streams(self._config.live_application)
        return self._parse_streams(result), result

    async def current_snapshot(self, identity: str) -> StreamSessionSnapshot:
        """Status of the live stream published by `identity`."""
        fallback = StreamSessionSnapshot.inactive(f"{identity}{self._config.live_stream_suffix}")
        streams, _ = await self._incoming_streams()
        if not streams:
            return fallback

        stream = match_stream(streams, identity, self._config.live_stream_suffix)
        if stream is None:
            return fallback
        return StreamSessionSnapshot.from_incoming_stream(stream)

    async def application_stats(self, application: str) -> StreamSessionSnapshot:
        """Current connections, inbound rate and uptime of a whole application."""
        result = await self._http.get_application_monitoring(application)
        if not result.available:
            return StreamSessionSnapshot.inactive(application)
        try:
            monitoring = ApplicationMonitoring.model_validate(result.data or {})
        except ValidationError as e:
            logger.warning(f"Unexpected monitoring body for {application}: {e}")
            return StreamSessionSnapshot.inactive(application)

        return StreamSessionSnapshot(
            stream_name=application,
            viewer_count=monitoring.connections_current,
            bitrate_bytes_per_sec=int(monitoring.messages_in_bytes_rate),
            uptime=timedelta(milliseconds=monitoring.time_running_ms),
            is_active=monitoring.connections_current > 0,
        )

    async def incoming_streams_for(self, identity: str) -> IncomingStreamsReport:
        streams, result = await self._incoming_streams()
        if streams is None:
            return IncomingStreamsReport(success=False, identity=identity, error=result.error or "Invalid response")

        own = matching_streams(streams, identity, self._config.live_stream_suffix)
        report = IncomingStreamsReport(success=True, streams=own, total_streams=len(streams), identity=identity)
        if report.has_active_streams:
            logger.info(f"🎯 Streams found for {identity}: {[s.name for s in own]}")
        else:
            logger.info(f"No stream from {identity} among {len(streams)} incoming streams")
        return report

    async def list_incoming_streams(self) -> IncomingStreamsReport:
        streams, result = await self._incoming_streams()
        if streams is None:
            return IncomingStreamsReport(success=False, error=result.error or "Invalid response")
        return IncomingStreamsReport(success=True, streams=streams, total_streams=len(streams))

    async def stream_details(self, stream_name: str) -> StreamDetails:
        result = await self._http.get_incoming_stream(self._config.live_application, stream_name)
        if result.not_found:
            return StreamDetails(success=False, error=f"Stream {stream_name} is not publishing")
        if not result.available:
            return StreamDetails(success=False, error=result.error)
        data = dict(result.data) if isinstance(result.data, dict) else {}
        data.setdefault("name", stream_name)
        try:
            stream = IncomingStream.model_validate(data)
        except ValidationError as e:
            return StreamDetails(success=False, error=f"Invalid response: {e}")
        return StreamDetails(success=True, stream=stream, is_active=True)
