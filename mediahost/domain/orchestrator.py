"""Streaming orchestrator facade.

Entry point used by request handlers. Every operation validates its identity,
requires an initialized session and returns a typed result; nothing here
raises. Operations on the same identity are not serialized; callers that may
run them concurrently must serialize per identity.
"""

from __future__ import annotations

from collections.abc import Iterable

import httpx
from loguru import logger

from mediahost.app_config import OrchestratorConfig
from mediahost.domain.application.lifecycle import ApplicationLifecycle
from mediahost.domain.application.prober import ApplicationStateProber
from mediahost.domain.application.provisioner import ApplicationProvisioner
from mediahost.domain.playlist.locator import PlaylistPublisherLocator
from mediahost.domain.relay.reconciler import PushPublishReconciler
from mediahost.domain.relay.relay_url import resolve_relay_target
from mediahost.domain.relay.repository import RemoteTextPushPublishRepository
from mediahost.domain.session import (
    Ready,
    ServerRegistry,
    SessionState,
    TenantDirectory,
    Uninitialized,
    open_session,
    resolve_login_name,
)
from mediahost.domain.status.reporter import StreamStatusReporter
from mediahost.schemas.application import (
    ApplicationState,
    ApplicationTemplateDefaults,
    ProvisionOutcome,
    ProvisionResult,
    validate_application_identity,
)
from mediahost.schemas.playlist import PlaylistDescriptor, PlaylistNotFound
from mediahost.schemas.relay import RelayTarget
from mediahost.schemas.results import (
    ApplicationStateResult,
    ApplicationStatusResult,
    ConnectionCheck,
    HttpActionResult,
    InitResult,
    OperationResult,
    PlaybackUrls,
    PlaylistStreamResult,
    PushPublishResult,
    RecordingsResult,
    RelayOutcome,
    UserLimits,
    UserLimitsResult,
)
from mediahost.schemas.server import TenantRecord
from mediahost.schemas.stream import IncomingStreamsReport, StreamDetails, StreamSessionSnapshot
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.shared.errors import ErrorCode, MediaHostError, ValidationFailure

NOT_INITIALIZED = "Orchestrator session is not initialized"


class StreamingOrchestrator:
    def __init__(
        self,
        config: OrchestratorConfig,
        channel: RemoteExecutionChannel,
        registry: ServerRegistry | None = None,
        tenants: TenantDirectory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._channel = channel
        self._registry = registry
        self._tenants = tenants
        self._transport = transport
        self._session: SessionState = Uninitialized()

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def is_ready(self) -> bool:
        return isinstance(self._session, Ready)

    # Session

    async def initialize(self, tenant_id: str | None = None) -> InitResult:
        """Resolve the server endpoint and select the control surface.

        Calling it again replaces the current session.
        """
        try:
            session = await open_session(
                self._config,
                self._channel,
                registry=self._registry,
                tenant_id=tenant_id,
                transport=self._transport,
            )
        except Exception as e:
            logger.exception("Orchestrator initialization failed")
            self._session = Uninitialized()
            return InitResult(success=False, error=str(e), errcode=str(ErrorCode.E_INTERNAL_ERROR))

        self._session = session
        return InitResult(success=True, server_host=session.endpoint.host, surface=session.surface.name)

    async def resolve_login(self, tenant_id: str) -> str:
        """Application identity of a tenant; falls back to `user_<tenant_id>`."""
        record: TenantRecord | None = None
        if self._tenants is not None:
            try:
                record = await self._tenants.find_tenant(tenant_id)
            except Exception:
                logger.exception(f"Tenant lookup for {tenant_id} failed")
        return resolve_login_name(record, tenant_id)

    def _ready(self) -> Ready | None:
        if self.is_ready:
            return self._session
        logger.warning(NOT_INITIALIZED)
        return None

    def _not_ready(self, result_cls: type[OperationResult], **fields):
        return result_cls(
            success=False,
            error=NOT_INITIALIZED,
            errcode=str(ErrorCode.E_SESSION_NOT_INITIALIZED),
            **fields,
        )

    def _invalid(self, result_cls: type[OperationResult], e: ValidationFailure, **fields):
        logger.warning(f"Rejected request: {e.errmesg}")
        return result_cls(success=False, error=e.errmesg, errcode=e.errcode, **fields)

    def _server_id(self, session: Ready) -> str:
        return session.endpoint.control_channel_id

    def _reporter(self, session: Ready) -> StreamStatusReporter:
        return StreamStatusReporter(session.http, self._config)

    def _reconciler(self, session: Ready) -> PushPublishReconciler:
        repository = RemoteTextPushPublishRepository(
            self._channel,
            self._server_id(session),
            session.commands,
            self._config,
        )
        return PushPublishReconciler(repository)

    # Connectivity

    async def test_connection(self) -> ConnectionCheck:
        session = self._ready()
        if session is None:
            return self._not_ready(ConnectionCheck)

        result = await session.surface.server_version()
        if result.success:
            logger.info(f"✅ Media server reachable via {result.surface}, version {result.version}")
        return ConnectionCheck(
            success=result.success,
            version=result.version,
            surface=result.surface,
            error=result.error,
            details=result.details,
        )

    # Application lifecycle

    async def probe_application(self, identity: str) -> ApplicationStateResult:
        session = self._ready()
        if session is None:
            return self._not_ready(ApplicationStateResult, application=identity)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(ApplicationStateResult, e, application=identity)

        state = await session.surface.application_state(identity)
        return ApplicationStateResult(success=True, application=identity, state=state)

    async def ensure_provisioned(
        self,
        identity: str,
        defaults: ApplicationTemplateDefaults | None = None,
    ) -> ProvisionResult:
        session = self._ready()
        if session is None:
            return ProvisionResult(application=identity, outcome=ProvisionOutcome.FAILED, reason=NOT_INITIALIZED)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return ProvisionResult(application=identity, outcome=ProvisionOutcome.FAILED, reason=e.errmesg)

        provisioner = ApplicationProvisioner(
            self._channel,
            self._server_id(session),
            session.commands,
            session.surface,
            self._config,
        )
        return await provisioner.ensure_provisioned(identity, defaults)

    async def playlist_application_status(self, identity: str) -> ApplicationStatusResult:
        """Whether the management CLI reports the application instance as loaded."""
        session = self._ready()
        if session is None:
            return self._not_ready(ApplicationStatusResult, application=identity)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(ApplicationStatusResult, e, application=identity)

        prober = ApplicationStateProber(
            self._channel,
            self._server_id(session),
            session.commands,
            self._config.markers,
        )
        output = await prober.instance_info(identity)
        if output is None:
            return ApplicationStatusResult(
                success=False,
                application=identity,
                error=f"Instance info for {identity} unavailable",
            )

        markers = self._config.markers
        loaded = markers.has_any(output, markers.loaded_markers)
        if loaded:
            logger.info(f"✅ Application {identity} is loaded; its playlist stops once viewers disconnect")
        else:
            logger.info(f"Application {identity} is not loaded")
        return ApplicationStatusResult(success=True, application=identity, loaded=loaded, raw_output=output)

    # Playlists

    async def locate_playlist(self, identity: str, file_name: str) -> PlaylistDescriptor | PlaylistNotFound:
        session = self._ready()
        if session is None:
            return PlaylistNotFound(application=identity, file_name=file_name, reason=NOT_INITIALIZED)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return PlaylistNotFound(application=identity, file_name=file_name, reason=e.errmesg)

        locator = PlaylistPublisherLocator(self._channel, self._server_id(session), session.commands, self._config)
        return await locator.locate(identity, file_name)

    def playback_urls(self, identity: str, file_name: str) -> PlaybackUrls:
        playback = self._config.playback
        stream = f"{identity}/smil:{file_name}"
        return PlaybackUrls(
            hls=f"{playback.hls_scheme}://{playback.host}:{playback.hls_port}/{stream}/playlist.m3u8",
            rtmp=f"rtmp://{playback.host}:{playback.rtmp_port}/{stream}",
            rtsp=f"rtsp://{playback.host}:{playback.rtsp_port}/{stream}",
        )

    async def start_playlist_stream(
        self,
        identity: str,
        file_name: str | None = None,
        defaults: ApplicationTemplateDefaults | None = None,
        relay_targets: Iterable[RelayTarget] = (),
    ) -> PlaylistStreamResult:
        """Bring up a tenant's scheduled playlist.

        Provisions the application when it is not running, validates the
        playlist file and writes one relay rule per target. A failing relay
        target is reported in `relays` without failing the whole operation.
        """
        file_name = file_name or self._config.default_playlist_file
        session = self._ready()
        if session is None:
            return self._not_ready(PlaylistStreamResult, application=identity)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(PlaylistStreamResult, e, application=identity)

        logger.info(f"🎬 Starting playlist {file_name} for {identity}")
        provision_outcome = None
        state = await session.surface.application_state(identity)
        if state != ApplicationState.RUNNING:
            logger.info(f"📁 Application {identity} is {state}, provisioning")
            provisioned = await self.ensure_provisioned(identity, defaults)
            logger.info(
                f"Application {identity}: {state} -> {ApplicationLifecycle.state_after_provisioning(provisioned)}"
            )
            if not provisioned.success:
                return PlaylistStreamResult(
                    success=False,
                    application=identity,
                    provision_outcome=provisioned.outcome,
                    error=provisioned.reason or f"Could not provision application {identity}",
                    details=provisioned.raw_output,
                )
            provision_outcome = provisioned.outcome

        playlist = await self.locate_playlist(identity, file_name)
        if isinstance(playlist, PlaylistNotFound):
            return PlaylistStreamResult(
                success=False,
                application=identity,
                provision_outcome=provision_outcome,
                error=playlist.reason,
            )

        relays = [await self._configure_relay(session, identity, target) for target in relay_targets]
        failed = [r.name for r in relays if not r.success]
        if failed:
            logger.warning(f"⚠️ Relay targets not configured for {identity}: {failed}")

        logger.info(f"✅ Playlist stream started for {identity}")
        return PlaylistStreamResult(
            success=True,
            application=identity,
            playlist_path=playlist.resolved_path,
            provision_outcome=provision_outcome,
            urls=self.playback_urls(identity, file_name),
            relays=relays,
        )

    async def _stream_file_action(self, identity: str, file_name: str | None, action: str) -> HttpActionResult:
        file_name = file_name or self._config.default_playlist_file
        session = self._ready()
        if session is None:
            return self._not_ready(HttpActionResult, action=action, target=file_name)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(HttpActionResult, e, action=action, target=file_name)

        result = await session.http.stream_file_action(identity, file_name, action)
        if result.available:
            logger.info(f"✅ Stream file {identity}/{file_name}: {action}")
        return HttpActionResult(success=result.available, action=action, target=file_name, error=result.error)

    async def stop_playlist_stream(self, identity: str, file_name: str | None = None) -> HttpActionResult:
        return await self._stream_file_action(identity, file_name, "disconnect")

    async def pause_playlist_stream(self, identity: str, file_name: str | None = None) -> HttpActionResult:
        return await self._stream_file_action(identity, file_name, "pause")

    async def resume_playlist_stream(self, identity: str, file_name: str | None = None) -> HttpActionResult:
        return await self._stream_file_action(identity, file_name, "play")

    # Relays

    async def _configure_relay(self, session: Ready, identity: str, target: RelayTarget) -> RelayOutcome:
        try:
            destination = resolve_relay_target(
                target,
                self._config.default_relay_application,
                self._config.relay_default_ports,
            )
            result = await self._reconciler(session).upsert_relay(identity, destination)
        except (MediaHostError, OSError) as e:
            logger.error(f"❌ Relay {target.name} for {identity} failed: {e}")
            return RelayOutcome(name=target.name, success=False, error=str(e))
        return RelayOutcome(name=target.name, success=True, entry=result.entry, replaced=result.replaced)

    async def configure_push_publish(self, identity: str, target: RelayTarget | str) -> PushPublishResult:
        """Point the identity's relay rule at `target`, replacing any previous rule.

        `target` is a full destination URL or a platform with its own stream key.
        """
        session = self._ready()
        if session is None:
            return self._not_ready(PushPublishResult, application=identity)
        if isinstance(target, str):
            target = RelayTarget(name="custom", rtmp_url=target)

        try:
            validate_application_identity(identity)
            destination = resolve_relay_target(
                target,
                self._config.default_relay_application,
                self._config.relay_default_ports,
            )
            relay = await self._reconciler(session).upsert_relay(identity, destination)
        except ValidationFailure as e:
            return self._invalid(PushPublishResult, e, application=identity)
        except (MediaHostError, OSError) as e:
            logger.error(f"❌ Push publish for {identity} failed: {e}")
            return PushPublishResult(
                success=False,
                application=identity,
                error=str(e),
                errcode=getattr(e, "errcode", str(ErrorCode.E_REMOTE_COMMAND)),
                details=getattr(e, "output", None),
            )
        return PushPublishResult(success=True, application=identity, relay=relay)

    # Live stream status

    async def current_snapshot(self, identity: str) -> StreamSessionSnapshot:
        """Live stream status of `identity`; zeroed when the identity is invalid or nothing matches."""
        fallback = StreamSessionSnapshot.inactive(f"{identity}{self._config.live_stream_suffix}")
        session = self._ready()
        if session is None:
            return fallback
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            logger.warning(f"Rejected request: {e.errmesg}")
            return fallback
        return await self._reporter(session).current_snapshot(identity)

    async def application_stats(self, identity: str) -> StreamSessionSnapshot:
        session = self._ready()
        if session is None:
            return StreamSessionSnapshot.inactive(identity)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            logger.warning(f"Rejected request: {e.errmesg}")
            return StreamSessionSnapshot.inactive(identity)
        return await self._reporter(session).application_stats(identity)

    async def incoming_streams_for(self, identity: str) -> IncomingStreamsReport:
        session = self._ready()
        if session is None:
            return IncomingStreamsReport(success=False, identity=identity, error=NOT_INITIALIZED)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            logger.warning(f"Rejected request: {e.errmesg}")
            return IncomingStreamsReport(success=False, identity=identity, error=e.errmesg)
        return await self._reporter(session).incoming_streams_for(identity)

    async def list_incoming_streams(self) -> IncomingStreamsReport:
        session = self._ready()
        if session is None:
            return IncomingStreamsReport(success=False, error=NOT_INITIALIZED)
        return await self._reporter(session).list_incoming_streams()

    async def stream_details(self, stream_name: str) -> StreamDetails:
        session = self._ready()
        if session is None:
            return StreamDetails(success=False, error=NOT_INITIALIZED)
        return await self._reporter(session).stream_details(stream_name)

    async def stop_live_stream(self, identity: str) -> HttpActionResult:
        """Disconnect the encoder publishing `<identity>_live` on the live application."""
        stream_name = f"{identity}{self._config.live_stream_suffix}"
        session = self._ready()
        if session is None:
            return self._not_ready(HttpActionResult, action="disconnectStream", target=stream_name)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(HttpActionResult, e, action="disconnectStream", target=stream_name)

        logger.info(f"🛑 Stopping live stream {stream_name}")
        result = await session.http.disconnect_incoming_stream(self._config.live_application, stream_name)
        return HttpActionResult(
            success=result.available,
            action="disconnectStream",
            target=stream_name,
            error=result.error,
        )

    # Recordings and limits

    async def list_recordings(self, identity: str) -> RecordingsResult:
        session = self._ready()
        if session is None:
            return self._not_ready(RecordingsResult, application=identity)
        try:
            validate_application_identity(identity)
        except ValidationFailure as e:
            return self._invalid(RecordingsResult, e, application=identity)

        result = await session.http.list_dvr_stores(identity)
        if not result.available:
            return RecordingsResult(success=False, application=identity, error=result.error)

        data = result.data if isinstance(result.data, dict) else {}
        return RecordingsResult(
            success=True,
            application=identity,
            recordings=data.get("dvrConverterStores") or [],
            path=self._config.recordings_dir(identity),
        )

    def limits_for(self, record: TenantRecord | None) -> UserLimits:
        record = record or TenantRecord(tenant_id="")
        return UserLimits(
            bitrate_limit_kbps=record.bitrate_limit_kbps or self._config.default_bitrate_kbps,
            viewer_limit=record.viewer_limit or self._config.default_viewer_limit,
        )

    def check_user_limits(
        self,
        limits: UserLimits | TenantRecord | None,
        requested_bitrate_kbps: int | None = None,
    ) -> UserLimitsResult:
        """Clamp a requested bitrate to the tenant's plan and warn when it exceeds it."""
        if not isinstance(limits, UserLimits):
            limits = self.limits_for(limits)

        max_bitrate = limits.bitrate_limit_kbps
        warnings = []
        if requested_bitrate_kbps:
            allowed = min(requested_bitrate_kbps, max_bitrate)
            if requested_bitrate_kbps > max_bitrate:
                warnings.append(
                    f"Requested bitrate ({requested_bitrate_kbps} kbps) exceeds the plan limit ({max_bitrate} kbps)"
                )
        else:
            allowed = max_bitrate

        return UserLimitsResult(
            success=True,
            limits=limits,
            requested_bitrate_kbps=requested_bitrate_kbps or max_bitrate,
            allowed_bitrate_kbps=allowed,
            warnings=warnings,
        )
