"""Control-surface selection.

The media server can be driven through its HTTP management API or through the
management CLI over the remote command channel. The HTTP port is frequently
closed, so one health probe at session start picks the surface used for the
whole session; there is no re-probing per call.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger

from mediahost.app_config import OutputMarkers
from mediahost.domain.application.prober import ApplicationStateProber
from mediahost.schemas.application import ApplicationState, ServerVersionResult, StartResult
from mediahost.services.media_server.media_server_client import MediaServerClient
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import MediaHostError

HTTP_SURFACE = "http"
REMOTE_COMMAND_SURFACE = "remote_command"


def classify_start_output(stdout: str | None, markers: OutputMarkers) -> bool:
    """True when start output shows success, already-running, or simply no error marker."""
    if not stdout or not stdout.strip():
        return False
    if markers.has_any(stdout, markers.start_success_markers):
        return True
    return not markers.has_any(stdout, markers.error_markers)


class ControlSurface(Protocol):
    name: str

    async def application_state(self, application: str) -> ApplicationState: ...

    async def start_application(self, application: str) -> StartResult: ...

    async def server_version(self) -> ServerVersionResult: ...


class RemoteCommandControlSurface:
    """Management CLI invoked over the remote execution channel."""

    name = REMOTE_COMMAND_SURFACE

    def __init__(
        self,
        channel: RemoteExecutionChannel,
        server_id: str,
        commands: CommandBuilder,
        markers: OutputMarkers,
    ):
        self._channel = channel
        self._server_id = server_id
        self._commands = commands
        self._markers = markers
        self._prober = ApplicationStateProber(channel, server_id, commands, markers)

    async def application_state(self, application: str) -> ApplicationState:
        return await self._prober.probe(application)

    async def start_application(self, application: str) -> StartResult:
        command = self._commands.start_app_instance(application)
        logger.debug(f"Starting application instance: {self._commands.mask(command)}")
        try:
            output = await self._channel.execute(self._server_id, command)
        except (MediaHostError, OSError) as e:
            logger.error(f"❌ Start command for {application} could not be executed: {e}")
            return StartResult(application=application, success=False, reason=str(e))

        if classify_start_output(output.stdout, self._markers):
            logger.info(f"✅ Application {application} is running")
            return StartResult(
                application=application,
                success=True,
                already_running=self._markers.has_any(output.stdout, self._markers.already_running_markers),
                raw_output=output.stdout,
            )

        logger.error(f"❌ Failed to start application {application}: {output.text}")
        return StartResult(
            application=application,
            success=False,
            reason=f"Start command rejected for application {application}",
            raw_output=output.text,
        )

    async def server_version(self) -> ServerVersionResult:
        try:
            output = await self._channel.execute(self._server_id, self._commands.server_version())
        except (MediaHostError, OSError) as e:
            logger.warning(f"Server version query failed: {e}")
            return ServerVersionResult(success=False, surface=self.name, error=str(e))

        stdout = output.stdout
        failed = (
            not stdout.strip()
            or self._markers.has_any(stdout, self._markers.error_markers)
            or self._markers.has_any(stdout, self._markers.exception_markers)
        )
        if failed:
            return ServerVersionResult(
                success=False,
                surface=self.name,
                error="Management CLI did not report a server version",
                details=output.text,
            )
        return ServerVersionResult(success=True, version=stdout.strip(), surface=self.name)


class HttpControlSurface:
    """HTTP management API; failures degrade to absent/failed results."""

    name = HTTP_SURFACE

    def __init__(self, http: MediaServerClient):
        self._http = http

    async def application_state(self, application: str) -> ApplicationState:
        result = await self._http.get_application_monitoring(application)
        state = ApplicationState.RUNNING if result.available else ApplicationState.ABSENT
        logger.info(f"🔍 Application {application} probed over HTTP as {state}")
        return state

    async def start_application(self, application: str) -> StartResult:
        if await self.application_state(application) == ApplicationState.RUNNING:
            return StartResult(application=application, success=True, already_running=True)

        result = await self._http.restart_application(application)
        if result.available:
            logger.info(f"✅ Application {application} started over HTTP")
            return StartResult(application=application, success=True)
        return StartResult(
            application=application,
            success=False,
            reason=f"HTTP start of application {application} failed",
            raw_output=result.error,
        )

    async def server_version(self) -> ServerVersionResult:
        result = await self._http.health_check()
        if not result.available:
            return ServerVersionResult(success=False, surface=self.name, error=result.error)
        data = result.data if isinstance(result.data, dict) else {}
        version = data.get("version") or data.get("serverVersion")
        return ServerVersionResult(success=True, version=version, surface=self.name)


async def select_control_surface(
    http: MediaServerClient,
    channel: RemoteExecutionChannel,
    server_id: str,
    commands: CommandBuilder,
    markers: OutputMarkers,
) -> ControlSurface:
    """Probe the HTTP surface once and return the surface to use for the session."""
    health = await http.health_check()
    if health.available:
        logger.info(f"Control surface: HTTP management API at {http.base_url}")
        return HttpControlSurface(http)

    logger.info(
        f"Control surface: remote command channel (HTTP unavailable: {health.error})"
    )
    return RemoteCommandControlSurface(channel, server_id, commands, markers)
