"""Application state probing over the remote command channel."""

from loguru import logger

from mediahost.app_config import OutputMarkers
from mediahost.schemas.application import ApplicationState
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import MediaHostError


def classify_instance_info(stdout: str | None, markers: OutputMarkers) -> ApplicationState:
    """Classify `getApplicationInstanceInfo` output.

    Empty output, an error marker or a not-found marker means ABSENT; anything
    else means RUNNING.
    """
    if not stdout or not stdout.strip():
        return ApplicationState.ABSENT
    if markers.has_any(stdout, markers.error_markers) or markers.has_any(stdout, markers.not_found_markers):
        return ApplicationState.ABSENT
    return ApplicationState.RUNNING


class ApplicationStateProber:
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

    async def probe(self, application: str) -> ApplicationState:
        """Return ABSENT or RUNNING for `application`.

        A failing channel counts as ABSENT so the caller re-provisions, which is
        idempotent, instead of silently skipping provisioning.
        """
        command = self._commands.instance_info(application)
        try:
            output = await self._channel.execute(self._server_id, command)
        except (MediaHostError, OSError) as e:
            logger.warning(f"Probe of application {application} failed, treating as absent: {e}")
            return ApplicationState.ABSENT

        state = classify_instance_info(output.stdout, self._markers)
        logger.info(f"🔍 Application {application} probed as {state}")
        return state

    async def instance_info(self, application: str) -> str | None:
        """Raw instance info output, or None when the channel failed."""
        try:
            output = await self._channel.execute(self._server_id, self._commands.instance_info(application))
        except (MediaHostError, OSError) as e:
            logger.warning(f"Instance info for {application} unavailable: {e}")
            return None
        return output.text
