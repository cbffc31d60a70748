"""Scheduled playlist (SMIL) lookup on the remote host."""

from loguru import logger

from mediahost.app_config import OrchestratorConfig
from mediahost.schemas.playlist import PlaylistDescriptor, PlaylistNotFound
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import MediaHostError


def _is_safe_file_name(file_name: str) -> bool:
    return bool(file_name) and "/" not in file_name and "\x00" not in file_name and ".." not in file_name


class PlaylistPublisherLocator:
    def __init__(
        self,
        channel: RemoteExecutionChannel,
        server_id: str,
        commands: CommandBuilder,
        config: OrchestratorConfig,
    ):
        self._channel = channel
        self._server_id = server_id
        self._commands = commands
        self._config = config

    def candidate_paths(self, application: str, file_name: str) -> list[str]:
        return [f"{root.rstrip('/')}/{application}/{file_name}" for root in self._config.playlist_roots]

    async def locate(self, application: str, file_name: str) -> PlaylistDescriptor | PlaylistNotFound:
        """Find the playlist file for `application`.

        Candidate roots are checked in configured order and the first existing
        file is committed to. If its first lines carry no playlist marker the
        result is NotFound; later candidates are not tried.
        """
        if not _is_safe_file_name(file_name):
            return PlaylistNotFound(
                application=application,
                file_name=file_name,
                reason=f"Invalid playlist file name {file_name!r}",
            )

        markers = self._config.markers
        try:
            resolved = None
            for path in self.candidate_paths(application, file_name):
                output = await self._channel.execute(self._server_id, self._commands.file_exists(path))
                if markers.reports_exists(output.stdout):
                    resolved = path
                    logger.info(f"✅ Playlist file found: {path}")
                    break

            if resolved is None:
                logger.warning(f"❌ Playlist {file_name} not found for {application} in any candidate root")
                return PlaylistNotFound(
                    application=application,
                    file_name=file_name,
                    reason=f"Playlist file {file_name} not found",
                )

            head = await self._channel.execute(
                self._server_id,
                self._commands.read_head(resolved, self._config.playlist_probe_lines),
            )
        except (MediaHostError, OSError) as e:
            logger.warning(f"Playlist lookup for {application}/{file_name} failed: {e}")
            return PlaylistNotFound(
                application=application,
                file_name=file_name,
                reason=f"Remote lookup failed: {e}",
            )

        if not markers.has_any(head.stdout, markers.playlist_markers):
            logger.error(f"❌ Playlist file {resolved} is empty or has no playlist markup")
            return PlaylistNotFound(
                application=application,
                file_name=file_name,
                reason=f"Playlist file {file_name} is empty or invalid",
            )

        return PlaylistDescriptor(application=application, file_name=file_name, resolved_path=resolved)
