"""Storage of push-publish rules.

Each tenant application owns one map file of `identity=destination` lines.
Writers are not coordinated: two concurrent upserts for the same identity can
interleave their read and rewrite. Callers must serialize per identity.
"""

from abc import ABC, abstractmethod

from loguru import logger

from mediahost.app_config import OrchestratorConfig
from mediahost.schemas.relay import PushPublishEntry
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import RemoteCommandFailure


class PushPublishRepository(ABC):
    @abstractmethod
    async def load_all(self, application: str) -> list[PushPublishEntry]:
        """All entries of the application's map, in file order."""

    @abstractmethod
    async def upsert(self, application: str, entry: PushPublishEntry) -> bool:
        """Write `entry`, replacing any entry with the same key.

        Returns:
            True if an existing entry was replaced
        """


class RemoteTextPushPublishRepository(PushPublishRepository):
    """Map file on the remote host, rewritten with one shell command per upsert."""

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

    async def load_all(self, application: str) -> list[PushPublishEntry]:
        path = self._config.push_publish_path(application)
        output = await self._channel.execute(self._server_id, self._commands.read_file(path))
        entries = []
        for line in output.stdout.splitlines():
            entry = PushPublishEntry.from_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    async def upsert(self, application: str, entry: PushPublishEntry) -> bool:
        """Replace the identity's lines with `entry` in a single remote command.

        Raises:
            RemoteCommandFailure: If the rewrite did not complete; the previous
                map file is left in place
        """
        path = self._config.push_publish_path(application)
        existing = [e for e in await self.load_all(application) if e.application_identity == entry.application_identity]
        if existing:
            logger.info(f"⚠️ Push publish already configured for {entry.application_identity}, replacing")

        command = self._commands.replace_key_line(path, entry.application_identity, entry.line)
        output = await self._channel.execute(self._server_id, command)
        if self._config.markers.ok_token not in output.stdout:
            raise RemoteCommandFailure(
                f"Could not write push publish map {path}",
                command=command,
                output=output.text,
            )
        return bool(existing)
