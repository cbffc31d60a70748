"""Idempotent provisioning of tenant applications on the remote host.

Concurrent calls for the same identity are not serialized here; two racing
calls can interleave the directory creation and template copies. Callers that
may provision the same identity concurrently must serialize per identity.
"""

from loguru import logger

from mediahost.app_config import OrchestratorConfig
from mediahost.domain.control_surface.selector import ControlSurface
from mediahost.schemas.application import (
    ApplicationTemplateDefaults,
    ProvisionOutcome,
    ProvisionResult,
)
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import MediaHostError, RemoteCommandFailure


class ApplicationProvisioner:
    def __init__(
        self,
        channel: RemoteExecutionChannel,
        server_id: str,
        commands: CommandBuilder,
        surface: ControlSurface,
        config: OrchestratorConfig,
    ):
        self._channel = channel
        self._server_id = server_id
        self._commands = commands
        self._surface = surface
        self._config = config

    async def _run(self, command: str) -> str:
        logger.debug(f"Remote command on server {self._server_id}: {command}")
        output = await self._channel.execute(self._server_id, command)
        return output.stdout

    async def _directory_exists(self, application: str) -> bool:
        stdout = await self._run(self._commands.dir_exists(self._config.application_dir(application)))
        return self._config.markers.reports_exists(stdout)

    async def _create_structure(self, application: str, defaults: ApplicationTemplateDefaults) -> None:
        """Create the application directory and copy the template files into it."""
        target_dir = self._config.application_dir(application)
        template_dir = self._config.application_dir(defaults.template_application)
        app_file = self._config.application_file_name
        map_file = self._config.push_publish_file_name

        stdout = await self._run(self._commands.make_dir(target_dir))
        if self._config.markers.ok_token not in stdout:
            raise RemoteCommandFailure(
                f"Could not create directory {target_dir}",
                output=stdout,
            )

        stdout = await self._run(self._commands.copy_file(f"{template_dir}/{app_file}", f"{target_dir}/{app_file}"))
        if self._config.markers.ok_token not in stdout:
            raise RemoteCommandFailure(
                f"Could not copy {app_file} template from {template_dir}",
                output=stdout,
            )

        await self._run(self._commands.copy_or_touch(f"{template_dir}/{map_file}", f"{target_dir}/{map_file}"))
        logger.info(f"📋 Configuration structure created for {application}")

    async def ensure_provisioned(
        self,
        application: str,
        defaults: ApplicationTemplateDefaults | None = None,
    ) -> ProvisionResult:
        """Make sure `application` has its configuration on disk and is started.

        The directory and template copies are skipped when the directory already
        exists, so manual edits to an existing configuration are preserved. The
        start command is always issued; an already-running instance is success.

        Args:
            application: Tenant application identity
            defaults: Template values used on first creation

        Returns:
            ProvisionResult with ALREADY_EXISTED, CREATED or FAILED (reason and raw output attached)
        """
        defaults = defaults or ApplicationTemplateDefaults(
            bitrate_kbps=self._config.default_bitrate_kbps,
            template_application=self._config.template_application,
        )
        logger.info(f"📁 Ensuring application {application} (bitrate {defaults.bitrate_kbps} kbps)")

        try:
            existed = await self._directory_exists(application)
            if existed:
                logger.info(f"📋 Directory for {application} already exists, keeping its configuration")
            else:
                await self._create_structure(application, defaults)
        except RemoteCommandFailure as e:
            logger.error(f"❌ Provisioning of {application} failed: {e.errmesg}")
            return ProvisionResult(
                application=application,
                outcome=ProvisionOutcome.FAILED,
                reason=e.errmesg,
                raw_output=e.output,
            )
        except (MediaHostError, OSError) as e:
            logger.exception(f"Provisioning of {application} failed")
            return ProvisionResult(application=application, outcome=ProvisionOutcome.FAILED, reason=str(e))

        start = await self._surface.start_application(application)
        if not start.success:
            return ProvisionResult(
                application=application,
                outcome=ProvisionOutcome.FAILED,
                directory_ready=True,
                reason=start.reason or f"Could not start application {application}",
                raw_output=start.raw_output,
            )

        outcome = ProvisionOutcome.ALREADY_EXISTED if existed else ProvisionOutcome.CREATED
        return ProvisionResult(
            application=application,
            outcome=outcome,
            directory_ready=True,
            raw_output=start.raw_output,
        )
