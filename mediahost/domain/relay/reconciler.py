"""Push-publish (relay) rule reconciliation."""

from loguru import logger

from mediahost.schemas.application import validate_application_identity
from mediahost.schemas.relay import PushPublishEntry, RelayDestination, RelayUpsertResult
from mediahost.shared.errors import ErrorCode, RemoteCommandFailure, ValidationFailure

from .repository import PushPublishRepository


class PushPublishReconciler:
    def __init__(self, repository: PushPublishRepository):
        self._repository = repository

    async def upsert_relay(self, application: str, destination: RelayDestination) -> RelayUpsertResult:
        """Leave exactly one map line for `application`, pointing at `destination`.

        The running application only picks the change up after a restart.

        Raises:
            ValidationFailure: If the identity is invalid or the destination has no stream key
            RemoteCommandFailure: If the map could not be written, or still holds
                more or fewer than one line for the identity afterwards
        """
        validate_application_identity(application)
        if not destination.stream_key:
            raise ValidationFailure(
                f"Relay destination for {application} has no stream key",
                ErrorCode.E_INVALID_RELAY_URL,
            )

        entry = PushPublishEntry(application_identity=application, target=destination.render())
        replaced = await self._repository.upsert(application, entry)

        written = [e for e in await self._repository.load_all(application) if e.application_identity == application]
        if len(written) != 1 or written[0].target != entry.target:
            raise RemoteCommandFailure(
                f"Push publish map for {application} holds {len(written)} entries for the identity after upsert",
                output="\n".join(e.line for e in written),
            )

        logger.info(f"✅ Push publish configured: {entry.line}")
        return RelayUpsertResult(application=application, entry=entry.line, replaced=replaced)
