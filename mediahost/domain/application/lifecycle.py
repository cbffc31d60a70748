"""Observed application lifecycle transitions."""

from mediahost.schemas.application import ApplicationState, ProvisionResult


class ApplicationLifecycle:
    """Transitions of a tenant application as observed by the orchestrator.

    Nothing here is stored; the remote host is the only source of truth.

    State flow with triggers:
    - ABSENT -> PROVISIONED_NOT_RUNNING (configuration directory created)
    - ABSENT -> RUNNING (provisioning with the embedded start command)
    - PROVISIONED_NOT_RUNNING -> RUNNING (start command accepted)
    - RUNNING -> RUNNING (publisher idle or viewers gone, observed externally)

    There is no stop or delete transition.
    """

    TRANSITIONS: dict[ApplicationState, set[ApplicationState]] = {
        ApplicationState.ABSENT: {
            ApplicationState.PROVISIONED_NOT_RUNNING,
            ApplicationState.RUNNING,
        },
        ApplicationState.PROVISIONED_NOT_RUNNING: {ApplicationState.RUNNING},
        ApplicationState.RUNNING: {ApplicationState.RUNNING},
    }

    @classmethod
    def can_transition(cls, current: ApplicationState, new: ApplicationState) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def get_valid_transitions(cls, state: ApplicationState) -> set[ApplicationState]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def state_after_provisioning(cls, result: ProvisionResult) -> ApplicationState:
        """Expected state once `ensure_provisioned` returned `result`.

        RUNNING when the start command was accepted, PROVISIONED_NOT_RUNNING when
        the configuration directory exists but the start failed, ABSENT otherwise.
        """
        if result.success:
            return ApplicationState.RUNNING
        if result.directory_ready:
            return ApplicationState.PROVISIONED_NOT_RUNNING
        return ApplicationState.ABSENT
