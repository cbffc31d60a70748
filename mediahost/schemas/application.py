"""Application (per-tenant media-server context) schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from mediahost.shared.errors import ErrorCode, ValidationFailure


class ApplicationState(str, Enum):
    """Observed state of a tenant application on the remote host.

    Derived from probe output on every call; never stored.
    """

    ABSENT = "absent"
    PROVISIONED_NOT_RUNNING = "provisioned_not_running"
    RUNNING = "running"

    def __str__(self) -> str:
        return self.value


class ProvisionOutcome(str, Enum):
    ALREADY_EXISTED = "already_existed"
    CREATED = "created"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class ApplicationTemplateDefaults(BaseModel):
    """Values used when a tenant application is first provisioned."""

    bitrate_kbps: int = Field(default=2500, gt=0)
    template_application: str = Field(
        default="live",
        description="Existing application whose configuration files are copied",
    )


class ProvisionResult(BaseModel):
    """Result of `ApplicationProvisioner.ensure_provisioned`."""

    application: str
    outcome: ProvisionOutcome
    directory_ready: bool = Field(default=False, description="The configuration directory exists on the host")
    reason: str | None = None
    raw_output: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome != ProvisionOutcome.FAILED


def validate_application_identity(identity: str) -> str:
    """Check that `identity` can be used as application name, directory and map key.

    Raises:
        ValidationFailure: If the identity is empty, has leading or trailing whitespace,
            or contains `=`, `/`, a backslash, NUL or a newline
    """
    if not identity or not identity.strip():
        raise ValidationFailure("Application identity must not be empty", ErrorCode.E_INVALID_IDENTITY)
    if identity != identity.strip():
        raise ValidationFailure(
            f"Application identity {identity!r} has leading or trailing whitespace",
            ErrorCode.E_INVALID_IDENTITY,
        )
    if identity in {".", ".."}:
        raise ValidationFailure(
            f"Application identity {identity!r} is not a valid directory name",
            ErrorCode.E_INVALID_IDENTITY,
        )
    for forbidden in ("=", "/", "\\", "\n", "\r", "\x00"):
        if forbidden in identity:
            raise ValidationFailure(
                f"Application identity {identity!r} contains forbidden character {forbidden!r}",
                ErrorCode.E_INVALID_IDENTITY,
            )
    return identity


class StartResult(BaseModel):
    """Result of asking the management layer to start an application instance."""

    application: str
    success: bool
    already_running: bool = False
    reason: str | None = None
    raw_output: str | None = None


class ServerVersionResult(BaseModel):
    success: bool
    version: str | None = None
    surface: str | None = None
    error: str | None = None
    details: str | None = None
