"""Server endpoint and tenant schemas."""

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class ServerCredentials(BaseModel):
    """Basic-auth credentials for the HTTP management API."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


class ServerEndpoint(BaseModel):
    """Remote media-server host selected for one orchestrator session.

    Immutable once resolved; re-resolution requires a new session.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    management_port: int = 8087
    credentials: ServerCredentials
    control_channel_id: str = Field(
        ...,
        description="Identity passed to the remote execution channel to address this host",
    )

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.management_port}"


class ServerRecord(BaseModel):
    """Active server row as returned by a server registry."""

    server_id: str
    ip: str | None = None
    domain: str | None = None
    api_port: int | None = None
    api_username: str | None = None
    api_password: str | None = None


class TenantRecord(BaseModel):
    """Tenant row as returned by a tenant directory."""

    tenant_id: str
    login: str | None = None
    email: str | None = None
    bitrate_limit_kbps: int | None = None
    viewer_limit: int | None = None
