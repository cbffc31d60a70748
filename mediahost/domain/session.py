"""Orchestrator session: server endpoint resolution and control-surface choice.

A session is either `Uninitialized` or `Ready`. Nothing initializes lazily;
operations on an uninitialized orchestrator return a failure result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

import httpx
from loguru import logger
from pydantic import SecretStr

from mediahost.app_config import OrchestratorConfig
from mediahost.domain.control_surface.selector import ControlSurface, select_control_surface
from mediahost.schemas.server import ServerCredentials, ServerEndpoint, ServerRecord, TenantRecord
from mediahost.services.media_server.media_server_client import MediaServerClient
from mediahost.services.remote.channel import RemoteExecutionChannel
from mediahost.services.remote.commands import CommandBuilder


class ServerRegistry(Protocol):
    async def find_active_server(self, tenant_id: str | None = None) -> ServerRecord | None: ...


class TenantDirectory(Protocol):
    async def find_tenant(self, tenant_id: str) -> TenantRecord | None: ...


def endpoint_from_record(record: ServerRecord, default: ServerEndpoint) -> ServerEndpoint:
    """Build an endpoint from a registry row, filling gaps from the default server."""
    host = record.domain or record.ip or default.host
    return ServerEndpoint(
        host=host,
        management_port=record.api_port or default.management_port,
        credentials=ServerCredentials(
            username=record.api_username or default.credentials.username,
            password=SecretStr(record.api_password) if record.api_password else default.credentials.password,
        ),
        control_channel_id=record.server_id,
    )


async def resolve_server_endpoint(
    registry: ServerRegistry | None,
    config: OrchestratorConfig,
    tenant_id: str | None = None,
) -> ServerEndpoint:
    """Endpoint of the tenant's active server, or the configured default server."""
    if registry is None:
        return config.default_server

    record = await registry.find_active_server(tenant_id)
    if record is None:
        logger.info("No active server in registry, using the default server")
        return config.default_server
    return endpoint_from_record(record, config.default_server)


def resolve_login_name(record: TenantRecord | None, tenant_id: str) -> str:
    """Login name used as application identity for a tenant.

    Precedence: the tenant login, then the local part of its email, then
    `user_<tenant_id>`.
    """
    if record is not None:
        if record.login and record.login.strip():
            return record.login.strip()
        if record.email and "@" in record.email:
            local_part = record.email.split("@", 1)[0].strip()
            if local_part:
                return local_part
    return f"user_{tenant_id}"


@dataclass(frozen=True)
class Uninitialized:
    kind: Literal["uninitialized"] = "uninitialized"


@dataclass(frozen=True)
class Ready:
    endpoint: ServerEndpoint
    http: MediaServerClient
    surface: ControlSurface
    commands: CommandBuilder
    kind: Literal["ready"] = "ready"


SessionState = Uninitialized | Ready


async def open_session(
    config: OrchestratorConfig,
    channel: RemoteExecutionChannel,
    registry: ServerRegistry | None = None,
    tenant_id: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Ready:
    """Resolve the server endpoint and pick the control surface for this session."""
    endpoint = await resolve_server_endpoint(registry, config, tenant_id)
    http = MediaServerClient(endpoint, timeout=config.http_timeout_seconds, transport=transport)
    commands = CommandBuilder(config.cli, config.markers)
    surface = await select_control_surface(
        http,
        channel,
        endpoint.control_channel_id,
        commands,
        config.markers,
    )
    logger.info(f"✅ Session ready: server {endpoint.base_url} via {surface.name}")
    return Ready(endpoint=endpoint, http=http, surface=surface, commands=commands)
