"""Remote command execution channel.

The orchestrator only needs `execute(server_id, command)`; `SSHRemoteChannel`
provides it over SSH with paramiko. Blocking paramiko calls run in a worker
thread so callers stay on the event loop.

Usage:
    channel = SSHRemoteChannel({"1": SSHHostConfig(host="10.0.0.5", key_filename="~/.ssh/id_rsa")})
    output = await channel.execute("1", "test -d /tmp && echo EXISTS || echo NOT_EXISTS")
"""

from __future__ import annotations

import asyncio
import threading
from typing import Protocol, runtime_checkable

import paramiko
from loguru import logger
from pydantic import BaseModel

from mediahost.app_config import get_app_environ_config
from mediahost.shared.errors import RemoteCommandFailure


class CommandOutput(BaseModel):
    """Captured output of one remote command."""

    stdout: str = ""
    stderr: str = ""
    exit_status: int | None = None

    @property
    def text(self) -> str:
        """stdout when present, otherwise stderr (for diagnostics)."""
        return self.stdout or self.stderr


@runtime_checkable
class RemoteExecutionChannel(Protocol):
    async def execute(self, server_id: str, command: str) -> CommandOutput: ...


class SSHHostConfig(BaseModel):
    host: str
    username: str | None = None
    port: int | None = None
    key_filename: str | None = None
    password: str | None = None
    connect_timeout: float | None = None
    command_timeout: float | None = None


class SSHRemoteChannel:
    """Run commands on registered hosts over SSH, one cached client per server id."""

    def __init__(self, hosts: dict[str, SSHHostConfig]):
        self._hosts = dict(hosts)
        self._clients: dict[str, paramiko.SSHClient] = {}
        self._lock = threading.Lock()
        cfg = get_app_environ_config()
        self._default_username = cfg.SSH_USERNAME
        self._default_port = cfg.SSH_PORT
        self._default_timeout = cfg.SSH_CONNECT_TIMEOUT_SECONDS

    def _connect(self, server_id: str) -> paramiko.SSHClient:
        host_cfg = self._hosts.get(server_id)
        if host_cfg is None:
            raise RemoteCommandFailure(f"No SSH host registered for server {server_id}")

        with self._lock:
            client = self._clients.get(server_id)
            transport = client.get_transport() if client else None
            if client is not None and transport is not None and transport.is_active():
                return client

            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            logger.debug(f"Opening SSH connection to {host_cfg.host} (server {server_id})")
            client.connect(
                host_cfg.host,
                port=host_cfg.port or self._default_port,
                username=host_cfg.username or self._default_username,
                key_filename=host_cfg.key_filename,
                password=host_cfg.password,
                timeout=host_cfg.connect_timeout or self._default_timeout,
            )
            self._clients[server_id] = client
            return client

    def _run(self, server_id: str, command: str) -> CommandOutput:
        client = self._connect(server_id)
        timeout = self._hosts[server_id].command_timeout
        _, stdout, stderr = client.exec_command(command, timeout=timeout)
        # Read both streams before waiting for the exit status.
        out = stdout.read().decode(errors="replace")
        err = stderr.read().decode(errors="replace")
        return CommandOutput(stdout=out, stderr=err, exit_status=stdout.channel.recv_exit_status())

    async def execute(self, server_id: str, command: str) -> CommandOutput:
        """Execute `command` on the host registered as `server_id`.

        Raises:
            RemoteCommandFailure: If the host is unknown or the SSH transport fails
        """
        try:
            return await asyncio.to_thread(self._run, server_id, command)
        except RemoteCommandFailure:
            raise
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandFailure(f"SSH execution failed on server {server_id}: {e}", command=command) from e

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()
