"""Pydantic schemas shared by the orchestrator components."""

from .application import (
    ApplicationState,
    ApplicationTemplateDefaults,
    ProvisionOutcome,
    ProvisionResult,
    ServerVersionResult,
    StartResult,
    validate_application_identity,
)
from .playlist import PlaylistDescriptor, PlaylistNotFound
from .relay import PushPublishEntry, RelayDestination, RelayTarget, RelayUpsertResult
from .server import ServerCredentials, ServerEndpoint, ServerRecord, TenantRecord
from .stream import IncomingStream, IncomingStreamsReport, StreamDetails, StreamSessionSnapshot

__all__ = [
    "ApplicationState",
    "ApplicationTemplateDefaults",
    "IncomingStream",
    "IncomingStreamsReport",
    "PlaylistDescriptor",
    "PlaylistNotFound",
    "ProvisionOutcome",
    "ProvisionResult",
    "PushPublishEntry",
    "RelayDestination",
    "RelayTarget",
    "RelayUpsertResult",
    "ServerCredentials",
    "ServerEndpoint",
    "ServerRecord",
    "ServerVersionResult",
    "StartResult",
    "StreamDetails",
    "StreamSessionSnapshot",
    "TenantRecord",
    "validate_application_identity",
]
