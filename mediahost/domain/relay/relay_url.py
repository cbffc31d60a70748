"""Relay destination URL parsing."""

import re

from mediahost.schemas.relay import RelayDestination, RelayTarget
from mediahost.shared.errors import ErrorCode, ValidationFailure

_RELAY_URL_RE = re.compile(
    r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://"
    r"(?P<host>[^:/\s?#]+)"
    r"(?::(?P<port>\d+))?"
    r"(?P<path>/[^\s?#]*)?$"
)


def parse_relay_destination(
    url: str,
    default_application: str,
    default_ports: dict[str, int],
) -> RelayDestination:
    """Split `scheme://host[:port][/path]` into relay components.

    With two or more path segments the last one is the stream key and the rest
    is the application path. A single segment is the application with an empty
    key; no path gives the default application with an empty key.

    Raises:
        ValidationFailure: If the URL does not match, the port is out of range or
            the scheme has no known default port and none is given
    """
    match = _RELAY_URL_RE.match((url or "").strip())
    if not match:
        raise ValidationFailure(
            f"Relay URL {url!r} does not match scheme://host[:port][/path]",
            ErrorCode.E_INVALID_RELAY_URL,
        )

    scheme = match.group("scheme").lower()
    if match.group("port"):
        port = int(match.group("port"))
        if not 0 < port < 65536:
            raise ValidationFailure(f"Relay URL {url!r} has invalid port {port}", ErrorCode.E_INVALID_RELAY_URL)
    elif scheme in default_ports:
        port = default_ports[scheme]
    else:
        raise ValidationFailure(
            f"Relay URL {url!r} has no port and scheme {scheme!r} has no default",
            ErrorCode.E_INVALID_RELAY_URL,
        )

    segments = [segment for segment in (match.group("path") or "").split("/") if segment]
    if len(segments) >= 2:
        application, stream_key = "/".join(segments[:-1]), segments[-1]
    elif segments:
        application, stream_key = segments[0], ""
    else:
        application, stream_key = default_application, ""

    return RelayDestination(
        scheme=scheme,
        host=match.group("host"),
        port=port,
        application=application,
        stream_key=stream_key,
    )


def resolve_relay_target(
    target: RelayTarget,
    default_application: str,
    default_ports: dict[str, int],
) -> RelayDestination:
    """Destination for a tenant relay platform.

    When the platform carries its own stream key, the whole URL path is the
    application and the key is appended to it.
    """
    destination = parse_relay_destination(target.rtmp_url, default_application, default_ports)
    if not target.stream_key:
        return destination

    application = destination.application
    if destination.stream_key:
        application = f"{application}/{destination.stream_key}"
    return destination.model_copy(update={"application": application, "stream_key": target.stream_key.strip()})
