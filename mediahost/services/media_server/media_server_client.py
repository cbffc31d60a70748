"""HTTP management API client for the media server.

All calls are bounded by a fixed timeout and never raise: transport errors,
timeouts and non-2xx responses come back as `HttpResult.unavailable(...)`.
Nothing is retried here; callers decide.
"""

from urllib.parse import quote

import httpx
import orjson
from loguru import logger

from mediahost.schemas.server import ServerEndpoint
from mediahost.services.media_server.media_server_schemas import HttpResult

SERVER_PATH = "/v2/servers/_defaultServer_"
VHOST_PATH = f"{SERVER_PATH}/vhosts/_defaultVHost_"
DEFAULT_INSTANCE = "_definst_"


def _seg(value: str) -> str:
    return quote(value, safe="")


class MediaServerClient:
    def __init__(
        self,
        endpoint: ServerEndpoint,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = endpoint.base_url.rstrip("/")
        self._auth = httpx.BasicAuth(
            endpoint.credentials.username,
            endpoint.credentials.password.get_secret_value(),
        )
        self._timeout = timeout
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    async def _request(self, method: str, path: str) -> HttpResult:
        url = f"{self.base_url}{path}"
        logger.debug(f"Media server {method} {url}")
        try:
            async with httpx.AsyncClient(
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, headers=self._build_headers())
        except httpx.TimeoutException:
            logger.warning(f"Media server {method} {path} timed out after {self._timeout}s")
            return HttpResult.unavailable(f"Timeout after {self._timeout}s")
        except httpx.HTTPError as e:
            logger.warning(f"Media server {method} {path} unreachable: {e}")
            return HttpResult.unavailable(f"Transport error: {e}")

        if not response.is_success:
            logger.warning(f"Media server {method} {path} returned HTTP {response.status_code}")
            return HttpResult.unavailable(
                response.text or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return HttpResult.ok(response.status_code)
        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            logger.warning(f"Media server {method} {path} returned a non-JSON body")
            return HttpResult.unavailable("Invalid JSON body", status_code=response.status_code)
        return HttpResult.ok(response.status_code, data)

    # Server

    async def health_check(self) -> HttpResult:
        return await self._request("GET", SERVER_PATH)

    # Applications

    async def get_application_monitoring(self, application: str) -> HttpResult:
        return await self._request("GET", f"{SERVER_PATH}/applications/{_seg(application)}/monitoring/current")

    async def restart_application(self, application: str) -> HttpResult:
        return await self._request("PUT", f"{VHOST_PATH}/applications/{_seg(application)}/actions/restart")

    async def list_dvr_stores(self, application: str) -> HttpResult:
        return await self._request("GET", f"{SERVER_PATH}/applications/{_seg(application)}/dvrstores")

    # Stream files (scheduled playlists)

    async def stream_file_action(self, application: str, file_name: str, action: str) -> HttpResult:
        """Run `disconnect`, `pause` or `play` on a stream file of an application."""
        return await self._request(
            "PUT",
            f"{SERVER_PATH}/applications/{_seg(application)}/streamfiles/{_seg(file_name)}/actions/{_seg(action)}",
        )

    # Incoming streams

    async def list_incoming_streams(self, application: str) -> HttpResult:
        return await self._request(
            "GET",
            f"{VHOST_PATH}/applications/{_seg(application)}/instances/{DEFAULT_INSTANCE}/incomingstreams",
        )

    async def get_incoming_stream(self, application: str, stream_name: str) -> HttpResult:
        return await self._request(
            "GET",
            f"{VHOST_PATH}/applications/{_seg(application)}/instances/{DEFAULT_INSTANCE}"
            f"/incomingstreams/{_seg(stream_name)}",
        )

    async def disconnect_incoming_stream(self, application: str, stream_name: str) -> HttpResult:
        return await self._request(
            "PUT",
            f"{SERVER_PATH}/applications/{_seg(application)}/instances/{DEFAULT_INSTANCE}"
            f"/incomingstreams/{_seg(stream_name)}/actions/disconnectStream",
        )
