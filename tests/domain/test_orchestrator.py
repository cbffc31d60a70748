"""End-to-end tests for StreamingOrchestrator against the fake host."""

from unittest.mock import AsyncMock

import pytest

from mediahost.domain.orchestrator import StreamingOrchestrator
from mediahost.schemas.application import ApplicationState, ProvisionOutcome
from mediahost.schemas.playlist import PlaylistDescriptor, PlaylistNotFound
from mediahost.schemas.relay import RelayTarget
from mediahost.schemas.results import UserLimits
from mediahost.schemas.server import TenantRecord
from mediahost.shared.errors import ErrorCode

CONF = "/usr/local/WowzaStreamingEngine/conf"
SMIL_PATH = "/home/streaming/alice/playlists_agendamentos.smil"
SMIL = "<smil>\n<body>\n"
SERVER = "/v2/servers/_defaultServer_"
STREAMS = f"{SERVER}/vhosts/_defaultVHost_/applications/live/instances/_definst_/incomingstreams"


@pytest.fixture
def offline_orchestrator(orchestrator_config, media_host, closed_http_api) -> StreamingOrchestrator:
    """Orchestrator whose HTTP management API is closed."""
    return StreamingOrchestrator(orchestrator_config, media_host, transport=closed_http_api.transport)


@pytest.fixture
def http_orchestrator(orchestrator_config, media_host, http_api) -> StreamingOrchestrator:
    http_api.add("GET", SERVER, body={"version": "4.8.0"})
    return StreamingOrchestrator(orchestrator_config, media_host, transport=http_api.transport)


class TestUninitialized:
    """Tests that nothing initializes lazily."""

    async def test_operations_fail_before_initialize(self, offline_orchestrator, media_host):
        assert offline_orchestrator.is_ready is False

        probe = await offline_orchestrator.probe_application("alice")
        provision = await offline_orchestrator.ensure_provisioned("alice")
        relay = await offline_orchestrator.configure_push_publish("alice", "rtmp://example.com/live/key123")
        snapshot = await offline_orchestrator.current_snapshot("alice")

        assert probe.success is False
        assert probe.errcode == ErrorCode.E_SESSION_NOT_INITIALIZED
        assert provision.outcome == ProvisionOutcome.FAILED
        assert relay.success is False
        assert snapshot.is_active is False
        assert media_host.commands == []
        assert offline_orchestrator.is_ready is False

    async def test_initialize_failure_keeps_uninitialized(self, orchestrator_config, media_host):
        registry = AsyncMock()
        registry.find_active_server.side_effect = RuntimeError("database down")
        orchestrator = StreamingOrchestrator(orchestrator_config, media_host, registry=registry)

        result = await orchestrator.initialize("5")

        assert result.success is False
        assert "database down" in result.error
        assert orchestrator.is_ready is False


class TestAliceScenario:
    """Tests for a new tenant going from nothing to a running playlist."""

    async def test_absent_created_running(self, offline_orchestrator, media_host):
        init = await offline_orchestrator.initialize()
        assert init.success is True
        assert init.surface == "remote_command"

        before = await offline_orchestrator.probe_application("alice")
        provision = await offline_orchestrator.ensure_provisioned("alice")
        after = await offline_orchestrator.probe_application("alice")

        assert before.state == ApplicationState.ABSENT
        assert provision.outcome == ProvisionOutcome.CREATED
        assert after.state == ApplicationState.RUNNING
        assert f"{CONF}/alice/Application.xml" in media_host.files

        again = await offline_orchestrator.ensure_provisioned("alice")
        assert again.outcome == ProvisionOutcome.ALREADY_EXISTED

    async def test_start_playlist_stream(self, offline_orchestrator, media_host, orchestrator_config):
        media_host.add_file(SMIL_PATH, SMIL)
        await offline_orchestrator.initialize()

        result = await offline_orchestrator.start_playlist_stream(
            "alice",
            relay_targets=[
                RelayTarget(name="youtube", rtmp_url="rtmp://a.rtmp.youtube.com/live2", stream_key="yt-key"),
                RelayTarget(name="broken", rtmp_url="not a url"),
            ],
        )

        assert result.success is True
        assert result.provision_outcome == ProvisionOutcome.CREATED
        assert result.playlist_path == SMIL_PATH
        assert result.urls.hls == "https://localhost:1935/alice/smil:playlists_agendamentos.smil/playlist.m3u8"
        assert result.urls.rtsp == "rtsp://localhost:554/alice/smil:playlists_agendamentos.smil"
        assert [(r.name, r.success) for r in result.relays] == [("youtube", True), ("broken", False)]
        assert media_host.map_lines("alice") == ["alice=rtmp://a.rtmp.youtube.com:1935/live2/yt-key"]

    async def test_start_playlist_stream_running_skips_provisioning(self, offline_orchestrator, media_host):
        media_host.add_dir(f"{CONF}/alice")
        media_host.running.add("alice")
        media_host.add_file(SMIL_PATH, SMIL)
        await offline_orchestrator.initialize()

        result = await offline_orchestrator.start_playlist_stream("alice")

        assert result.success is True
        assert result.provision_outcome is None
        assert not [c for c in media_host.commands if c.startswith("mkdir")]

    async def test_start_playlist_stream_missing_playlist(self, offline_orchestrator):
        await offline_orchestrator.initialize()

        result = await offline_orchestrator.start_playlist_stream("alice", "missing.smil")

        assert result.success is False
        assert "not found" in result.error

    async def test_locate_playlist(self, offline_orchestrator, media_host):
        media_host.add_file(SMIL_PATH, SMIL)
        await offline_orchestrator.initialize()

        assert isinstance(
            await offline_orchestrator.locate_playlist("alice", "playlists_agendamentos.smil"),
            PlaylistDescriptor,
        )
        assert isinstance(await offline_orchestrator.locate_playlist("alice", "other.smil"), PlaylistNotFound)


class TestValidation:
    """Tests for identity validation at the facade."""

    @pytest.mark.parametrize("identity", ["", "a=b", "a/b", "a\nb", ".."])
    async def test_invalid_identity_is_rejected(self, offline_orchestrator, media_host, identity):
        await offline_orchestrator.initialize()
        media_host.commands.clear()

        probe = await offline_orchestrator.probe_application(identity)
        provision = await offline_orchestrator.ensure_provisioned(identity)

        assert probe.success is False
        assert probe.errcode == ErrorCode.E_INVALID_IDENTITY
        assert provision.outcome == ProvisionOutcome.FAILED
        assert media_host.commands == []

    @pytest.mark.parametrize("identity", [" alice", "alice "])
    async def test_whitespace_identity_never_reaches_the_map(self, offline_orchestrator, media_host, identity):
        await offline_orchestrator.initialize()
        media_host.files[f"{CONF}/live/PushPublishMap.txt"] = "alice=rtmp://old:1935/live/y\n"

        result = await offline_orchestrator.configure_push_publish(identity, "rtmp://example.com/live/key123")

        assert result.success is False
        assert result.errcode == ErrorCode.E_INVALID_IDENTITY
        assert not [c for c in media_host.commands if "printf" in c]

    async def test_empty_identity_matches_no_stream(self, http_orchestrator, http_api):
        """Test an empty identity is refused instead of matching every stream by substring."""
        http_api.add("GET", STREAMS, body={"incomingStreams": [{"name": "bob_live", "connectionsCurrent": 4}]})
        await http_orchestrator.initialize()
        http_api.requests.clear()

        snapshot = await http_orchestrator.current_snapshot("")
        report = await http_orchestrator.incoming_streams_for("")
        stats = await http_orchestrator.application_stats("")

        assert snapshot.is_active is False
        assert snapshot.viewer_count == 0
        assert report.success is False
        assert report.streams == []
        assert report.error == "Application identity must not be empty"
        assert stats.is_active is False
        assert http_api.requests == []


class TestPushPublish:
    """Tests for configure_push_publish."""

    async def test_double_configure_leaves_second_destination(self, offline_orchestrator, media_host):
        await offline_orchestrator.initialize()
        await offline_orchestrator.ensure_provisioned("alice")

        first = await offline_orchestrator.configure_push_publish("alice", "rtmp://a.example.com/live/one")
        second = await offline_orchestrator.configure_push_publish("alice", "rtmp://b.example.com/live/two")

        assert first.success is True
        assert second.relay.replaced is True
        assert media_host.map_lines("alice") == ["alice=rtmp://b.example.com:1935/live/two"]

    async def test_empty_key_is_rejected(self, offline_orchestrator, media_host):
        await offline_orchestrator.initialize()

        result = await offline_orchestrator.configure_push_publish("alice", "rtmp://example.com:1940")

        assert result.success is False
        assert result.errcode == ErrorCode.E_INVALID_RELAY_URL
        assert media_host.map_lines("alice") == []

    async def test_channel_failure_is_reported(self, offline_orchestrator, media_host):
        await offline_orchestrator.initialize()
        media_host.fail_when = lambda command: command.startswith("cat")

        result = await offline_orchestrator.configure_push_publish("alice", "rtmp://example.com/live/key123")

        assert result.success is False
        assert result.errcode == ErrorCode.E_REMOTE_COMMAND


class TestConnectionAndStatus:
    """Tests for connectivity and CLI status checks."""

    async def test_connection_over_cli(self, offline_orchestrator):
        await offline_orchestrator.initialize()

        result = await offline_orchestrator.test_connection()

        assert result.success is True
        assert result.surface == "remote_command"
        assert "Wowza" in result.version

    async def test_connection_over_http(self, http_orchestrator):
        await http_orchestrator.initialize()

        result = await http_orchestrator.test_connection()

        assert result.success is True
        assert result.surface == "http"
        assert result.version == "4.8.0"

    async def test_playlist_application_status(self, offline_orchestrator, media_host):
        await offline_orchestrator.initialize()

        before = await offline_orchestrator.playlist_application_status("alice")
        media_host.running.add("alice")
        after = await offline_orchestrator.playlist_application_status("alice")

        assert before.success is True
        assert before.loaded is False
        assert after.loaded is True


class TestHttpOperations:
    """Tests for best-effort HTTP actions."""

    async def test_pause_and_resume(self, http_orchestrator, http_api):
        base = f"{SERVER}/applications/alice/streamfiles/playlists_agendamentos.smil/actions"
        http_api.add("PUT", f"{base}/pause")
        http_api.add("PUT", f"{base}/play")
        await http_orchestrator.initialize()

        paused = await http_orchestrator.pause_playlist_stream("alice")
        resumed = await http_orchestrator.resume_playlist_stream("alice")
        stopped = await http_orchestrator.stop_playlist_stream("alice")

        assert paused.success is True
        assert resumed.success is True
        assert stopped.success is False
        assert stopped.action == "disconnect"

    async def test_stop_live_stream(self, http_orchestrator, http_api):
        path = f"{SERVER}/applications/live/instances/_definst_/incomingstreams/alice_live/actions/disconnectStream"
        http_api.add("PUT", path)
        await http_orchestrator.initialize()

        result = await http_orchestrator.stop_live_stream("alice")

        assert result.success is True
        assert result.target == "alice_live"

    async def test_list_recordings(self, http_orchestrator, http_api):
        http_api.add("GET", f"{SERVER}/applications/alice/dvrstores", body={"dvrConverterStores": [{"name": "rec1"}]})
        await http_orchestrator.initialize()

        result = await http_orchestrator.list_recordings("alice")

        assert result.success is True
        assert result.recordings == [{"name": "rec1"}]
        assert result.path == "/home/streaming/alice/recordings/"

    async def test_list_recordings_unavailable(self, http_orchestrator):
        await http_orchestrator.initialize()

        result = await http_orchestrator.list_recordings("alice")

        assert result.success is False
        assert result.recordings == []


class TestLimitsAndLogin:
    """Tests for plan limits and tenant login resolution."""

    def test_requested_bitrate_above_limit(self, offline_orchestrator):
        result = offline_orchestrator.check_user_limits(UserLimits(bitrate_limit_kbps=2000, viewer_limit=50), 3000)

        assert result.allowed_bitrate_kbps == 2000
        assert result.requested_bitrate_kbps == 3000
        assert len(result.warnings) == 1

    def test_defaults_without_record(self, offline_orchestrator):
        result = offline_orchestrator.check_user_limits(None)

        assert result.limits.bitrate_limit_kbps == 2500
        assert result.limits.viewer_limit == 100
        assert result.allowed_bitrate_kbps == 2500
        assert result.warnings == []

    def test_limits_from_tenant_record(self, offline_orchestrator):
        result = offline_orchestrator.check_user_limits(TenantRecord(tenant_id="5", bitrate_limit_kbps=1500), 1000)

        assert result.allowed_bitrate_kbps == 1000
        assert result.limits.viewer_limit == 100

    async def test_resolve_login(self, orchestrator_config, media_host):
        tenants = AsyncMock()
        tenants.find_tenant.return_value = TenantRecord(tenant_id="5", email="carol@example.com")
        orchestrator = StreamingOrchestrator(orchestrator_config, media_host, tenants=tenants)

        assert await orchestrator.resolve_login("5") == "carol"

    async def test_resolve_login_lookup_failure(self, orchestrator_config, media_host):
        tenants = AsyncMock()
        tenants.find_tenant.side_effect = RuntimeError("database down")
        orchestrator = StreamingOrchestrator(orchestrator_config, media_host, tenants=tenants)

        assert await orchestrator.resolve_login("5") == "user_5"
