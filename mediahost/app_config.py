from __future__ import annotations

from pydantic import BaseModel, Field, SecretStr

from mediahost.schemas.server import ServerCredentials, ServerEndpoint
from mediahost.shared.config import config


class AppEnvironConfig(BaseModel):
    # Default media server, used when the registry has no active entry
    MEDIA_SERVER_HOST: str = config.get_str("MEDIA_SERVER_HOST", "127.0.0.1")
    MEDIA_SERVER_API_PORT: int = config.get_int("MEDIA_SERVER_API_PORT", 8087)
    MEDIA_SERVER_API_USERNAME: str = config.get_str("MEDIA_SERVER_API_USERNAME", "admin")
    MEDIA_SERVER_API_PASSWORD: str = config.get_str("MEDIA_SERVER_API_PASSWORD", "admin")
    MEDIA_SERVER_ID: str = config.get_str("MEDIA_SERVER_ID", "1")
    HTTP_TIMEOUT_SECONDS: float = float(config.get_int("HTTP_TIMEOUT_SECONDS", 10))

    # Management CLI
    MANAGEMENT_CLI_JAVA: str = config.get_str("MANAGEMENT_CLI_JAVA", "/usr/bin/java")
    MANAGEMENT_CLI_CLASSPATH: str = config.get_str(
        "MANAGEMENT_CLI_CLASSPATH", "/usr/local/WowzaMediaServer"
    )
    MANAGEMENT_CLI_JMX_URL: str = config.get_str(
        "MANAGEMENT_CLI_JMX_URL",
        "service:jmx:rmi://localhost:8084/jndi/rmi://localhost:8085/jmxrmi",
    )
    MANAGEMENT_CLI_USERNAME: str = config.get_str("MANAGEMENT_CLI_USERNAME", "admin")
    MANAGEMENT_CLI_PASSWORD: str = config.get_str("MANAGEMENT_CLI_PASSWORD", "admin")

    # Remote filesystem layout
    MEDIA_SERVER_CONF_ROOT: str = config.get_str(
        "MEDIA_SERVER_CONF_ROOT", "/usr/local/WowzaStreamingEngine/conf"
    )
    MEDIA_SERVER_TEMPLATE_APPLICATION: str = config.get_str("MEDIA_SERVER_TEMPLATE_APPLICATION", "live")
    DEFAULT_RELAY_APPLICATION: str = config.get_str("DEFAULT_RELAY_APPLICATION", "live")

    # Remote command channel
    SSH_USERNAME: str = config.get_str("SSH_USERNAME", "root")
    SSH_PORT: int = config.get_int("SSH_PORT", 22)
    SSH_CONNECT_TIMEOUT_SECONDS: float = float(config.get_int("SSH_CONNECT_TIMEOUT_SECONDS", 10))

    # Public playback endpoints
    PLAYBACK_HOST: str = config.get_str("PLAYBACK_HOST", "localhost")
    PLAYBACK_RTMP_PORT: int = config.get_int("PLAYBACK_RTMP_PORT", 1935)
    PLAYBACK_RTSP_PORT: int = config.get_int("PLAYBACK_RTSP_PORT", 554)
    PLAYBACK_HLS_PORT: int = config.get_int("PLAYBACK_HLS_PORT", 1935)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config


class OutputMarkers(BaseModel):
    """Marker strings used to classify free-text output of the remote host.

    Matching is case-sensitive substring containment, except for the existence
    tokens which must equal a whole output line.
    """

    error_markers: tuple[str, ...] = ("ERROR",)
    not_found_markers: tuple[str, ...] = ("not found",)
    exception_markers: tuple[str, ...] = ("Exception",)
    start_success_markers: tuple[str, ...] = ("success", "already")
    already_running_markers: tuple[str, ...] = ("already",)
    loaded_markers: tuple[str, ...] = ("loaded",)
    exists_token: str = "EXISTS"
    not_exists_token: str = "NOT_EXISTS"
    ok_token: str = "OK"
    playlist_markers: tuple[str, ...] = ("<smil", "<seq")

    def has_any(self, text: str | None, markers: tuple[str, ...]) -> bool:
        return bool(text) and any(marker in text for marker in markers)

    def reports_exists(self, stdout: str | None) -> bool:
        """True when one output line is exactly the exists token."""
        if not stdout:
            return False
        return any(line.strip() == self.exists_token for line in stdout.splitlines())


class ManagementCliConfig(BaseModel):
    java: str = "/usr/bin/java"
    classpath: str = "/usr/local/WowzaMediaServer"
    main_class: str = "JMXCommandLine"
    jmx_url: str = "service:jmx:rmi://localhost:8084/jndi/rmi://localhost:8085/jmxrmi"
    username: str = "admin"
    password: SecretStr = SecretStr("admin")


class PlaybackConfig(BaseModel):
    host: str = "localhost"
    rtmp_port: int = 1935
    rtsp_port: int = 554
    hls_port: int = 1935
    hls_scheme: str = "https"


class OrchestratorConfig(BaseModel):
    """Explicit configuration value handed to the orchestrator at construction."""

    default_server: ServerEndpoint
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    cli: ManagementCliConfig = Field(default_factory=ManagementCliConfig)
    markers: OutputMarkers = Field(default_factory=OutputMarkers)
    conf_root: str = "/usr/local/WowzaStreamingEngine/conf"
    application_file_name: str = "Application.xml"
    push_publish_file_name: str = "PushPublishMap.txt"
    template_application: str = "live"
    playlist_roots: tuple[str, ...] = (
        "/usr/local/WowzaStreamingEngine/content",
        "/usr/local/WowzaMediaServer/content",
        "/home/streaming",
    )
    playlist_probe_lines: int = Field(default=5, gt=0)
    default_playlist_file: str = "playlists_agendamentos.smil"
    recordings_root: str = "/home/streaming"
    default_relay_application: str = "live"
    relay_default_ports: dict[str, int] = Field(
        default_factory=lambda: {
            "rtmp": 1935,
            "rtmpe": 1935,
            "rtmps": 443,
            "rtmpt": 80,
            "rtmpts": 443,
        }
    )
    live_application: str = Field(
        default="live",
        description="Application that receives direct (encoder) publishes",
    )
    live_stream_suffix: str = "_live"
    default_bitrate_kbps: int = 2500
    default_viewer_limit: int = 100
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)

    def application_dir(self, identity: str) -> str:
        return f"{self.conf_root.rstrip('/')}/{identity}"

    def push_publish_path(self, identity: str) -> str:
        return f"{self.application_dir(identity)}/{self.push_publish_file_name}"

    def recordings_dir(self, identity: str) -> str:
        return f"{self.recordings_root.rstrip('/')}/{identity}/recordings/"

    @classmethod
    def from_environ(cls, env: AppEnvironConfig | None = None) -> OrchestratorConfig:
        env = env or get_app_environ_config()
        return cls(
            default_server=ServerEndpoint(
                host=env.MEDIA_SERVER_HOST,
                management_port=env.MEDIA_SERVER_API_PORT,
                credentials=ServerCredentials(
                    username=env.MEDIA_SERVER_API_USERNAME,
                    password=SecretStr(env.MEDIA_SERVER_API_PASSWORD),
                ),
                control_channel_id=env.MEDIA_SERVER_ID,
            ),
            http_timeout_seconds=env.HTTP_TIMEOUT_SECONDS,
            cli=ManagementCliConfig(
                java=env.MANAGEMENT_CLI_JAVA,
                classpath=env.MANAGEMENT_CLI_CLASSPATH,
                jmx_url=env.MANAGEMENT_CLI_JMX_URL,
                username=env.MANAGEMENT_CLI_USERNAME,
                password=SecretStr(env.MANAGEMENT_CLI_PASSWORD),
            ),
            conf_root=env.MEDIA_SERVER_CONF_ROOT,
            template_application=env.MEDIA_SERVER_TEMPLATE_APPLICATION,
            default_relay_application=env.DEFAULT_RELAY_APPLICATION,
            playback=PlaybackConfig(
                host=env.PLAYBACK_HOST,
                rtmp_port=env.PLAYBACK_RTMP_PORT,
                rtsp_port=env.PLAYBACK_RTSP_PORT,
                hls_port=env.PLAYBACK_HLS_PORT,
            ),
        )
