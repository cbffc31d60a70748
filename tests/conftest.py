import shlex
from collections.abc import Callable

import httpx
import pytest
from pydantic import SecretStr

from mediahost.app_config import OrchestratorConfig
from mediahost.schemas.server import ServerCredentials, ServerEndpoint
from mediahost.services.remote.channel import CommandOutput
from mediahost.services.remote.commands import CommandBuilder
from mediahost.shared.errors import RemoteCommandFailure

CONF_ROOT = "/usr/local/WowzaStreamingEngine/conf"
SERVER_ID = "1"


class FakeMediaHost:
    """In-memory remote host that interprets the commands built by `CommandBuilder`.

    Holds a flat file map and a directory set, and tracks which applications
    were started through the management CLI. Shell commands are run one program
    at a time with `&&`, `||` and output redirects honoured, so compound
    commands fail part-way the same way a real shell would.
    """

    def __init__(self):
        self.files: dict[str, str] = {}
        self.dirs: set[str] = set()
        self.running: set[str] = set()
        self.commands: list[str] = []
        self.fail_when: Callable[[str], bool] | None = None
        self.failing_programs: set[str] = set()
        self.start_output: str | None = None
        self.version_output = "Wowza Streaming Engine 4.8.0 build20200324"

    # Setup helpers

    def add_dir(self, path: str) -> None:
        self.dirs.add(path.rstrip("/"))

    def add_file(self, path: str, content: str = "") -> None:
        self.add_dir(path.rsplit("/", 1)[0])
        self.files[path] = content

    def add_template(self, application: str = "live", push_map: str | None = "") -> None:
        self.add_file(f"{CONF_ROOT}/{application}/Application.xml", "<Root><Application/></Root>\n")
        if push_map is not None:
            self.add_file(f"{CONF_ROOT}/{application}/PushPublishMap.txt", push_map)

    def map_lines(self, application: str) -> list[str]:
        content = self.files.get(f"{CONF_ROOT}/{application}/PushPublishMap.txt", "")
        return [line for line in content.splitlines() if line]

    # RemoteExecutionChannel

    async def execute(self, server_id: str, command: str) -> CommandOutput:
        self.commands.append(command)
        if self.fail_when is not None and self.fail_when(command):
            raise RemoteCommandFailure("Simulated channel failure", command=command)

        tokens = shlex.split(command)
        if "-jmx" in tokens:
            return self._cli(tokens)
        return self._run_line(tokens)

    def _run_line(self, tokens: list[str]) -> CommandOutput:
        stdout, stderr = [], []
        status = 0
        connector = None
        segment: list[str] = []
        for token in [*tokens, None]:
            if token not in ("&&", "||", None):
                segment.append(token)
                continue
            if connector is None or (connector == "&&") == (status == 0):
                out, err, status = self._run_segment(segment)
                stdout.append(out)
                stderr.append(err)
            connector, segment = token, []
        return CommandOutput(stdout="".join(stdout), stderr="".join(stderr), exit_status=status)

    def _run_segment(self, argv: list[str]) -> tuple[str, str, int]:
        redirect, append, quiet = None, False, False
        args = []
        index = 0
        while index < len(argv):
            token = argv[index]
            if token in (">", ">>"):
                redirect, append = argv[index + 1], token == ">>"
                index += 2
                continue
            if token == "2>/dev/null":
                quiet = True
            else:
                args.append(token)
            index += 1

        program = args[0]
        if program in self.failing_programs:
            out, err, status = "", f"{program}: simulated failure\n", 1
        else:
            handler = getattr(self, f"_run_{program}", None)
            if handler is None:
                return "", f"{program}: command not found\n", 127
            out, err, status = handler(args[1:])

        if redirect is not None:
            self.files[redirect] = (self.files.get(redirect, "") if append else "") + out
            out = ""
        return out, "" if quiet else err, status

    def _cli(self, tokens: list[str]) -> CommandOutput:
        action_index = tokens.index("-pass") + 2
        action, args = tokens[action_index], tokens[action_index + 1 :]

        if action == "getServerVersion":
            return CommandOutput(stdout=self.version_output, exit_status=0)

        application = args[0]
        if action == "getApplicationInstanceInfo":
            if application in self.running:
                return CommandOutput(stdout=f"Application instance loaded: {application}/_definst_\n")
            return CommandOutput(stdout=f"ERROR: Application {application} not found\n")

        if action == "startAppInstance":
            if self.start_output is not None:
                return CommandOutput(stdout=self.start_output)
            if f"{CONF_ROOT}/{application}" not in self.dirs:
                return CommandOutput(stdout=f"ERROR: Application {application} not found\n")
            if application in self.running:
                return CommandOutput(stdout=f"Application {application} already running\n")
            self.running.add(application)
            return CommandOutput(stdout=f"Application {application} started successfully\n")

        return CommandOutput(stdout=f"ERROR: unknown action {action}\n")

    # Shell programs: each returns (stdout, stderr, exit status)

    def _run_test(self, args: list[str]) -> tuple[str, str, int]:
        flag, path = args
        exists = path.rstrip("/") in self.dirs if flag == "-d" else path in self.files
        return "", "", 0 if exists else 1

    def _run_echo(self, args: list[str]) -> tuple[str, str, int]:
        return " ".join(args) + "\n", "", 0

    def _run_true(self, args: list[str]) -> tuple[str, str, int]:
        return "", "", 0

    def _run_mkdir(self, args: list[str]) -> tuple[str, str, int]:
        self.add_dir(args[-1])
        return "", "", 0

    def _run_cp(self, args: list[str]) -> tuple[str, str, int]:
        source, destination = args
        if source not in self.files:
            return "", f"cp: cannot stat '{source}'\n", 1
        self.files[destination] = self.files[source]
        return "", "", 0

    def _run_touch(self, args: list[str]) -> tuple[str, str, int]:
        self.files.setdefault(args[0], "")
        return "", "", 0

    def _run_head(self, args: list[str]) -> tuple[str, str, int]:
        count, path = int(args[1]), args[2]
        if path not in self.files:
            return "", f"head: cannot open '{path}'\n", 1
        return "".join(self.files[path].splitlines(keepends=True)[:count]), "", 0

    def _run_cat(self, args: list[str]) -> tuple[str, str, int]:
        path = args[0]
        if path not in self.files:
            return "", f"cat: {path}: No such file or directory\n", 1
        return self.files[path], "", 0

    def _run_printf(self, args: list[str]) -> tuple[str, str, int]:
        return args[1] + "\n", "", 0

    def _run_awk(self, args: list[str]) -> tuple[str, str, int]:
        key, path = args[1].split("=", 1)[1], args[3]
        if path not in self.files:
            return "", f"awk: cannot open {path}\n", 2
        kept = [line for line in self.files[path].splitlines() if not line.startswith(f"{key}=")]
        return "".join(f"{line}\n" for line in kept), "", 0

    def _run_mv(self, args: list[str]) -> tuple[str, str, int]:
        source, destination = args
        if source not in self.files:
            return "", f"mv: cannot stat '{source}'\n", 1
        self.files[destination] = self.files.pop(source)
        return "", "", 0


class FakeHttpApi:
    """Routes for an `httpx.MockTransport` standing in for the HTTP management API."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []
        self.reachable = True

    def add(self, method: str, path: str, status: int = 200, body: object = None) -> None:
        self.routes[(method, path)] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.reachable:
            raise httpx.ConnectError("Connection refused", request=request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"message": "Not found"}))
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def endpoint() -> ServerEndpoint:
    return ServerEndpoint(
        host="media.test",
        management_port=8087,
        credentials=ServerCredentials(username="admin", password=SecretStr("admin")),
        control_channel_id=SERVER_ID,
    )


@pytest.fixture
def orchestrator_config(endpoint: ServerEndpoint) -> OrchestratorConfig:
    return OrchestratorConfig(default_server=endpoint, conf_root=CONF_ROOT)


@pytest.fixture
def commands(orchestrator_config: OrchestratorConfig) -> CommandBuilder:
    return CommandBuilder(orchestrator_config.cli, orchestrator_config.markers)


@pytest.fixture
def media_host() -> FakeMediaHost:
    host = FakeMediaHost()
    host.add_template()
    return host


@pytest.fixture
def http_api() -> FakeHttpApi:
    return FakeHttpApi()


@pytest.fixture
def closed_http_api() -> FakeHttpApi:
    api = FakeHttpApi()
    api.reachable = False
    return api
