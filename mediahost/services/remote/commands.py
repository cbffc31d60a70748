"""Shell and management-CLI command strings for the remote host.

Every argument is shell-quoted. The relay map is rewritten with `awk`, `printf`
and `mv` in one command, so keys never need regex escaping.
"""

import shlex

from mediahost.app_config import ManagementCliConfig, OutputMarkers

_MASK = "***"


class CommandBuilder:
    def __init__(self, cli: ManagementCliConfig, markers: OutputMarkers):
        self._cli = cli
        self._markers = markers

    @property
    def cli_prefix(self) -> str:
        return " ".join(
            [
                shlex.quote(self._cli.java),
                "-cp",
                shlex.quote(self._cli.classpath),
                shlex.quote(self._cli.main_class),
                "-jmx",
                shlex.quote(self._cli.jmx_url),
                "-user",
                shlex.quote(self._cli.username),
                "-pass",
                shlex.quote(self._cli.password.get_secret_value()),
            ]
        )

    def mask(self, command: str) -> str:
        """Hide the CLI password before a command is logged."""
        secret = self._cli.password.get_secret_value()
        if not secret:
            return command
        return command.replace(f"-pass {shlex.quote(secret)}", f"-pass {_MASK}")

    # Management CLI

    def cli(self, action: str, *args: str) -> str:
        parts = [self.cli_prefix, shlex.quote(action), *(shlex.quote(arg) for arg in args)]
        return " ".join(parts)

    def instance_info(self, application: str) -> str:
        return self.cli("getApplicationInstanceInfo", application)

    def start_app_instance(self, application: str) -> str:
        return self.cli("startAppInstance", application)

    def server_version(self) -> str:
        return self.cli("getServerVersion")

    # Filesystem probes

    def _exists(self, flag: str, path: str) -> str:
        return (
            f"test {flag} {shlex.quote(path)} "
            f"&& echo {self._markers.exists_token} || echo {self._markers.not_exists_token}"
        )

    def dir_exists(self, path: str) -> str:
        return self._exists("-d", path)

    def file_exists(self, path: str) -> str:
        return self._exists("-f", path)

    def read_head(self, path: str, lines: int) -> str:
        return f"head -n {int(lines)} {shlex.quote(path)}"

    def read_file(self, path: str) -> str:
        return f"cat {shlex.quote(path)} 2>/dev/null || true"

    # Filesystem mutations

    def make_dir(self, path: str) -> str:
        return f"mkdir -p {shlex.quote(path)} && echo {self._markers.ok_token}"

    def copy_file(self, source: str, destination: str) -> str:
        return f"cp {shlex.quote(source)} {shlex.quote(destination)} && echo {self._markers.ok_token}"

    def copy_or_touch(self, source: str, destination: str) -> str:
        """Copy `source`, or create an empty `destination` when the copy fails."""
        return f"cp {shlex.quote(source)} {shlex.quote(destination)} 2>/dev/null || touch {shlex.quote(destination)}"

    def replace_key_line(self, path: str, key: str, line: str) -> str:
        """Rewrite a map file so `line` is the only `key=...` line, other lines kept in order.

        The new content is built in a temp file and moved into place only when
        every step succeeded, so a failed write leaves the previous file intact.
        """
        target = shlex.quote(path)
        tmp = shlex.quote(f"{path}.tmp")
        return (
            f"touch {target} "
            f"&& awk -v key={shlex.quote(key)} 'index($0, key \"=\") != 1' {target} > {tmp} "
            f"&& printf '%s\\n' {shlex.quote(line)} >> {tmp} "
            f"&& mv {tmp} {target} "
            f"&& echo {self._markers.ok_token}"
        )
