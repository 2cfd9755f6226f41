"""
Docker provisioning of a headless Chrome for the search provider.

The debug server inside the container announces its DevTools URL only in
the container logs, and with the container-internal port, which is
meaningless from the host. The externally reachable port is assigned by
Docker and has to be discovered separately. The two pieces are fused here.

Provisioning Protocol:
    1. `docker run [-p <mapping> | -P] <flags...> <image>` -> container id
    2. `docker logs <id>` (a finite snapshot, re-read until startup_timeout)
       -> first line containing "ws://...devtools/browser/..."
    3. `docker port <id>` -> published host ports, e.g.
           9222/tcp -> 0.0.0.0:49153
           9222/tcp -> [::]:49153
    4. Parse the announced URL, force host = "localhost"
    5. Try each published port in turn; keep the first connection that works.
       If none works, raise ProvisioningError listing every port's failure.

Container Lifecycle:
    The provisioner owns the container it starts. Any failure after
    `docker run` succeeded stops the container before the error propagates.
    On success, stopping is attached to the returned BrowserConnection and
    happens when the connection is closed (unless DockerConfig.stop_on_close
    is False). With the default "--rm" flag, stopping also removes it.

Usage:
    from cli_music_player.browser.docker import ContainerProvisioner
    from cli_music_player.browser.strategies import DockerConfig

    with ContainerProvisioner().provision(DockerConfig()) as connection:
        page = connection.initial_page()
"""

import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import requests

from cli_music_player.browser.connection import BrowserConnection
from cli_music_player.browser.endpoint import Endpoint, find_debug_url, parse_endpoint
from cli_music_player.browser.strategies import DockerConfig, ProxyConfig
from cli_music_player.core.exceptions import BrowserConnectionError, InvalidFormatError, ProvisioningError
from cli_music_player.core.logger import get_logger


logger = get_logger(__name__)


CommandRunner = Callable[..., subprocess.CompletedProcess]
Connector = Callable[[ProxyConfig], BrowserConnection]

# Host that published container ports are reachable on
PUBLISHED_HOST = "localhost"

DEFAULT_COMMAND_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class ContainerHandle:
    """A container started by the provisioner. Never persisted."""
    container_id: str

    @property
    def short_id(self) -> str:
        return self.container_id[:12]


def find_debug_url_in_logs(lines: Iterable[str]) -> str | None:
    """
    Scan log lines for the first announced DevTools URL.

    Args:
        lines: Log output, one line per item.

    Returns:
        The substring from "ws://" to end of line of the first matching
        line, or None if no line matches.
    """
    for line in lines:
        url = find_debug_url(line)
        if url is not None:
            return url
    return None


def parse_port_lines(output: str) -> list[int]:
    """
    Extract the published host ports from `docker port` output.

    Args:
        output: Text such as:
                    9222/tcp -> 0.0.0.0:49153
                    9222/tcp -> [::]:49153
                    9223/tcp -> 0.0.0.0:12451

    Returns:
        Host ports in output order without duplicates, e.g. [49153, 12451].
        Lines that don't end in ':<digits>' are skipped.
    """
    ports: list[int] = []
    for line in output.splitlines():
        mapping = line.strip()
        if not mapping:
            continue
        if "->" in mapping:
            _, _, mapping = mapping.partition("->")
            mapping = mapping.strip()

        port_bits = mapping.rsplit(":", 1)
        if len(port_bits) != 2:
            continue
        published_port = port_bits[1].strip()
        if published_port.isdigit():
            port = int(published_port)
            if port not in ports:
                ports.append(port)
    return ports


def _format_failures(failures: list[tuple[int, str]]) -> str:
    return "\n".join(f"  port {port}: {message}" for port, message in failures)


# =============================================================================
# PORT PROBING STRATEGIES
# =============================================================================

class PortProber(ABC):
    """
    Strategy for turning candidate ports into exactly one connection.

    Implementations must return a single open connection (closing any other
    they opened) or raise ProvisioningError whose failures hold one entry
    per port attempted, in the order the ports were given.
    """

    @abstractmethod
    def probe(self, endpoint: Endpoint, ports: list[int], connector: Connector) -> BrowserConnection:
        """Connect to endpoint on the first working port."""


class SequentialPortProber(PortProber):
    """Try ports one by one; stop at the first success."""

    def probe(self, endpoint: Endpoint, ports: list[int], connector: Connector) -> BrowserConnection:
        failures: list[tuple[int, str]] = []

        for port in ports:
            proxy = ProxyConfig.from_endpoint(endpoint.with_port(port))
            try:
                connection = connector(proxy)
            except BrowserConnectionError as e:
                logger.debug(f"Port {port} failed: {e.message}")
                failures.append((port, e.message))
                continue
            logger.info(f"Connected to container browser on port {port}")
            return connection

        raise ProvisioningError(
            f"None of the ports worked:\n{_format_failures(failures)}",
            details={"host": endpoint.host, "ports": list(ports)},
            failures=failures
        )


class ConcurrentPortProber(PortProber):
    """
    Check every port's DevTools HTTP interface in parallel, then connect.

    Playwright sync connections are bound to the thread that opened them,
    so only the reachability check (GET /json/version) runs in the pool.
    The connection itself is opened on the calling thread, on reachable
    ports in the given order, which keeps exactly one connection.
    """

    def __init__(
        self,
        max_workers: int = 4,
        check_timeout: float = 2.0,
        http_get: Callable[..., Any] = requests.get
    ) -> None:
        self._max_workers = max_workers
        self._check_timeout = check_timeout
        self._http_get = http_get

    def _check(self, host: str, port: int) -> str | None:
        """Return None if the port answers like a DevTools server, else the reason."""
        url = f"http://{host}:{port}/json/version"
        try:
            response = self._http_get(url, timeout=self._check_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            return f"unreachable: {e}"
        return None

    def probe(self, endpoint: Endpoint, ports: list[int], connector: Connector) -> BrowserConnection:
        outcome: dict[int, str] = {}

        with ThreadPoolExecutor(max_workers=max(1, min(self._max_workers, len(ports) or 1))) as pool:
            checks = {port: pool.submit(self._check, endpoint.host, port) for port in ports}
            for port, future in checks.items():
                reason = future.result()
                if reason is not None:
                    outcome[port] = reason

        for port in ports:
            if port in outcome:
                continue
            proxy = ProxyConfig.from_endpoint(endpoint.with_port(port))
            try:
                connection = connector(proxy)
            except BrowserConnectionError as e:
                outcome[port] = e.message
                continue
            logger.info(f"Connected to container browser on port {port}")
            return connection

        failures = [(port, outcome[port]) for port in ports]
        raise ProvisioningError(
            f"None of the ports worked:\n{_format_failures(failures)}",
            details={"host": endpoint.host, "ports": list(ports)},
            failures=failures
        )


# =============================================================================
# PROVISIONER
# =============================================================================

class ContainerProvisioner:
    """
    Turns a DockerConfig into a live BrowserConnection.

    All Docker interaction goes through command_runner, which has the
    signature of subprocess.run; tests substitute a recording fake.

    Attributes:
        docker_binary: Name or path of the docker CLI.
    """

    def __init__(
        self,
        *,
        docker_binary: str = "docker",
        command_runner: CommandRunner | None = None,
        connector: Connector | None = None,
        prober: PortProber | None = None,
        connect_timeout: float | None = None,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.docker_binary = docker_binary
        self._run = command_runner or subprocess.run
        self._connector = connector or (lambda proxy: proxy.browser(timeout=connect_timeout))
        self._prober = prober or SequentialPortProber()
        self._command_timeout = command_timeout
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def provision(self, config: DockerConfig) -> BrowserConnection:
        """
        Run the full provisioning protocol.

        Returns:
            An open connection to the container's browser.

        Raises:
            ProvisioningError: If the container fails to start, never
                               announces a DevTools URL, publishes no port,
                               or every published port fails. `failures`
                               lists each port's error in the last case.
        """
        handle = self.start_container(config)
        try:
            url = self.wait_for_debug_url(handle, config.startup_timeout)
            ports = self.published_ports(handle)
            try:
                endpoint = parse_endpoint(url).with_host(PUBLISHED_HOST)
            except InvalidFormatError as e:
                raise ProvisioningError(
                    f"container announced a malformed DevTools URL: {url}",
                    details={"container_id": handle.container_id, "url": url}
                ) from e

            logger.info(f"Probing ports {ports} of container {handle.short_id}")
            connection = self._prober.probe(endpoint, ports, self._connector)
        except BaseException:
            self.stop_container(handle)
            raise

        if config.stop_on_close:
            connection.add_teardown(lambda: self.stop_container(handle))
        return connection

    def build_run_args(self, config: DockerConfig) -> list[str]:
        """Compose the `docker run` command line for config."""
        args = [self.docker_binary, "run"]
        if config.port_mapping:
            args.extend(["-p", config.port_mapping])
        else:
            args.append("-P")
        args.extend(config.additional_flags)
        args.append(config.image_path)
        return args

    def start_container(self, config: DockerConfig) -> ContainerHandle:
        """
        Start the container and capture its id.

        Raises:
            ProvisioningError: If docker is missing, exits non-zero or
                               prints no container id.
        """
        args = self.build_run_args(config)
        logger.info(f"Starting browser container from {config.image_path}")
        result = self._docker(args)

        output_lines = (result.stdout or "").strip().splitlines()
        if not output_lines:
            raise ProvisioningError(
                "docker run did not return a container identifier",
                details={"docker_cmd": " ".join(args)}
            )
        # Pull progress may precede the id when flags route it to stdout
        handle = ContainerHandle(output_lines[-1].strip())
        logger.debug(f"Started container {handle.container_id}")
        return handle

    def read_logs(self, handle: ContainerHandle) -> list[str]:
        """Read the container's currently available logs (stdout, then stderr)."""
        result = self._docker([self.docker_binary, "logs", handle.container_id])
        return (result.stdout or "").splitlines() + (result.stderr or "").splitlines()

    def wait_for_debug_url(self, handle: ContainerHandle, startup_timeout: float) -> str:
        """
        Re-read the logs until a DevTools URL is announced.

        Args:
            handle: The started container.
            startup_timeout: Seconds to keep polling. 0 reads exactly once.

        Raises:
            ProvisioningError: If no log line matches within the timeout.
        """
        deadline = self._clock() + startup_timeout
        while True:
            url = find_debug_url_in_logs(self.read_logs(handle))
            if url is not None:
                logger.debug(f"Container {handle.short_id} announced {url}")
                return url
            if self._clock() >= deadline:
                raise ProvisioningError(
                    "docker logs has no line matching 'ws://*/devtools/browser/*'",
                    details={"container_id": handle.container_id, "startup_timeout": startup_timeout}
                )
            self._sleep(self._poll_interval)

    def published_ports(self, handle: ContainerHandle) -> list[int]:
        """
        Query the container's published host ports.

        Raises:
            ProvisioningError: If docker reports no usable mapping.
        """
        result = self._docker([self.docker_binary, "port", handle.container_id])
        ports = parse_port_lines(result.stdout or "")
        if not ports:
            raise ProvisioningError(
                "docker port reported no published ports",
                details={"container_id": handle.container_id, "output": result.stdout}
            )
        return ports

    def stop_container(self, handle: ContainerHandle) -> None:
        """Stop the container; failures are logged and ignored."""
        logger.info(f"Stopping container {handle.short_id}")
        try:
            self._docker([self.docker_binary, "stop", handle.container_id])
        except ProvisioningError as e:
            logger.warning(f"docker stop failed (ignored): {e.message}")

    def _docker(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd_str = " ".join(args)
        logger.debug(f"Running `{cmd_str}`")
        try:
            return self._run(
                args,
                capture_output=True,
                text=True,
                check=True,
                timeout=self._command_timeout
            )
        except FileNotFoundError as e:
            raise ProvisioningError(
                f"{self.docker_binary} executable not found",
                details={"docker_cmd": cmd_str, "original_error": str(e)}
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ProvisioningError(
                f"`{cmd_str}` failed (returncode={e.returncode}) stderr={stderr}",
                details={"docker_cmd": cmd_str, "returncode": e.returncode, "stderr": stderr}
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ProvisioningError(
                f"`{cmd_str}` timed out after {e.timeout}s",
                details={"docker_cmd": cmd_str}
            ) from e
