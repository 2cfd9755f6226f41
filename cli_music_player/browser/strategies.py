"""
Connection strategies: the three ways of obtaining a live browser.

    ProxyConfig   - attach to an externally managed browser at a fixed
                    DevTools endpoint
    DockerConfig  - provision a fresh headless Chrome container and attach
                    to it through its published port
    ChromeConfig  - launch a local Chromium process

Together they form the closed union BrowserType. Every variant implements
browser(timeout=None) -> BrowserConnection, and connect_browser() dispatches
on the variant type, so callers never branch on the strategy themselves.

Each variant can be built from a loosely-typed payload (a dictionary read
from config.yaml) and dumped back to one:

    search:
      backends:
        - proxy: "ws://localhost:9222/devtools/browser/<token>"
        - docker:
            image_path: "docker.io/justinribeiro/chrome-headless:latest"
            port_mapping: "9222:9222"
        - local:
            headless: true
            window_size: [1280, 720]

Usage:
    from cli_music_player.browser.strategies import ProxyConfig, connect_browser

    backend = ProxyConfig("ws://localhost:9222/devtools/browser/abc")
    with connect_browser(backend) as connection:
        page = connection.initial_page()
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from cli_music_player.browser.connection import BrowserConnection, connect_over_cdp, launch_chrome
from cli_music_player.browser.endpoint import Endpoint, format_endpoint, is_valid_url, parse_endpoint
from cli_music_player.core.exceptions import BrowserConnectionError, ConfigError, InvalidFormatError


DEFAULT_DOCKER_FLAGS = ("--rm", "-d", "--cap-add=SYS_ADMIN")
DEFAULT_DOCKER_IMAGE = "docker.io/justinribeiro/chrome-headless:latest"
DEFAULT_STARTUP_TIMEOUT = 10.0
DEFAULT_IDLE_BROWSER_TIME = 30.0


# =============================================================================
# PAYLOAD FIELD HELPERS
# =============================================================================

def _check_fields(payload: Mapping[str, Any], allowed: tuple[str, ...], section: str) -> None:
    if not isinstance(payload, Mapping):
        raise ConfigError(
            f"'{section}' must be a mapping",
            details={"field": section, "value": payload}
        )
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        raise ConfigError(
            f"Unknown field(s) in '{section}': {', '.join(map(str, unknown))}",
            details={"field": section, "unknown": unknown}
        )


def _bool_field(payload: Mapping[str, Any], key: str, default: bool, section: str) -> bool:
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(
            f"'{section}.{key}' must be true or false",
            details={"field": f"{section}.{key}", "value": value}
        )
    return value


def _number_field(payload: Mapping[str, Any], key: str, default: float, section: str) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"'{section}.{key}' must be a non-negative number of seconds",
            details={"field": f"{section}.{key}", "value": value}
        )
    return float(value)


def _optional_port_field(payload: Mapping[str, Any], key: str, section: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 65535:
        raise ConfigError(
            f"'{section}.{key}' must be a port number between 0 and 65535",
            details={"field": f"{section}.{key}", "value": value}
        )
    return value


def _optional_str_field(payload: Mapping[str, Any], key: str, section: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{section}.{key}' must be a non-empty string or null",
            details={"field": f"{section}.{key}", "value": value}
        )
    return value.strip()


# =============================================================================
# PROXY
# =============================================================================

@dataclass(frozen=True)
class ProxyConfig:
    """
    A pre-existing, externally managed DevTools endpoint.

    The URL is validated at construction time, so a ProxyConfig always holds
    a well-formed endpoint.

    Attributes:
        debug_ws_url: e.g. "ws://localhost:9222/devtools/browser/019f2fed-ad55-4c34-9ff1-9a61d01011a0"

    Raises:
        InvalidFormatError: If debug_ws_url is not a valid debug endpoint.
    """

    debug_ws_url: str

    FIELDS = ("debug_ws_url",)

    def __post_init__(self) -> None:
        if not is_valid_url(self.debug_ws_url):
            raise InvalidFormatError(
                f"url {self.debug_ws_url} doesn't conform to format",
                details={"url": self.debug_ws_url}
            )

    @classmethod
    def from_components(cls, host: str, port: int | None, token: str) -> "ProxyConfig":
        """Build a ProxyConfig from endpoint components."""
        return cls.from_endpoint(Endpoint(host=host, port=port, token=token))

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint) -> "ProxyConfig":
        return cls(format_endpoint(endpoint))

    def into_components(self) -> Endpoint:
        """Split the URL into host, port and token."""
        return parse_endpoint(self.debug_ws_url)

    @property
    def label(self) -> str:
        return f"proxy:{self.debug_ws_url}"

    def browser(self, timeout: float | None = None) -> BrowserConnection:
        """
        Open a session against the fixed endpoint.

        Raises:
            BrowserConnectionError: If the endpoint is unreachable or rejects
                                    the handshake.
        """
        return connect_over_cdp(self.debug_ws_url, timeout=timeout)

    @classmethod
    def from_payload(cls, payload: Any) -> "ProxyConfig":
        """
        Build from either a bare URL string or {"debug_ws_url": "..."}.

        Raises:
            ConfigError: If the payload is mistyped or the URL is malformed.
        """
        if isinstance(payload, str):
            url = payload
        else:
            _check_fields(payload, cls.FIELDS, "proxy")
            url = payload.get("debug_ws_url")
            if not isinstance(url, str):
                raise ConfigError(
                    "'proxy.debug_ws_url' is required and must be a string",
                    details={"field": "proxy.debug_ws_url"}
                )
        try:
            return cls(url.strip())
        except InvalidFormatError as e:
            raise ConfigError(
                f"'proxy.debug_ws_url': {e.message}",
                details={"field": "proxy.debug_ws_url", "value": url}
            ) from e

    def to_payload(self) -> dict[str, Any]:
        return {"debug_ws_url": self.debug_ws_url}


# =============================================================================
# DOCKER
# =============================================================================

@dataclass(frozen=True)
class DockerConfig:
    """
    Instructions for provisioning a fresh containerized headless Chrome.

    The browser inside the container announces its DevTools URL in its logs
    with the container-internal port; the externally reachable port is
    discovered with `docker port` (see ContainerProvisioner).

    Attributes:
        additional_flags: Extra flags passed to `docker run` verbatim.
                          Default: ("--rm", "-d", "--cap-add=SYS_ADMIN")
        image_path: Image that runs Chrome with remote debugging enabled.
                    Default: "docker.io/justinribeiro/chrome-headless:latest"
        port_mapping: "host:container" mapping passed as `-p`, e.g. "9222:9222"
                      or "192.168.1.100:8080:9222". When None, `-P` publishes
                      every port the image EXPOSEs on a random host port.
        startup_timeout: Seconds to keep re-reading the container logs while
                         waiting for the DevTools URL to be announced.
                         0 means read the logs exactly once.
        stop_on_close: Stop the container when the connection is closed.
                       Failed provisioning always stops the container.
    """

    additional_flags: tuple[str, ...] = DEFAULT_DOCKER_FLAGS
    image_path: str = DEFAULT_DOCKER_IMAGE
    port_mapping: str | None = None
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT
    stop_on_close: bool = True

    FIELDS = ("additional_flags", "image_path", "port_mapping", "startup_timeout", "stop_on_close")

    @property
    def label(self) -> str:
        return f"docker:{self.image_path}"

    def browser(self, timeout: float | None = None) -> BrowserConnection:
        """
        Provision a container and connect to it.

        Raises:
            ProvisioningError: If the container cannot yield a working connection.
        """
        # docker.py builds ProxyConfig objects, so it imports this module
        from cli_music_player.browser.docker import ContainerProvisioner

        return ContainerProvisioner(connect_timeout=timeout).provision(self)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "DockerConfig":
        """
        Build from a mapping; missing fields take their defaults.

        Raises:
            ConfigError: On unknown or mistyped fields.
        """
        payload = payload or {}
        _check_fields(payload, cls.FIELDS, "docker")

        flags = payload.get("additional_flags")
        if flags is None:
            flags = DEFAULT_DOCKER_FLAGS
        if not isinstance(flags, (list, tuple)) or not all(isinstance(flag, str) for flag in flags):
            raise ConfigError(
                "'docker.additional_flags' must be a list of strings",
                details={"field": "docker.additional_flags", "value": flags}
            )

        image_path = _optional_str_field(payload, "image_path", "docker") or DEFAULT_DOCKER_IMAGE

        return cls(
            additional_flags=tuple(flags),
            image_path=image_path,
            port_mapping=_optional_str_field(payload, "port_mapping", "docker"),
            startup_timeout=_number_field(payload, "startup_timeout", DEFAULT_STARTUP_TIMEOUT, "docker"),
            stop_on_close=_bool_field(payload, "stop_on_close", True, "docker"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "additional_flags": list(self.additional_flags),
            "image_path": self.image_path,
            "port_mapping": self.port_mapping,
            "startup_timeout": self.startup_timeout,
            "stop_on_close": self.stop_on_close,
        }


# =============================================================================
# LOCAL
# =============================================================================

@dataclass(frozen=True)
class ChromeConfig:
    """
    Instructions for launching a local Chromium process.

    Attributes:
        headless: Run without a GUI. If False, a browser window is shown.
                  Default: True
        sandbox: Keep Chromium's sandbox enabled. Set to False for poorly
                 configured environments (e.g. running as root in a container).
                 Default: True
        window_size: (width, height) of the rendered window, or None for
                     Chromium's default.
        port: Fixed remote debugging port, or None to let Chromium pick.
        path: Explicit Chrome/Chromium executable, or None to use the one
              Playwright installed.
        idle_browser_time: Seconds any single page operation may wait before
                           timing out. Default: 30
    """

    headless: bool = True
    sandbox: bool = True
    window_size: tuple[int, int] | None = None
    port: int | None = None
    path: Path | None = None
    idle_browser_time: float = DEFAULT_IDLE_BROWSER_TIME

    FIELDS = ("headless", "sandbox", "window_size", "port", "path", "idle_browser_time")

    @property
    def label(self) -> str:
        return f"local:{self.path or 'chromium'}"

    def launch_options(self, timeout: float | None = None) -> dict[str, Any]:
        """
        Translate this config into playwright chromium.launch() keyword arguments.

        Args:
            timeout: Seconds to wait for the browser process to start.

        Raises:
            BrowserConnectionError: If the window size is not a pair of
                                    positive integers.
        """
        args: list[str] = []
        if self.port is not None:
            args.append(f"--remote-debugging-port={self.port}")
        if self.window_size is not None:
            size = self.window_size
            if (
                not isinstance(size, (list, tuple))
                or len(size) != 2
                or not all(isinstance(v, int) and not isinstance(v, bool) and v > 0 for v in size)
            ):
                raise BrowserConnectionError(
                    f"window_size must be two positive integers, got {size!r}",
                    details={"window_size": size}
                )
            args.append(f"--window-size={size[0]},{size[1]}")

        options: dict[str, Any] = {
            "headless": self.headless,
            "chromium_sandbox": self.sandbox,
            "args": args,
        }
        if self.path is not None:
            options["executable_path"] = str(self.path)
        if timeout is not None:
            options["timeout"] = timeout * 1000
        return options

    def browser(self, timeout: float | None = None) -> BrowserConnection:
        """
        Start a new local browser process.

        Raises:
            BrowserConnectionError: If the options are inconsistent or the
                                    executable cannot be found or started.
        """
        return launch_chrome(self.launch_options(timeout), default_timeout=self.idle_browser_time)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "ChromeConfig":
        """
        Build from a mapping; missing fields take their defaults.

        Raises:
            ConfigError: On unknown or mistyped fields.
        """
        payload = payload or {}
        _check_fields(payload, cls.FIELDS, "local")

        window_size = payload.get("window_size")
        if window_size is not None:
            if (
                not isinstance(window_size, (list, tuple))
                or len(window_size) != 2
                or not all(isinstance(v, int) and not isinstance(v, bool) and v > 0 for v in window_size)
            ):
                raise ConfigError(
                    "'local.window_size' must be [width, height] with positive integers",
                    details={"field": "local.window_size", "value": window_size}
                )
            window_size = (window_size[0], window_size[1])

        path = _optional_str_field(payload, "path", "local")

        return cls(
            headless=_bool_field(payload, "headless", True, "local"),
            sandbox=_bool_field(payload, "sandbox", True, "local"),
            window_size=window_size,
            port=_optional_port_field(payload, "port", "local"),
            path=Path(path).expanduser() if path else None,
            idle_browser_time=_number_field(payload, "idle_browser_time", DEFAULT_IDLE_BROWSER_TIME, "local"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "headless": self.headless,
            "sandbox": self.sandbox,
            "window_size": list(self.window_size) if self.window_size else None,
            "port": self.port,
            "path": str(self.path) if self.path else None,
            "idle_browser_time": self.idle_browser_time,
        }


# =============================================================================
# DISPATCH
# =============================================================================

BrowserType = Union[ProxyConfig, DockerConfig, ChromeConfig]

# Tag used in config payloads -> variant
BROWSER_TYPE_TAGS: dict[str, type] = {
    "proxy": ProxyConfig,
    "docker": DockerConfig,
    "local": ChromeConfig,
    "chrome": ChromeConfig,
}


def proxy_backend(url: str) -> ProxyConfig:
    """
    Build a Proxy backend from a URL literal.

    Raises:
        InvalidFormatError: Immediately, if the literal is malformed. This
                            is a programming error, not a runtime condition.
    """
    return ProxyConfig(url)


def connect_browser(config: BrowserType, *, timeout: float | None = None) -> BrowserConnection:
    """
    Produce a live browser connection from any backend configuration.

    Args:
        config: One of ProxyConfig, DockerConfig, ChromeConfig.
        timeout: Seconds allowed for establishing the connection, or None
                 for each strategy's default.

    Raises:
        BrowserConnectionError: For proxy and local failures.
        ProvisioningError: For docker failures.
        TypeError: If config is not a known backend variant.
    """
    if isinstance(config, (ProxyConfig, DockerConfig, ChromeConfig)):
        return config.browser(timeout=timeout)
    raise TypeError(f"unsupported browser backend: {type(config).__name__}")


def browser_type_from_payload(payload: Any) -> BrowserType:
    """
    Build a backend from a tagged payload.

    Accepted shapes:
        {"proxy": "ws://..."}  or  {"proxy": {"debug_ws_url": "ws://..."}}
        {"docker": {...}}      or  {"docker": null}
        {"local": {...}}       or  {"local": null}
        "local" / "docker"     (bare tag, all defaults)

    Raises:
        ConfigError: If the tag is unknown or the variant payload is invalid.
    """
    if isinstance(payload, str):
        tag, body = payload, None
    elif isinstance(payload, Mapping) and len(payload) == 1:
        tag, body = next(iter(payload.items()))
    else:
        raise ConfigError(
            "A backend must be a single-key mapping such as {'local': {...}}",
            details={"value": payload}
        )

    variant = BROWSER_TYPE_TAGS.get(str(tag).lower())
    if variant is None:
        raise ConfigError(
            f"Unknown backend type '{tag}' (expected one of: proxy, docker, local)",
            details={"field": "backend", "value": tag}
        )
    if variant is ProxyConfig and body is None:
        raise ConfigError(
            "A proxy backend needs a debug_ws_url",
            details={"field": "proxy.debug_ws_url"}
        )
    return variant.from_payload(body)


def browser_type_to_payload(config: BrowserType) -> dict[str, Any]:
    """Inverse of browser_type_from_payload() (always the mapping form)."""
    if isinstance(config, ProxyConfig):
        return {"proxy": config.to_payload()}
    if isinstance(config, DockerConfig):
        return {"docker": config.to_payload()}
    if isinstance(config, ChromeConfig):
        return {"local": config.to_payload()}
    raise TypeError(f"unsupported browser backend: {type(config).__name__}")


def auto_browser_type(payload: Any) -> BrowserType | None:
    """
    Parse a payload into the fitting backend, tagged or not.

    First the tagged form is tried; if that fails, the payload is fitted
    against each variant's schema in turn (proxy, docker, local). A bare
    URL string is taken as a proxy.

    Returns:
        The first variant that accepts the payload, or None if none does
        (an empty payload fits every variant and is rejected).
    """
    if not payload:
        return None

    try:
        return browser_type_from_payload(payload)
    except ConfigError:
        pass

    for variant in (ProxyConfig, DockerConfig, ChromeConfig):
        try:
            return variant.from_payload(payload)
        except ConfigError:
            continue
    return None
