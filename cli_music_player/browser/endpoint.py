"""
Chrome DevTools debug endpoint codec.

A browser started with remote debugging announces an endpoint of the shape:

    ws://<host>[:<port>]/devtools/browser/<token>

for example "ws://127.0.0.1:9222/devtools/browser/019f2fed-ad55-4c34-9ff1-9a61d01011a0".

This module validates such URLs and converts them to and from the Endpoint
value object, so the Docker provisioner can swap the advertised (internal)
host and port for the externally published ones while keeping the token.

parse_endpoint() and format_endpoint() are inverses:
    format_endpoint(parse_endpoint(url)) == url
    parse_endpoint(format_endpoint(endpoint)) == endpoint
"""

import re
from dataclasses import dataclass, replace

from cli_music_player.core.exceptions import InvalidFormatError


PROTOCOL = "ws://"
DEVTOOLS_PATH = "/devtools/browser/"

_URL_REGEX = re.compile(
    r"^ws://(?P<host>[^:/]+)(?::(?P<port>\d+))?/devtools/browser/(?P<token>.+)\Z"
)

MAX_PORT = 65535


@dataclass(frozen=True)
class Endpoint:
    """
    Immutable components of a debug endpoint URL.

    Attributes:
        host: Host name or IP address. Non-empty, contains no ':' or '/'.
              Example: "0.0.0.0"
        port: TCP port, or None when the URL carries no ':<port>' segment.
              None is not the same as port 0.
        token: Browser session token. Non-empty.
               Example: "019f2fed-ad55-4c34-9ff1-9a61d01011a0"

    Raises:
        InvalidFormatError: On construction with fields that could not be
                            formatted back into a valid URL.
    """

    host: str
    port: int | None
    token: str

    def __post_init__(self) -> None:
        if not self.host or ":" in self.host or "/" in self.host:
            raise InvalidFormatError(
                f"invalid endpoint host {self.host!r}",
                details={"host": self.host}
            )
        if self.port is not None and (
            isinstance(self.port, bool)
            or not isinstance(self.port, int)
            or not 0 <= self.port <= MAX_PORT
        ):
            raise InvalidFormatError(
                f"invalid endpoint port {self.port!r}",
                details={"port": self.port}
            )
        if not self.token or "\n" in self.token:
            raise InvalidFormatError(
                f"invalid endpoint token {self.token!r}",
                details={"token": self.token}
            )

    @classmethod
    def from_url(cls, url: str) -> "Endpoint":
        """Alias of parse_endpoint()."""
        return parse_endpoint(url)

    def to_url(self) -> str:
        """Alias of format_endpoint()."""
        return format_endpoint(self)

    def with_port(self, port: int | None) -> "Endpoint":
        """Return a copy of this endpoint with another port."""
        return replace(self, port=port)

    def with_host(self, host: str) -> "Endpoint":
        """Return a copy of this endpoint with another host."""
        return replace(self, host=host)


def is_valid_url(url: str) -> bool:
    """
    Check whether url is a well-formed debug endpoint.

    Args:
        url: Candidate URL.

    Returns:
        True iff url matches ws://<host>[:<port>]/devtools/browser/<token>,
        where host has neither ':' nor '/', port is decimal digits within
        the TCP range, and token is one or more characters to end of string.

    Examples:
        is_valid_url("ws://0.0.0.0:1214/devtools/browser/tok-1")        # True
        is_valid_url("ws://host.no-port/devtools/browser/tok")          # True
        is_valid_url("ws://no.token/devtools/browser/")                 # False
        is_valid_url("http://bad/devtools/browser/tok")                 # False
        is_valid_url("ws://no.path:15")                                 # False
    """
    if not isinstance(url, str):
        return False
    match = _URL_REGEX.match(url)
    if match is None:
        return False
    port = match.group("port")
    return port is None or int(port) <= MAX_PORT


def parse_endpoint(url: str) -> Endpoint:
    """
    Decompose a debug endpoint URL into its components.

    Args:
        url: The URL to parse.

    Returns:
        Endpoint with host, port (None if absent) and token.

    Raises:
        InvalidFormatError: If url does not pass is_valid_url().

    Example:
        parse_endpoint("ws://0.0.0.0:1214/devtools/browser/some-token-here")
        # Endpoint(host="0.0.0.0", port=1214, token="some-token-here")
    """
    if not is_valid_url(url):
        raise InvalidFormatError(
            f"url {url} doesn't conform to format",
            details={"url": url}
        )
    match = _URL_REGEX.match(url)
    port = match.group("port")
    return Endpoint(
        host=match.group("host"),
        port=int(port) if port is not None else None,
        token=match.group("token"),
    )


def format_endpoint(endpoint: Endpoint) -> str:
    """
    Serialize an Endpoint back into its URL form.

    Args:
        endpoint: The components to join.

    Returns:
        "ws://<host>[:<port>]/devtools/browser/<token>"
    """
    port_str = f":{endpoint.port}" if endpoint.port is not None else ""
    return f"{PROTOCOL}{endpoint.host}{port_str}{DEVTOOLS_PATH}{endpoint.token}"


def find_debug_url(line: str) -> str | None:
    """
    Extract a candidate debug URL from one line of process output.

    Args:
        line: A log line, e.g.
              "DevTools listening on ws://0.0.0.0:9222/devtools/browser/abc"

    Returns:
        The substring from 'ws://' to the end of the line (trailing
        whitespace stripped) when the line also contains '/devtools/browser/'
        after it, otherwise None. The result is not validated.
    """
    start = line.find(PROTOCOL)
    if start < 0:
        return None
    candidate = line[start:].rstrip()
    if DEVTOOLS_PATH not in candidate:
        return None
    return candidate
