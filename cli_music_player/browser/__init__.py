"""
Browser connection provisioning for cli-music-player.

This module obtains a working Chrome DevTools connection from one of three
connection strategies and hands it to the search provider:

    - endpoint: Debug endpoint URL codec (ws://host[:port]/devtools/browser/token)
    - connection: BrowserConnection wrapping a Playwright browser
    - strategies: ProxyConfig / DockerConfig / ChromeConfig and dispatch
    - docker: ContainerProvisioner discovering a container's DevTools endpoint

Usage:
    from cli_music_player.browser import ChromeConfig, ProxyConfig, connect_browser

    for backend in (ProxyConfig("ws://localhost:9222/devtools/browser/abc"), ChromeConfig()):
        try:
            connection = connect_browser(backend)
            break
        except MusicPlayerError:
            continue
"""

from cli_music_player.browser.connection import BrowserConnection, connect_over_cdp, launch_chrome
from cli_music_player.browser.docker import (
    ConcurrentPortProber,
    ContainerHandle,
    ContainerProvisioner,
    PortProber,
    SequentialPortProber,
    find_debug_url_in_logs,
    parse_port_lines,
)
from cli_music_player.browser.endpoint import (
    Endpoint,
    format_endpoint,
    is_valid_url,
    parse_endpoint,
)
from cli_music_player.browser.strategies import (
    BrowserType,
    ChromeConfig,
    DockerConfig,
    ProxyConfig,
    auto_browser_type,
    browser_type_from_payload,
    browser_type_to_payload,
    connect_browser,
    proxy_backend,
)

__all__ = [
    # Endpoint codec
    "Endpoint",
    "is_valid_url",
    "parse_endpoint",
    "format_endpoint",
    # Connections
    "BrowserConnection",
    "connect_over_cdp",
    "launch_chrome",
    # Strategies
    "BrowserType",
    "ProxyConfig",
    "DockerConfig",
    "ChromeConfig",
    "connect_browser",
    "proxy_backend",
    "browser_type_from_payload",
    "browser_type_to_payload",
    "auto_browser_type",
    # Docker provisioning
    "ContainerProvisioner",
    "ContainerHandle",
    "PortProber",
    "SequentialPortProber",
    "ConcurrentPortProber",
    "find_debug_url_in_logs",
    "parse_port_lines",
]
