"""Test configuration and fixtures"""

import subprocess
import tempfile
from pathlib import Path
from subprocess import CompletedProcess
from unittest.mock import Mock

import pytest

from cli_music_player.browser.connection import BrowserConnection
from cli_music_player.core.exceptions import BrowserConnectionError


TOKEN = "019f2fed-ad55-4c34-9ff1-9a61d01011a0"
ANNOUNCED_URL = f"ws://0.0.0.0:9222/devtools/browser/{TOKEN}"


class RecordingRunner:
    """
    Stand-in for subprocess.run that records every docker command.

    outputs maps a docker subcommand ("run", "logs", "port", "stop") to its
    stdout. A list value is consumed one item per call, repeating the last.
    failures maps a subcommand to the stderr of a non-zero exit.
    interrupts lists subcommands that raise KeyboardInterrupt.
    """

    def __init__(self, outputs=None, failures=None, missing_binary=False, interrupts=()):
        self.commands: list[tuple[list[str], dict[str, object]]] = []
        self.outputs = {
            "run": "container123\n",
            "logs": f"DevTools listening on {ANNOUNCED_URL}\n",
            "port": "9222/tcp -> 0.0.0.0:49153\n",
            "stop": "container123\n",
        }
        self.outputs.update(outputs or {})
        self.failures = failures or {}
        self.missing_binary = missing_binary
        self.interrupts = set(interrupts)

    def __call__(self, args, **kwargs):
        self.commands.append((list(args), dict(kwargs)))
        if self.missing_binary:
            raise FileNotFoundError(2, "No such file or directory", args[0])

        subcommand = args[1]
        if subcommand in self.interrupts:
            raise KeyboardInterrupt
        if subcommand in self.failures:
            raise subprocess.CalledProcessError(1, args, output="", stderr=self.failures[subcommand])

        stdout = self.outputs.get(subcommand, "")
        if isinstance(stdout, list):
            stdout = stdout.pop(0) if len(stdout) > 1 else stdout[0]
        return CompletedProcess(args=args, returncode=0, stdout=stdout, stderr="")

    @property
    def subcommands(self) -> list[str]:
        return [args[1] for args, _ in self.commands]


class StubConnector:
    """
    Connector that refuses some ports and records every attempt.

    refuse_ports=None refuses everything.
    """

    def __init__(self, refuse_ports=()):
        self.refuse_ports = refuse_ports
        self.calls = []

    def __call__(self, proxy):
        endpoint = proxy.into_components()
        self.calls.append(endpoint)
        if self.refuse_ports is None or endpoint.port in self.refuse_ports:
            raise BrowserConnectionError(f"connection refused on port {endpoint.port}")
        return BrowserConnection(Mock(), label=proxy.debug_ws_url)


def make_page(hrefs=()):
    """Mock Playwright page whose result links carry the given hrefs."""
    page = Mock()
    elements = []
    for href in hrefs:
        element = Mock()
        element.get_attribute.return_value = href
        elements.append(element)
    page.query_selector_all.return_value = elements
    return page


def make_connection(page, label="stub"):
    """BrowserConnection around a mock browser whose first tab is page."""
    context = Mock()
    context.pages = [page]
    browser = Mock()
    browser.contexts = [context]
    return BrowserConnection(browser, label=label)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def runner():
    """Recording docker runner with a healthy container"""
    return RecordingRunner()


@pytest.fixture
def sample_config_yaml():
    """Config file text with one backend of each type"""
    return f"""
search:
  timeout: 12
  backends:
    - proxy: "ws://localhost:9222/devtools/browser/{TOKEN}"
    - docker:
        port_mapping: "9222:9222"
        startup_timeout: 5
    - local:
        headless: false
        window_size: [1280, 720]

download:
  format: mp3
"""
