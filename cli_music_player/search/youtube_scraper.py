"""
Search provider that scrapes YouTube result pages through a real browser.

YouTube builds its result list client-side, so a plain HTTP fetch of the
results page contains no links. Instead, a browser is obtained from the
configured backends and the rendered page is read.

Search Workflow:
    1. Try the backends in priority order until one yields a connection.
       Each failure is logged and remembered; if all fail, SearchError
       lists every backend and why it failed.
    2. Navigate to https://www.youtube.com/results?search_query=<k1>+<k2>...
    3. Wait (bounded by timeout) for the result title links "a#video-title"
    4. Read each link's href and make it absolute
    5. Close the connection and return the URLs in page order

A page interaction failure after a successful connection is raised as a
SearchError straight away; the next backend is not tried, because the
connection worked and the failure is about the page.

Usage:
    from cli_music_player.browser import ChromeConfig, ProxyConfig
    from cli_music_player.search import SearchQuery, YoutubeScraper

    scraper = YoutubeScraper([
        ProxyConfig("ws://localhost:9222/devtools/browser/019f2fed-ad55-4c34-9ff1-9a61d01011a0"),
        ChromeConfig(),
    ])
    urls = scraper.search(SearchQuery.from_text("ortopilot insomnia"))
"""

from collections.abc import Callable, Iterable
from urllib.parse import urljoin

from playwright.sync_api import Error as PlaywrightError

from cli_music_player.browser.connection import BrowserConnection
from cli_music_player.browser.strategies import BrowserType, ChromeConfig, connect_browser
from cli_music_player.core.exceptions import BrowserConnectionError, MusicPlayerError, SearchError
from cli_music_player.core.logger import format_connected_message, get_logger, log_backend_failure
from cli_music_player.core.provider import ProvideSearch
from cli_music_player.search.models import SearchQuery


logger = get_logger(__name__)


YOUTUBE_ORIGIN = "https://www.youtube.com"
RESULTS_URL = f"{YOUTUBE_ORIGIN}/results?search_query="
VIDEO_TITLE_SELECTOR = "a#video-title"

DEFAULT_TIMEOUT = 30.0


class YoutubeScraper(ProvideSearch):
    """
    ProvideSearch implementation backed by an ordered list of browser backends.

    Attributes:
        backends: The prioritized backends to try and fall back on.
                  Default: (ChromeConfig(),), a local headless Chromium.
        timeout: Seconds allowed for navigation and for the result links
                 to appear.
    """

    def __init__(
        self,
        backends: Iterable[BrowserType] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float | None = None,
        connector: Callable[..., BrowserConnection] = connect_browser
    ) -> None:
        """
        Args:
            backends: Backends in priority order (first = most preferred).
            timeout: Page interaction timeout in seconds.
            connect_timeout: Seconds allowed per connection attempt, or None
                             for each strategy's default.
            connector: Callable (backend, timeout=...) -> BrowserConnection.
                       Defaults to connect_browser.
        """
        self.backends: tuple[BrowserType, ...] = (
            tuple(backends) if backends is not None else (ChromeConfig(),)
        )
        self.timeout = timeout
        self._connect_timeout = connect_timeout
        self._connector = connector

    def setup(self) -> None:
        """Nothing to prepare: backends are connected on demand."""
        return None

    def search(self, query: SearchQuery) -> list[str]:
        """
        Return the video URLs YouTube lists for query.

        An empty query returns an empty list without touching a browser.

        Raises:
            SearchError: If no backend connects, or the page cannot be read.
        """
        if query.is_empty:
            logger.warning("Empty query: nothing to search")
            return []

        connection = self.connect()
        try:
            return self.get_links(connection, query)
        finally:
            connection.close()

    def connect(self) -> BrowserConnection:
        """
        Obtain a connection from the first backend that works.

        Raises:
            SearchError: With one (backend, reason) failure per backend tried.
        """
        failures: list[tuple[str, str]] = []

        for position, backend in enumerate(self.backends):
            label = backend.label
            logger.debug(f"Trying backend {position}: {label}")
            try:
                connection = self._connector(backend, timeout=self._connect_timeout)
            except MusicPlayerError as e:
                failures.append((label, e.message))
                log_backend_failure(logger, label, e.message, position)
                continue
            logger.info(format_connected_message(label), extra={"backend": label})
            return connection

        if not failures:
            raise SearchError("No browser backend configured")

        summary = "\n".join(f"  {label}: {reason}" for label, reason in failures)
        raise SearchError(
            f"No browser backend could be reached:\n{summary}",
            details={"backends": [label for label, _ in failures]},
            failures=failures
        )

    @staticmethod
    def results_url(query: SearchQuery) -> str:
        """Build the results page URL for query."""
        return f"{RESULTS_URL}{query.to_query_param()}"

    def get_links(self, connection: BrowserConnection, query: SearchQuery) -> list[str]:
        """
        Scrape the result links for query using an open connection.

        Raises:
            SearchError: On navigation or element-wait failure.
        """
        url = self.results_url(query)
        timeout_ms = self.timeout * 1000
        logger.debug(f"Navigating to {url}")

        try:
            page = connection.initial_page()
            page.goto(url, timeout=timeout_ms)
            page.wait_for_selector(VIDEO_TITLE_SELECTOR, timeout=timeout_ms)
            hrefs = [
                element.get_attribute("href")
                for element in page.query_selector_all(VIDEO_TITLE_SELECTOR)
            ]
        except (PlaywrightError, BrowserConnectionError) as e:
            raise SearchError(
                f"Reading {url} failed: {e}",
                details={"url": url, "backend": connection.label}
            ) from e

        links = [urljoin(YOUTUBE_ORIGIN, href) for href in hrefs if href]
        logger.info(f"Found {len(links)} result(s) for '{query}'")
        return links
