"""
Live browser connections backed by Playwright's sync API.

A BrowserConnection is the opaque capability the search provider drives:
it hands out a page to navigate and is closed once a scraping pass is done.
Two ways of obtaining one are provided:

    connect_over_cdp(url)     - attach to an already running browser through
                                its DevTools websocket endpoint
    launch_chrome(options)    - start a new local Chromium process

Both return a connection that owns its Playwright driver, so closing the
connection also stops the driver. Extra teardown steps (e.g. stopping the
Docker container that hosts the browser) can be attached with add_teardown().

Thread Safety:
    Playwright sync objects are bound to the thread that created them.
    A BrowserConnection must be used and closed on the thread that opened it.
"""

from collections.abc import Callable
from typing import Any

from playwright.sync_api import Browser, Error as PlaywrightError, Page, Playwright, sync_playwright

from cli_music_player.core.exceptions import BrowserConnectionError
from cli_music_player.core.logger import get_logger


logger = get_logger(__name__)


class BrowserConnection:
    """
    An exclusively owned, usable browser automation session.

    Attributes:
        label: Short description of where the browser lives, used in logs.
        default_timeout_ms: Timeout applied to pages handed out by
                            initial_page(), or None for Playwright's default.
        closed: True once close() has run.

    Example:
        with connect_over_cdp("ws://localhost:9222/devtools/browser/abc") as connection:
            page = connection.initial_page()
            page.goto("https://www.youtube.com")
    """

    def __init__(
        self,
        browser: Browser,
        playwright: Playwright | None = None,
        label: str = "browser",
        default_timeout_ms: float | None = None
    ) -> None:
        self._browser = browser
        self._playwright = playwright
        self._teardowns: list[Callable[[], None]] = []
        self.label = label
        self.default_timeout_ms = default_timeout_ms
        self.closed = False

    @property
    def browser(self) -> Browser:
        return self._browser

    def add_teardown(self, callback: Callable[[], None]) -> None:
        """Register a callback run by close() after the browser is released."""
        self._teardowns.append(callback)

    def initial_page(self) -> Page:
        """
        Return the browser's first open page, opening one if there is none.

        A browser reached over CDP usually already has a default context
        with a blank tab; a freshly launched one has no context at all.

        Raises:
            BrowserConnectionError: If the connection is closed or the
                                    browser refuses to open a page.
        """
        if self.closed:
            raise BrowserConnectionError(
                f"connection to {self.label} is closed",
                details={"backend": self.label}
            )
        try:
            contexts = self._browser.contexts
            if contexts and contexts[0].pages:
                page = contexts[0].pages[0]
            elif contexts:
                page = contexts[0].new_page()
            else:
                page = self._browser.new_page()
        except PlaywrightError as e:
            raise BrowserConnectionError(
                f"cannot open a page on {self.label}: {e}",
                details={"backend": self.label, "original_error": str(e)}
            ) from e

        if self.default_timeout_ms is not None:
            page.set_default_timeout(self.default_timeout_ms)
            page.set_default_navigation_timeout(self.default_timeout_ms)
        return page

    def close(self) -> None:
        """
        Release the browser, stop the driver and run teardown callbacks.

        Safe to call multiple times. Errors while releasing are logged and
        do not prevent the remaining steps from running.
        """
        if self.closed:
            return
        self.closed = True

        try:
            self._browser.close()
        except PlaywrightError as e:
            logger.debug(f"Closing {self.label} failed: {e}")

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                logger.debug(f"Stopping Playwright driver failed: {e}")

        for callback in self._teardowns:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Teardown for {self.label} failed: {e}")
        self._teardowns.clear()

    def __enter__(self) -> "BrowserConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"BrowserConnection({self.label!r}, {state})"


def _start_driver() -> Playwright:
    """Start a Playwright driver, wrapping start-up failures."""
    try:
        return sync_playwright().start()
    except PlaywrightError as e:
        raise BrowserConnectionError(
            f"cannot start playwright driver: {e}",
            details={"original_error": str(e)}
        ) from e


def connect_over_cdp(url: str, timeout: float | None = None) -> BrowserConnection:
    """
    Attach to a running browser through its DevTools websocket endpoint.

    Args:
        url: Debug endpoint, e.g. "ws://localhost:9222/devtools/browser/<token>".
        timeout: Seconds to wait for the handshake, or None for Playwright's default.

    Returns:
        A connection owning its own Playwright driver.

    Raises:
        BrowserConnectionError: If the endpoint is unreachable or the
                                handshake is rejected.
    """
    playwright = _start_driver()
    kwargs: dict[str, Any] = {}
    if timeout is not None:
        kwargs["timeout"] = timeout * 1000

    try:
        browser = playwright.chromium.connect_over_cdp(url, **kwargs)
    except PlaywrightError as e:
        playwright.stop()
        raise BrowserConnectionError(
            f"cannot connect to {url}: {e}",
            details={"url": url, "original_error": str(e)}
        ) from e

    logger.debug(f"Connected over CDP to {url}")
    return BrowserConnection(browser, playwright, label=url)


def launch_chrome(
    launch_options: dict[str, Any],
    default_timeout: float | None = None
) -> BrowserConnection:
    """
    Start a new local Chromium process.

    Args:
        launch_options: Keyword arguments for playwright's chromium.launch()
                        (headless, chromium_sandbox, executable_path, args).
        default_timeout: Seconds applied as the default timeout of pages
                         opened on this connection.

    Returns:
        A connection owning the browser process and its Playwright driver.

    Raises:
        BrowserConnectionError: If the executable cannot be found or started.
    """
    playwright = _start_driver()
    try:
        browser = playwright.chromium.launch(**launch_options)
    except PlaywrightError as e:
        playwright.stop()
        raise BrowserConnectionError(
            f"cannot launch local browser: {e}",
            details={
                "executable_path": launch_options.get("executable_path"),
                "original_error": str(e),
            }
        ) from e

    label = f"local:{launch_options.get('executable_path') or 'chromium'}"
    logger.debug(f"Launched {label}")
    return BrowserConnection(
        browser,
        playwright,
        label=label,
        default_timeout_ms=default_timeout * 1000 if default_timeout is not None else None
    )
