"""Test YouTube search over prioritized browser backends"""

import logging
from unittest.mock import Mock

import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from cli_music_player.browser import connection as connection_module
from cli_music_player.browser.strategies import ChromeConfig, ProxyConfig
from cli_music_player.core.exceptions import (
    BrowserConnectionError,
    ConfigError,
    ProvisioningError,
    SearchError,
)
from cli_music_player.search import SearchQuery, YoutubeScraper, get_search_provider
from conftest import make_connection, make_page


BACKEND_A = ProxyConfig("ws://localhost:9222/devtools/browser/aaa")
BACKEND_B = ProxyConfig("ws://localhost:9333/devtools/browser/bbb")


class ScriptedConnector:
    """Connector returning a prepared outcome per backend label."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def __call__(self, backend, timeout=None):
        self.calls.append(backend)
        outcome = self.outcomes[backend.label]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


QUERY = SearchQuery(("ortopilot", "insomnia"))


class TestSearchQuery:
    """Test query construction and encoding"""

    def test_from_text_splits_whitespace(self):
        assert SearchQuery.from_text("  ortopilot \t insomnia ").keywords == ("ortopilot", "insomnia")

    def test_list_is_stored_as_tuple(self):
        assert SearchQuery(["a", "b"]).keywords == ("a", "b")

    @pytest.mark.parametrize("keywords", [("two words",), ("",), (3,)])
    def test_invalid_keywords(self, keywords):
        with pytest.raises(SearchError):
            SearchQuery(keywords)

    def test_results_url(self):
        assert YoutubeScraper.results_url(QUERY) == (
            "https://www.youtube.com/results?search_query=ortopilot+insomnia"
        )

    def test_keywords_are_percent_encoded(self):
        query = SearchQuery(("c++", "tutorial&more"))
        assert YoutubeScraper.results_url(query).endswith("search_query=c%2B%2B+tutorial%26more")


class TestSearch:
    """Test search behavior with stub connections"""

    def test_empty_query_touches_no_browser(self):
        connector = ScriptedConnector({})
        scraper = YoutubeScraper([BACKEND_A], connector=connector)

        assert scraper.search(SearchQuery()) == []
        assert connector.calls == []

    def test_links_made_absolute_in_order(self):
        page = make_page(["/watch?v=first", None, "/watch?v=second", "https://www.youtube.com/shorts/x"])
        connection = make_connection(page)
        scraper = YoutubeScraper([BACKEND_A], connector=ScriptedConnector({BACKEND_A.label: connection}))

        links = scraper.search(QUERY)

        assert links == [
            "https://www.youtube.com/watch?v=first",
            "https://www.youtube.com/watch?v=second",
            "https://www.youtube.com/shorts/x",
        ]
        page.goto.assert_called_once_with(YoutubeScraper.results_url(QUERY), timeout=30000)
        assert page.wait_for_selector.call_args.args == ("a#video-title",)
        assert connection.closed

    def test_no_results_is_not_an_error(self):
        connection = make_connection(make_page([]))
        scraper = YoutubeScraper([BACKEND_A], connector=ScriptedConnector({BACKEND_A.label: connection}))

        assert scraper.search(QUERY) == []

    def test_falls_back_to_next_backend(self, caplog):
        connection = make_connection(make_page(["/watch?v=b"]))
        connector = ScriptedConnector({
            BACKEND_A.label: BrowserConnectionError("connect ECONNREFUSED"),
            BACKEND_B.label: connection,
        })
        scraper = YoutubeScraper([BACKEND_A, BACKEND_B], connector=connector)

        with caplog.at_level(logging.WARNING):
            links = scraper.search(QUERY)

        assert links == ["https://www.youtube.com/watch?v=b"]
        assert connector.calls == [BACKEND_A, BACKEND_B]
        failures = [r for r in caplog.records if hasattr(r, "backend_failure")]
        assert len(failures) == 1
        assert failures[0].backend == BACKEND_A.label
        assert failures[0].backend_position == 0

    def test_all_backends_failing(self):
        connector = ScriptedConnector({
            BACKEND_A.label: BrowserConnectionError("connect ECONNREFUSED"),
            BACKEND_B.label: ProvisioningError("None of the ports worked"),
        })
        scraper = YoutubeScraper([BACKEND_A, BACKEND_B], connector=connector)

        with pytest.raises(SearchError) as exc_info:
            scraper.search(QUERY)

        assert exc_info.value.failures == [
            (BACKEND_A.label, "connect ECONNREFUSED"),
            (BACKEND_B.label, "None of the ports worked"),
        ]
        assert BACKEND_A.label in exc_info.value.message
        assert BACKEND_B.label in exc_info.value.message

    def test_driver_start_failure_falls_through(self, monkeypatch):
        starter = Mock()
        starter.start.side_effect = PlaywrightError("driver crashed")
        monkeypatch.setattr(connection_module, "sync_playwright", lambda: starter)
        scraper = YoutubeScraper([BACKEND_A, ChromeConfig()])

        with pytest.raises(SearchError) as exc_info:
            scraper.search(QUERY)

        assert [label for label, _ in exc_info.value.failures] == [BACKEND_A.label, "local:chromium"]
        assert starter.start.call_count == 2

    def test_no_backends(self):
        with pytest.raises(SearchError, match="No browser backend configured"):
            YoutubeScraper([], connector=ScriptedConnector({})).search(QUERY)

    def test_page_timeout_does_not_try_next_backend(self):
        page = make_page()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        connection = make_connection(page)
        connector = ScriptedConnector({BACKEND_A.label: connection, BACKEND_B.label: Mock()})
        scraper = YoutubeScraper([BACKEND_A, BACKEND_B], connector=connector)

        with pytest.raises(SearchError, match="Timeout 30000ms exceeded"):
            scraper.search(QUERY)

        assert connector.calls == [BACKEND_A]
        assert connection.closed

    def test_timeout_setting_reaches_page(self):
        page = make_page(["/watch?v=a"])
        connection = make_connection(page)
        scraper = YoutubeScraper(
            [BACKEND_A],
            timeout=5,
            connector=ScriptedConnector({BACKEND_A.label: connection})
        )

        scraper.search(QUERY)

        assert page.wait_for_selector.call_args.kwargs["timeout"] == 5000

    def test_connect_timeout_forwarded(self):
        seen = []

        def connector(backend, timeout=None):
            seen.append(timeout)
            return make_connection(make_page())

        YoutubeScraper([BACKEND_A], connect_timeout=7, connector=connector).search(QUERY)

        assert seen == [7]

    def test_setup_is_noop(self):
        assert YoutubeScraper().setup() is None


class TestRegistry:
    """Test search provider lookup"""

    def test_youtube(self):
        provider = get_search_provider("youtube", backends=[BACKEND_A], timeout=10)
        assert isinstance(provider, YoutubeScraper)
        assert provider.backends == (BACKEND_A,)
        assert provider.timeout == 10

    def test_unknown(self):
        with pytest.raises(ConfigError):
            get_search_provider("bing")
