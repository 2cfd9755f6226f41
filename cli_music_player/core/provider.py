"""
Provider abstraction shared by the search and download subsystems.

Every backend (a YouTube scraper, a yt-dlp downloader, ...) is selected and
invoked through the same small set of capabilities:

    SelfSetup       - setup(): idempotent first-run initialization
    ProvideSearch   - search(query) -> list of URLs
    ProvideDownload - download(config) -> path of the written file
    ConfigFactory   - generate(payload) -> typed config from a loose mapping

Callers only depend on these base classes, so adding a backend means adding
one implementing class and registering it, never changing callers.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Generic, TypeVar


T = TypeVar("T")


class SelfSetup(ABC):
    """
    Capability of preparing a backend before its first use.

    setup() must be safe to call more than once. Backends that need no
    preparation implement it as a no-op.
    """

    @abstractmethod
    def setup(self) -> None:
        """
        Prepare the backend.

        Raises:
            SetupError: If the backend cannot be made ready.
        """


class ProvideSearch(SelfSetup):
    """Capability of turning a keyword query into a list of content URLs."""

    @abstractmethod
    def search(self, query: Any) -> list[str]:
        """
        Satisfy a query using keywords.

        Args:
            query: A SearchQuery.

        Returns:
            Absolute URLs in the order the source presents them.
            An empty list means "no matches", not failure.

        Raises:
            SearchError: If no backend could serve the query.
        """


class ProvideDownload(SelfSetup):
    """Capability of fetching the content behind a URI to local storage."""

    @abstractmethod
    def download(self, config: Any) -> Any:
        """
        Download based on the given config.

        Args:
            config: A DownloadConfig.

        Returns:
            Path of the file that was written.

        Raises:
            DownloadError: If the fetch fails.
        """


class ConfigFactory(ABC, Generic[T]):
    """
    Capability of building a typed config object from a loosely-typed payload.

    The payload is typically a dictionary read from YAML or assembled from
    CLI options. Implementations extract the fields they need, apply their
    defaults and raise ConfigError on missing or mistyped fields instead of
    coercing values implicitly.
    """

    @abstractmethod
    def generate(self, payload: Mapping[str, Any]) -> T:
        """
        Generate a config object from the payload.

        Raises:
            ConfigError: If required fields are absent or mistyped.
        """
