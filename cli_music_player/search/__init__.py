"""
Search providers for cli-music-player.

Components:
    - SearchQuery: Keyword query model
    - YoutubeScraper: ProvideSearch implementation scraping YouTube results
    - SEARCH_PROVIDERS / get_search_provider: name -> provider dispatch

Usage:
    from cli_music_player.search import SearchQuery, get_search_provider

    provider = get_search_provider("youtube", backends=config.search.backends)
    provider.setup()
    urls = provider.search(SearchQuery.from_text("ortopilot insomnia"))
"""

from collections.abc import Callable
from typing import Any

from cli_music_player.core.exceptions import ConfigError
from cli_music_player.core.provider import ProvideSearch
from cli_music_player.search.models import SearchQuery
from cli_music_player.search.youtube_scraper import YoutubeScraper


SEARCH_PROVIDERS: dict[str, Callable[..., ProvideSearch]] = {
    "youtube": YoutubeScraper,
}


def get_search_provider(name: str = "youtube", **kwargs: Any) -> ProvideSearch:
    """
    Build the search provider registered under name.

    Args:
        name: Registered provider name.
        **kwargs: Forwarded to the provider's constructor.

    Raises:
        ConfigError: If no provider is registered under name.
    """
    factory = SEARCH_PROVIDERS.get(name)
    if factory is None:
        raise ConfigError(
            f"Unknown search provider '{name}' (available: {', '.join(SEARCH_PROVIDERS)})",
            details={"field": "search.provider", "value": name}
        )
    return factory(**kwargs)


__all__ = [
    "SearchQuery",
    "YoutubeScraper",
    "SEARCH_PROVIDERS",
    "get_search_provider",
]
