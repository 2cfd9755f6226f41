"""
Download providers for cli-music-player.

Components:
    - DownloadConfig: What to fetch and where to put it
    - DownloadConfigForward / DownloadConfigFromURI: payload -> DownloadConfig
    - YoutubeDL: ProvideDownload implementation using yt-dlp
    - DOWNLOAD_PROVIDERS / get_download_provider: name -> provider dispatch
"""

from collections.abc import Callable
from typing import Any

from cli_music_player.core.exceptions import ConfigError
from cli_music_player.core.provider import ProvideDownload
from cli_music_player.download.models import (
    DownloadConfig,
    DownloadConfigForward,
    DownloadConfigFromURI,
)
from cli_music_player.download.youtube_dl import YoutubeDL


DOWNLOAD_PROVIDERS: dict[str, Callable[..., ProvideDownload]] = {
    "yt-dlp": YoutubeDL,
}


def get_download_provider(name: str = "yt-dlp", **kwargs: Any) -> ProvideDownload:
    """
    Build the download provider registered under name.

    Raises:
        ConfigError: If no provider is registered under name.
    """
    factory = DOWNLOAD_PROVIDERS.get(name)
    if factory is None:
        raise ConfigError(
            f"Unknown download provider '{name}' (available: {', '.join(DOWNLOAD_PROVIDERS)})",
            details={"field": "download.provider", "value": name}
        )
    return factory(**kwargs)


__all__ = [
    "DownloadConfig",
    "DownloadConfigForward",
    "DownloadConfigFromURI",
    "YoutubeDL",
    "DOWNLOAD_PROVIDERS",
    "get_download_provider",
]
