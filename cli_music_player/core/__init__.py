"""
Core module for cli-music-player.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - logger: Logging system with console and file outputs
    - provider: Abstract provider capabilities (setup, search, download)
    - config: Configuration loading and validation

config is imported from its own module because it depends on the browser
backends, which in turn depend on this package:

    from cli_music_player.core.config import Config, load_config

Usage:
    from cli_music_player.core import (
        setup_logging, get_logger,
        MusicPlayerError, ConfigError, SearchError
    )
"""

from cli_music_player.core.exceptions import (
    BrowserConnectionError,
    ConfigError,
    DownloadError,
    InvalidFormatError,
    MusicPlayerError,
    ProvisioningError,
    SearchError,
    SetupError,
)
from cli_music_player.core.logger import (
    get_logger,
    log_backend_failure,
    setup_logging,
    shutdown_logging,
)
from cli_music_player.core.provider import (
    ConfigFactory,
    ProvideDownload,
    ProvideSearch,
    SelfSetup,
)

__all__ = [
    # Exceptions
    "MusicPlayerError",
    "ConfigError",
    "InvalidFormatError",
    "BrowserConnectionError",
    "ProvisioningError",
    "SearchError",
    "SetupError",
    "DownloadError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_backend_failure",
    "shutdown_logging",
    # Providers
    "SelfSetup",
    "ProvideSearch",
    "ProvideDownload",
    "ConfigFactory",
]
