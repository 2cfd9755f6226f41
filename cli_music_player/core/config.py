"""
Configuration management for cli-music-player.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Search settings: page timeout and the prioritized browser backends
    - Download settings: target directory and audio format

Configuration File Location:
    An explicit path (--config) must exist. Without one, config.yaml in
    the current working directory is used if present; otherwise built-in
    defaults apply (a single local headless Chromium backend).

Example config.yaml:
    search:
      timeout: 30
      backends:
        - proxy: "ws://localhost:9222/devtools/browser/019f2fed-ad55-4c34-9ff1-9a61d01011a0"
        - docker:
            image_path: "docker.io/justinribeiro/chrome-headless:latest"
            port_mapping: null
        - local:
            headless: true
            window_size: [1280, 720]

    download:
      directory: "~/Music/cli-music-player"
      format: m4a
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from cli_music_player.browser.strategies import (
    BrowserType,
    ChromeConfig,
    browser_type_from_payload,
)
from cli_music_player.core.exceptions import ConfigError
from cli_music_player.download.models import DownloadConfigFromURI


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_SEARCH_TIMEOUT = 30.0
DEFAULT_AUDIO_FORMAT = "m4a"

# Formats FFmpegExtractAudio can produce
SUPPORTED_AUDIO_FORMATS = ("m4a", "mp3", "opus", "flac", "wav", "aac", "vorbis")


@dataclass(frozen=True)
class SearchConfig:
    """
    Search behavior configuration.

    Attributes:
        backends: Browser backends in priority order (first = most preferred).
                  Default: a single local headless Chromium.
        timeout: Seconds allowed for the results page to load and show
                 result links. Default: 30.
    """
    backends: tuple[BrowserType, ...] = field(default_factory=lambda: (ChromeConfig(),))
    timeout: float = DEFAULT_SEARCH_TIMEOUT


@dataclass(frozen=True)
class DownloadSettings:
    """
    Download behavior configuration.

    Attributes:
        directory: Absolute path where downloaded audio is saved.
                   ~ is expanded. The directory is created at download time.
        format: Target audio codec for the FFmpegExtractAudio postprocessor.
    """
    directory: Path = field(default_factory=DownloadConfigFromURI.default_path)
    format: str = DEFAULT_AUDIO_FORMAT


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        for backend in config.search.backends:
            print(backend.label)
        print(f"Saving to: {config.download.directory}")
    """
    search: SearchConfig = field(default_factory=SearchConfig)
    download: DownloadSettings = field(default_factory=DownloadSettings)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file. It must exist.
                     If None, config.yaml in the current working directory
                     is used when present, built-in defaults otherwise.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, the file has
                     invalid YAML syntax, or any value is invalid.

    Behavior:
        1. Locate config file (explicit path, CWD/config.yaml, or none)
        2. Read and parse YAML content (an empty file means defaults)
        3. Validate structure (known top-level sections only)
        4. Parse search section, including every backend
        5. Parse download section with defaults
        6. Create and return frozen Config object

    Example:
        try:
            config = load_config()
        except ConfigError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
        if not config_path.exists():
            return Config()
    elif not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    return parse_config(content, source=str(config_path))


def parse_config(content: str, source: str = "<string>") -> Config:
    """
    Parse configuration from YAML text.

    Args:
        content: YAML document text.
        source: Where the text came from, used in error details.

    Raises:
        ConfigError: On invalid YAML or invalid values.
    """
    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": source, "original_error": str(e)}
        ) from e

    if raw_config is None:
        return Config()

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": source}
        )

    _validate_config(raw_config)

    return Config(
        search=_parse_search_config(raw_config.get("search")),
        download=_parse_download_settings(raw_config.get("download"))
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate the top-level sections.

    Raises:
        ConfigError: On unknown sections or sections that are not mappings.
    """
    known_sections = ("search", "download")

    for section in raw_config:
        if section not in known_sections:
            raise ConfigError(
                f"Unknown section: '{section}' (expected: {', '.join(known_sections)})",
                details={"field": str(section)}
            )

        value = raw_config[section]
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"field": section}
            )


def _parse_search_config(search_section: dict[str, Any] | None) -> SearchConfig:
    """
    Parse and validate the search section.

    Returns:
        SearchConfig: Default timeout 30, default backends (local Chromium)
                      when the section or a field is missing.

    Raises:
        ConfigError: If timeout is not a positive number, backends is not a
                     non-empty list, or any backend entry is invalid.
    """
    if search_section is None:
        return SearchConfig()

    timeout = DEFAULT_SEARCH_TIMEOUT
    raw_timeout = search_section.get("timeout")
    if raw_timeout is not None:
        if isinstance(raw_timeout, bool) or not isinstance(raw_timeout, (int, float)) or raw_timeout <= 0:
            raise ConfigError(
                "'search.timeout' must be a positive number",
                details={"field": "search.timeout", "value": raw_timeout}
            )
        timeout = float(raw_timeout)

    raw_backends = search_section.get("backends")
    if raw_backends is None:
        return SearchConfig(timeout=timeout)

    if not isinstance(raw_backends, list) or not raw_backends:
        raise ConfigError(
            "'search.backends' must be a non-empty list",
            details={"field": "search.backends"}
        )

    backends = []
    for index, entry in enumerate(raw_backends):
        try:
            backends.append(browser_type_from_payload(entry))
        except ConfigError as e:
            raise ConfigError(
                f"'search.backends[{index}]': {e.message}",
                details={**e.details, "field": f"search.backends[{index}]"}
            ) from e

    return SearchConfig(backends=tuple(backends), timeout=timeout)


def _parse_download_settings(download_section: dict[str, Any] | None) -> DownloadSettings:
    """
    Parse and validate the download section.

    Raises:
        ConfigError: If directory is empty or format is not supported.
    """
    if download_section is None:
        return DownloadSettings()

    directory = DownloadSettings().directory
    raw_directory = download_section.get("directory")
    if raw_directory is not None:
        if not isinstance(raw_directory, str) or not raw_directory.strip():
            raise ConfigError(
                "'download.directory' must be a non-empty string",
                details={"field": "download.directory"}
            )
        directory = Path(raw_directory.strip()).expanduser().resolve()

    audio_format = DEFAULT_AUDIO_FORMAT
    raw_format = download_section.get("format")
    if raw_format is not None:
        if not isinstance(raw_format, str) or raw_format.lower() not in SUPPORTED_AUDIO_FORMATS:
            raise ConfigError(
                f"'download.format' must be one of: {', '.join(SUPPORTED_AUDIO_FORMATS)}",
                details={"field": "download.format", "value": raw_format}
            )
        audio_format = raw_format.lower()

    return DownloadSettings(directory=directory, format=audio_format)
