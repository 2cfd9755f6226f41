"""
Exception classes for cli-music-player.

This module defines all custom exceptions used throughout the application.
Expected failure conditions (unreachable endpoint, malformed URL, container
that never announces its debug URL, every published port refusing) are
raised as one of these classes and never escape as raw library errors.

Exception Hierarchy:
    MusicPlayerError (base)
        ConfigError - Configuration file or payload issues
        InvalidFormatError - Debug endpoint URL fails validation
        BrowserConnectionError - A single browser connection attempt failed
        ProvisioningError - Docker container could not yield a connection
        SearchError - A search could not be completed
        SetupError - A provider failed its first-run initialization
        DownloadError - Audio download issues
"""


class MusicPlayerError(Exception):
    """
    Base exception for all cli-music-player errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all application errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URLs, ports).

    Example:
        try:
            urls = scraper.search(query)
        except MusicPlayerError as e:
            logger.error(f"Search failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': Debug endpoint URL involved in the error
                     - 'container_id': Docker container involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MusicPlayerError):
    """
    Raised when a configuration file or payload cannot be turned into config.

    This is a CRITICAL error when raised while loading config.yaml, and a
    field-level validation error when raised by a payload builder.

    Common causes:
        - config.yaml passed explicitly but not found
        - config.yaml has invalid YAML syntax
        - Required payload keys missing (e.g. 'uri')
        - Mistyped values (e.g. window_size given as a string)

    Example:
        raise ConfigError(
            "'search.timeout' must be a positive number",
            details={'field': 'search.timeout', 'value': -1}
        )
    """
    pass


class InvalidFormatError(MusicPlayerError):
    """
    Raised when a debug endpoint URL does not have the expected shape.

    The only accepted shape is:
        ws://<host>[:<port>]/devtools/browser/<token>

    Example:
        raise InvalidFormatError(
            "url http://bad/devtools/browser/tok doesn't conform to format",
            details={'url': 'http://bad/devtools/browser/tok'}
        )
    """
    pass


class BrowserConnectionError(MusicPlayerError):
    """
    Raised when one connection attempt to a browser fails.

    This is NON-CRITICAL for a search: the search provider records the
    failure and moves on to the next configured backend.

    Common causes:
        - Nothing listening on the debug endpoint
        - DevTools handshake rejected (stale token)
        - Chrome/Chromium executable not found or failed to start
        - Inconsistent launch options (e.g. malformed window size)
    """
    pass


class ProvisioningError(MusicPlayerError):
    """
    Raised when a Docker backend cannot produce a live browser connection.

    Common causes:
        - `docker run` failed or did not print a container id
        - No line of `docker logs` announces a ws://.../devtools/browser/ URL
        - `docker port` reports no published ports
        - Every published port refused the DevTools connection

    Attributes:
        failures: One (port, message) entry per port that was probed.
                  Empty when the failure happened before probing started.

    Example:
        raise ProvisioningError(
            "None of the ports worked",
            failures=[(49153, "connection refused"), (49154, "connection refused")]
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        failures: list[tuple[int, str]] | None = None
    ) -> None:
        """
        Initialize provisioning error with the per-port failure list.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            failures: Per-port failure messages, in the order the ports were tried.
        """
        super().__init__(message, details)
        self.failures = list(failures or [])


class SearchError(MusicPlayerError):
    """
    Raised when a search cannot be completed.

    Wraps either a connection failure on every backend, or a page
    interaction failure (navigation timeout, element-wait timeout).

    Attributes:
        failures: One (backend, message) entry per backend that failed to
                  connect. Empty for page interaction failures.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        failures: list[tuple[str, str]] | None = None
    ) -> None:
        super().__init__(message, details)
        self.failures = list(failures or [])


class SetupError(MusicPlayerError):
    """
    Raised when a provider fails its first-run initialization.

    Example:
        raise SetupError(
            "ffmpeg not found on PATH",
            details={'provider': 'yt-dlp'}
        )
    """
    pass


class DownloadError(MusicPlayerError):
    """
    Raised when there's an issue downloading audio.

    Common causes:
        - Video unavailable or removed
        - yt-dlp extraction failed
        - FFmpeg conversion failed
        - Disk full or permission denied

    Example:
        raise DownloadError(
            "Failed to download audio: video unavailable",
            details={'uri': 'https://www.youtube.com/watch?v=xxx'}
        )
    """
    pass
