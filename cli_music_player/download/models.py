"""
Download request model and the factories that build it.

A DownloadConfig says what to fetch (uri) and where to put it (local_path).
Two ConfigFactory implementations build one from a loose payload:

    DownloadConfigForward  - payload carries both "uri" and "local_path"
    DownloadConfigFromURI  - payload carries only "uri"; the directory is
                             fixed when the factory is created

Default directory handling is split in two steps so that computing a
default never touches the filesystem:

    path = DownloadConfigFromURI.default_path()   # pure
    DownloadConfigFromURI.ensure_ready(path)      # mkdir -p, idempotent

Usage:
    factory = DownloadConfigFromURI.default()
    config = factory.generate({"uri": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"})
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cli_music_player.core.exceptions import ConfigError, SetupError
from cli_music_player.core.logger import get_logger
from cli_music_player.core.provider import ConfigFactory


logger = get_logger(__name__)


DEFAULT_DOWNLOAD_DIRECTORY = "~/Music/cli-music-player"


@dataclass(frozen=True)
class DownloadConfig:
    """
    A single download request.

    Attributes:
        uri: Source URI understood by the download provider,
             e.g. "https://www.youtube.com/watch?v=dQw4w9WgXcQ".
        local_path: Directory the downloaded file is written into.
    """
    uri: str
    local_path: Path


def _uri_field(payload: Mapping[str, Any]) -> str:
    if not isinstance(payload, Mapping):
        raise ConfigError(
            "Download payload must be a mapping",
            details={"value": payload}
        )
    uri = payload.get("uri")
    if not isinstance(uri, str) or not uri.strip():
        raise ConfigError(
            "'uri' must be a non-empty string",
            details={"field": "uri", "value": uri}
        )
    return uri.strip()


class DownloadConfigForward(ConfigFactory[DownloadConfig]):
    """Builds a DownloadConfig from a payload that declares every field."""

    def generate(self, payload: Mapping[str, Any]) -> DownloadConfig:
        uri = _uri_field(payload)
        local_path = payload.get("local_path")
        if isinstance(local_path, Path):
            return DownloadConfig(uri=uri, local_path=local_path)
        if not isinstance(local_path, str) or not local_path.strip():
            raise ConfigError(
                "'local_path' must be a non-empty path string",
                details={"field": "local_path", "value": local_path}
            )
        return DownloadConfig(uri=uri, local_path=Path(local_path.strip()).expanduser())


class DownloadConfigFromURI(ConfigFactory[DownloadConfig]):
    """
    Builds a DownloadConfig from a URI alone, into a fixed directory.

    Attributes:
        local_path: Directory every generated config points at.
    """

    def __init__(self, local_path: Path) -> None:
        self.local_path = Path(local_path)

    @staticmethod
    def default_path() -> Path:
        """Default download directory. Does not touch the filesystem."""
        return Path(DEFAULT_DOWNLOAD_DIRECTORY).expanduser().resolve()

    @staticmethod
    def ensure_ready(path: Path) -> Path:
        """
        Create path (and parents) if missing.

        Safe to call any number of times.

        Raises:
            SetupError: If the directory cannot be created.
        """
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SetupError(
                f"Cannot create download directory {path}: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e
        return path

    @classmethod
    def default(cls) -> "DownloadConfigFromURI":
        """Factory for the default directory, created if needed."""
        path = cls.default_path()
        cls.ensure_ready(path)
        return cls(path)

    @classmethod
    def from_dir(cls, local_path: Path) -> "DownloadConfigFromURI":
        """Use local_path if it is an existing directory, else fall back to default()."""
        if local_path.is_dir():
            return cls(local_path)
        logger.warning(f"{local_path} is not a directory, using {cls.default_path()}")
        return cls.default()

    @classmethod
    def from_str(cls, local_path: str) -> "DownloadConfigFromURI":
        """
        Like from_dir(), from a path string.

        Raises:
            ConfigError: If local_path is empty.
        """
        if not local_path.strip():
            raise ConfigError(
                "Download directory must be a non-empty path",
                details={"field": "local_path", "value": local_path}
            )
        return cls.from_dir(Path(local_path.strip()).expanduser())

    def generate(self, payload: Mapping[str, Any]) -> DownloadConfig:
        return DownloadConfig(uri=_uri_field(payload), local_path=self.local_path)
