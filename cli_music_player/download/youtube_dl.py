"""
yt-dlp download provider.

Downloads the audio track behind a YouTube URL and converts it with the
FFmpegExtractAudio postprocessor.

Download Workflow:
    1. Ensure the target directory exists
    2. Run yt-dlp with a silent logger (we handle our own logging)
    3. On a transient error (403, network, empty file) retry with backoff
    4. Locate the converted file by video id and return its path

File Naming:
    {title} [{id}].{format}, e.g. "Insomnia [dQw4w9WgXcQ].m4a"

Dependencies:
    - yt-dlp: YouTube download and extraction
    - FFmpeg: Audio conversion (must be on PATH; checked by setup())

Usage:
    from cli_music_player.download import DownloadConfig, YoutubeDL

    downloader = YoutubeDL(format="m4a")
    downloader.setup()
    path = downloader.download(DownloadConfig(uri=url, local_path=Path("~/Music").expanduser()))
"""

import random
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yt_dlp
from yt_dlp.utils import YoutubeDLError

from cli_music_player.core.exceptions import DownloadError, SetupError
from cli_music_player.core.logger import get_logger
from cli_music_player.core.provider import ProvideDownload
from cli_music_player.download.models import DownloadConfig, DownloadConfigFromURI


logger = get_logger(__name__)


# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRIES = 3
BASE_DELAY = 1.5  # seconds
MAX_DELAY = 15.0  # seconds
JITTER_FACTOR = 0.3

OUTPUT_TEMPLATE = "%(title)s [%(id)s].%(ext)s"
AUDIO_EXTENSIONS = (".m4a", ".mp3", ".opus", ".flac", ".wav", ".aac", ".ogg", ".webm", ".mp4")


class YtDlpSilentLogger:
    """
    Logger handed to yt-dlp so it does not print to stderr.

    The last error is kept so it can be attached to a DownloadError.
    """

    def __init__(self) -> None:
        self.last_error: str | None = None

    def debug(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def info(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def warning(self, msg: str) -> None:
        logger.debug(f"yt-dlp warning: {msg}")

    def error(self, msg: str) -> None:
        self.last_error = msg


def is_retryable(error_message: str) -> bool:
    """
    Decide whether a yt-dlp error is worth another attempt.

    Forbidden responses, network problems and empty files are transient.
    Unavailable, private or age-restricted videos and rate limiting are not.
    """
    msg = error_message.lower()

    # Rate limit messages also mention "video unavailable"; check them first
    if any(x in msg for x in ["rate-limited", "rate limit", "429", "too many requests"]):
        return False
    if any(x in msg for x in ["video unavailable", "private video", "sign in", "confirm your age"]):
        return False
    if "403" in msg or "forbidden" in msg or "did not get any data" in msg:
        return True
    if any(x in msg for x in ["connection", "timed out", "timeout", "network", "urlopen error"]):
        return True
    return "file is empty" in msg or "empty file" in msg


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """Exponential backoff with jitter, in seconds."""
    delay = min(base_delay * (2 ** attempt), MAX_DELAY)
    jitter = delay * JITTER_FACTOR * (2 * random.random() - 1)
    return max(0.5, delay + jitter)


class YoutubeDL(ProvideDownload):
    """
    ProvideDownload implementation backed by the yt-dlp library.

    Attributes:
        format: Target audio codec (preferredcodec of FFmpegExtractAudio).
        download_dir: Directory prepared by setup(), if any.
        cookie_file: Optional cookies.txt for age-restricted or premium content.
    """

    def __init__(
        self,
        format: str = "m4a",
        *,
        download_dir: Path | None = None,
        cookie_file: Path | None = None,
        max_retries: int = MAX_RETRIES,
        ydl_factory: Callable[[dict[str, Any]], Any] = yt_dlp.YoutubeDL,
        which: Callable[[str], str | None] = shutil.which,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.format = format
        self.download_dir = download_dir
        self.cookie_file = cookie_file
        self._max_retries = max(1, max_retries)
        self._ydl_factory = ydl_factory
        self._which = which
        self._sleep = sleep

    def setup(self) -> None:
        """
        Check that downloads can run.

        Raises:
            SetupError: If the download directory cannot be created or
                        ffmpeg is not on PATH.
        """
        if self.download_dir is not None:
            DownloadConfigFromURI.ensure_ready(self.download_dir)

        if self._which("ffmpeg") is None:
            raise SetupError(
                "ffmpeg not found on PATH (required to extract audio)",
                details={"binary": "ffmpeg"}
            )

    def download(self, config: DownloadConfig) -> Path:
        """
        Download config.uri into config.local_path.

        Returns:
            Path of the converted audio file.

        Raises:
            DownloadError: If the directory cannot be prepared, yt-dlp fails
                           after all retries, or no output file is found.
        """
        try:
            DownloadConfigFromURI.ensure_ready(config.local_path)
        except SetupError as e:
            raise DownloadError(e.message, details=e.details) from e

        last_error = ""
        for attempt in range(self._max_retries):
            yt_logger = YtDlpSilentLogger()
            try:
                with self._ydl_factory(self.build_options(config.local_path, yt_logger)) as ydl:
                    info = ydl.extract_info(config.uri, download=True)
            except YoutubeDLError as e:
                last_error = str(e)
                if yt_logger.last_error and yt_logger.last_error not in last_error:
                    last_error = f"{last_error} | {yt_logger.last_error}"

                if not is_retryable(last_error) or attempt == self._max_retries - 1:
                    break
                delay = calculate_backoff(attempt)
                logger.debug(f"Retry {attempt + 1}/{self._max_retries} after {delay:.1f}s")
                self._sleep(delay)
                continue

            if info is None:
                raise DownloadError(
                    "yt-dlp returned no info",
                    details={"uri": config.uri}
                )
            path = self.find_downloaded_file(config.local_path, info.get("id", ""))
            logger.info(f"Downloaded: {path.name}")
            return path

        raise DownloadError(
            f"yt-dlp error: {last_error}",
            details={"uri": config.uri, "original_error": last_error}
        )

    def build_options(self, local_path: Path, yt_logger: YtDlpSilentLogger | None = None) -> dict[str, Any]:
        """Build the yt-dlp options dictionary."""
        options: dict[str, Any] = {
            "format": "bestaudio/best",
            "outtmpl": str(local_path / OUTPUT_TEMPLATE),
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "noplaylist": True,
            "encoding": "UTF-8",
            "retries": 3,
            "fragment_retries": 3,
            "extractor_args": {
                "youtube": {
                    "player_client": ["web", "android", "default"],
                }
            },
            "postprocessors": [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": self.format,
                    "preferredquality": "0",
                }
            ],
            "keepvideo": False,
        }

        if yt_logger is not None:
            options["logger"] = yt_logger

        if self.cookie_file is not None:
            options["cookiefile"] = str(self.cookie_file)

        return options

    def find_downloaded_file(self, local_path: Path, video_id: str) -> Path:
        """
        Locate the file yt-dlp wrote for video_id.

        The file in the target format wins over any other audio extension.

        Raises:
            DownloadError: If no matching audio file exists.
        """
        marker = f"[{video_id}]"
        candidates = [
            f for f in local_path.iterdir()
            if f.is_file() and f.suffix in AUDIO_EXTENSIONS and f.stem.endswith(marker)
        ]
        for candidate in candidates:
            if candidate.suffix == f".{self.format}":
                return candidate
        if candidates:
            return candidates[0]

        raise DownloadError(
            f"Downloaded file not found in {local_path}",
            details={"path": str(local_path), "video_id": video_id}
        )
