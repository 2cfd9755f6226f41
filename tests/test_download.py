"""Test download config factories and the yt-dlp provider"""

from pathlib import Path

import pytest
from yt_dlp.utils import DownloadError as YtDlpDownloadError

from cli_music_player.core.exceptions import ConfigError, DownloadError, SetupError
from cli_music_player.download import (
    DownloadConfig,
    DownloadConfigForward,
    DownloadConfigFromURI,
    YoutubeDL,
    get_download_provider,
)
from cli_music_player.download.youtube_dl import is_retryable


URI = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class FakeYoutubeDL:
    """Stand-in for yt_dlp.YoutubeDL writing '<title> [<id>].<ext>'."""

    def __init__(self, errors=(), video_id="dQw4w9WgXcQ", ext="m4a"):
        self.errors = list(errors)
        self.video_id = video_id
        self.ext = ext
        self.options = []
        self.calls = 0

    def __call__(self, options):
        self.options.append(options)
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def extract_info(self, uri, download):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        directory = Path(self.options[-1]["outtmpl"]).parent
        (directory / f"Never Gonna Give You Up [{self.video_id}].{self.ext}").write_bytes(b"audio")
        return {"id": self.video_id}


@pytest.fixture
def home(monkeypatch, temp_dir):
    """Point ~ at a temporary directory"""
    monkeypatch.setenv("HOME", str(temp_dir))
    return temp_dir


class TestFactories:
    """Test DownloadConfig factories"""

    def test_forward(self, temp_dir):
        config = DownloadConfigForward().generate({"uri": URI, "local_path": str(temp_dir)})
        assert config == DownloadConfig(uri=URI, local_path=temp_dir)

    @pytest.mark.parametrize("payload", [
        {"local_path": "/tmp"},
        {"uri": "", "local_path": "/tmp"},
        {"uri": URI},
        {"uri": URI, "local_path": 5},
        ["uri", URI],
    ])
    def test_forward_rejects_incomplete(self, payload):
        with pytest.raises(ConfigError):
            DownloadConfigForward().generate(payload)

    def test_from_uri_uses_fixed_directory(self, temp_dir):
        factory = DownloadConfigFromURI(temp_dir)
        assert factory.generate({"uri": URI, "local_path": "/ignored"}).local_path == temp_dir

    def test_default_path_is_pure(self, home):
        path = DownloadConfigFromURI.default_path()
        assert path == (home / "Music" / "cli-music-player").resolve()
        assert not path.exists()

    def test_ensure_ready_is_idempotent(self, temp_dir):
        target = temp_dir / "a" / "b"
        DownloadConfigFromURI.ensure_ready(target)
        DownloadConfigFromURI.ensure_ready(target)
        assert target.is_dir()

    def test_ensure_ready_on_a_file(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with pytest.raises(SetupError):
            DownloadConfigFromURI.ensure_ready(blocker / "sub")

    def test_default_creates_directory(self, home):
        factory = DownloadConfigFromURI.default()
        assert factory.local_path.is_dir()

    def test_from_dir_falls_back_to_default(self, home):
        factory = DownloadConfigFromURI.from_dir(home / "missing")
        assert factory.local_path == DownloadConfigFromURI.default_path()

    def test_from_str(self, temp_dir):
        assert DownloadConfigFromURI.from_str(str(temp_dir)).local_path == temp_dir
        with pytest.raises(ConfigError):
            DownloadConfigFromURI.from_str("   ")


class TestYoutubeDLSetup:
    """Test readiness checks"""

    def test_missing_ffmpeg(self, temp_dir):
        provider = YoutubeDL(download_dir=temp_dir, which=lambda name: None)
        with pytest.raises(SetupError, match="ffmpeg"):
            provider.setup()

    def test_creates_directory(self, temp_dir):
        target = temp_dir / "music"
        provider = YoutubeDL(download_dir=target, which=lambda name: f"/usr/bin/{name}")
        provider.setup()
        provider.setup()
        assert target.is_dir()


class TestYoutubeDLDownload:
    """Test downloads with a fake yt-dlp"""

    def test_download_returns_file(self, temp_dir):
        fake = FakeYoutubeDL()
        provider = YoutubeDL(ydl_factory=fake)

        path = provider.download(DownloadConfig(uri=URI, local_path=temp_dir / "out"))

        assert path == temp_dir / "out" / "Never Gonna Give You Up [dQw4w9WgXcQ].m4a"
        options = fake.options[0]
        assert options["postprocessors"][0]["key"] == "FFmpegExtractAudio"
        assert options["postprocessors"][0]["preferredcodec"] == "m4a"
        assert options["noplaylist"] is True

    def test_prefers_target_format(self, temp_dir):
        (temp_dir / "Old [dQw4w9WgXcQ].webm").write_bytes(b"video")
        provider = YoutubeDL(format="mp3", ydl_factory=FakeYoutubeDL(ext="mp3"))

        path = provider.download(DownloadConfig(uri=URI, local_path=temp_dir))

        assert path.suffix == ".mp3"

    def test_transient_error_is_retried(self, temp_dir):
        fake = FakeYoutubeDL(errors=[YtDlpDownloadError("HTTP Error 403: Forbidden")])
        sleeps = []
        provider = YoutubeDL(ydl_factory=fake, sleep=sleeps.append)

        provider.download(DownloadConfig(uri=URI, local_path=temp_dir))

        assert fake.calls == 2
        assert len(sleeps) == 1

    def test_permanent_error_is_not_retried(self, temp_dir):
        fake = FakeYoutubeDL(errors=[YtDlpDownloadError("ERROR: Video unavailable")])
        provider = YoutubeDL(ydl_factory=fake, sleep=lambda s: None)

        with pytest.raises(DownloadError, match="Video unavailable"):
            provider.download(DownloadConfig(uri=URI, local_path=temp_dir))

        assert fake.calls == 1

    def test_retries_exhausted(self, temp_dir):
        errors = [YtDlpDownloadError("Connection reset by peer") for _ in range(3)]
        fake = FakeYoutubeDL(errors=errors)
        provider = YoutubeDL(ydl_factory=fake, sleep=lambda s: None)

        with pytest.raises(DownloadError):
            provider.download(DownloadConfig(uri=URI, local_path=temp_dir))

        assert fake.calls == 3

    def test_missing_output_file(self, temp_dir):
        fake = FakeYoutubeDL()
        fake.extract_info = lambda uri, download: {"id": "other"}
        provider = YoutubeDL(ydl_factory=fake)

        with pytest.raises(DownloadError, match="not found"):
            provider.download(DownloadConfig(uri=URI, local_path=temp_dir))


@pytest.mark.parametrize("message, expected", [
    ("HTTP Error 403: Forbidden", True),
    ("Did not get any data blocks", True),
    ("<urlopen error [Errno -3] Temporary failure>", True),
    ("Video unavailable. This content isn't available, try again later (rate limit)", False),
    ("Private video. Sign in if you've been granted access", False),
    ("Unsupported URL", False),
])
def test_is_retryable(message, expected):
    assert is_retryable(message) is expected


def test_download_registry():
    assert isinstance(get_download_provider("yt-dlp", format="opus"), YoutubeDL)
    with pytest.raises(ConfigError):
        get_download_provider("wget")
