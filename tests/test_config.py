"""Test configuration loading"""

from pathlib import Path

import pytest

from cli_music_player.browser.strategies import ChromeConfig, DockerConfig, ProxyConfig
from cli_music_player.core.config import Config, load_config, parse_config
from cli_music_player.core.exceptions import ConfigError
from cli_music_player.download.models import DownloadConfigFromURI


class TestLoadConfig:
    """Test config file lookup"""

    def test_defaults_without_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        config = load_config()

        assert config == Config()
        assert config.search.backends == (ChromeConfig(),)
        assert config.search.timeout == 30.0
        assert config.download.directory == DownloadConfigFromURI.default_path()
        assert config.download.format == "m4a"

    def test_cwd_file_is_used(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        (temp_dir / "config.yaml").write_text("search:\n  timeout: 3\n", encoding="utf-8")

        assert load_config().search.timeout == 3.0

    def test_explicit_path_must_exist(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "missing.yaml")

    def test_full_file(self, temp_dir, sample_config_yaml):
        path = temp_dir / "config.yaml"
        path.write_text(sample_config_yaml, encoding="utf-8")

        config = load_config(path)

        proxy, docker, local = config.search.backends
        assert isinstance(proxy, ProxyConfig)
        assert docker == DockerConfig(port_mapping="9222:9222", startup_timeout=5.0)
        assert local == ChromeConfig(headless=False, window_size=(1280, 720))
        assert config.search.timeout == 12.0
        assert config.download.format == "mp3"

    def test_empty_file_means_defaults(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == Config()


class TestParseConfig:
    """Test validation of individual values"""

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            parse_config("search: [unclosed")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            parse_config("- just\n- a list\n")

    def test_unknown_section(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_config("player:\n  volume: 3\n")
        assert exc_info.value.details["field"] == "player"

    @pytest.mark.parametrize("timeout", ["0", "-1", "soon", "true"])
    def test_bad_timeout(self, timeout):
        with pytest.raises(ConfigError) as exc_info:
            parse_config(f"search:\n  timeout: {timeout}\n")
        assert exc_info.value.details["field"] == "search.timeout"

    def test_empty_backend_list(self):
        with pytest.raises(ConfigError):
            parse_config("search:\n  backends: []\n")

    def test_bad_backend_reports_index(self):
        text = (
            "search:\n"
            "  backends:\n"
            "    - local: {}\n"
            "    - proxy: \"http://not-devtools\"\n"
        )
        with pytest.raises(ConfigError) as exc_info:
            parse_config(text)
        assert exc_info.value.details["field"] == "search.backends[1]"
        assert "search.backends[1]" in exc_info.value.message

    def test_download_directory_expanded(self, monkeypatch, temp_dir):
        monkeypatch.setenv("HOME", str(temp_dir))

        config = parse_config("download:\n  directory: ~/tunes\n")

        assert config.download.directory == (temp_dir / "tunes").resolve()

    def test_unsupported_format(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_config("download:\n  format: midi\n")
        assert exc_info.value.details["field"] == "download.format"

    def test_format_is_lowercased(self):
        assert parse_config("download:\n  format: MP3\n").download.format == "mp3"

    def test_empty_directory(self):
        with pytest.raises(ConfigError):
            parse_config("download:\n  directory: '  '\n")


def test_default_directory_is_not_created(monkeypatch, temp_dir):
    monkeypatch.setenv("HOME", str(temp_dir))

    Config()

    assert not (temp_dir / "Music").exists()
    assert DownloadConfigFromURI.default_path() == Path(temp_dir, "Music", "cli-music-player").resolve()


def test_example_config_parses():
    path = Path(__file__).resolve().parent.parent / "config.example.yaml"

    config = load_config(path)

    assert [type(b) for b in config.search.backends] == [ProxyConfig, DockerConfig, ChromeConfig]
