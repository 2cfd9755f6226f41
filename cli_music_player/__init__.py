"""
cli-music-player: find music on YouTube from the terminal and download it.

YouTube renders its search results client-side, so searching needs a real
browser. This package obtains one from a prioritized list of backends and
falls back to the next backend when one is unavailable:

    proxy   - connect to an already running Chrome over its DevTools URL
    docker  - start a headless Chrome container and discover its DevTools URL
    local   - launch a Chromium through Playwright

Modules:
    browser/    - Endpoint codec, connection strategies, Docker provisioning
    search/     - SearchQuery and the YouTube scraper
    download/   - DownloadConfig factories and the yt-dlp provider
    core/       - Configuration, logging, exceptions, provider interfaces
    cli.py      - Command-line interface

Usage:
    Command Line:
        music search ortopilot insomnia
        music play ortopilot insomnia

    Programmatic:
        from cli_music_player.core.config import load_config
        from cli_music_player.search import SearchQuery, YoutubeScraper

        config = load_config()
        scraper = YoutubeScraper(config.search.backends, timeout=config.search.timeout)
        urls = scraper.search(SearchQuery.from_text("ortopilot insomnia"))
"""

__version__ = "0.1.0"
