"""
Command-line interface for cli-music-player.

This module implements the CLI using Click, with rich-click for the
help output colors.

Commands:
    music search KEYWORDS...             Print YouTube result URLs
    music download URI                   Download audio with yt-dlp
    music play KEYWORDS...               Search, then download the first result
    music backends                       List browser backends by priority

Options:
    --config <path>                      config.yaml to use (default: ./config.yaml)
    --verbose                            Show DEBUG messages on the console
    --version                            Show version and exit

Usage:
    # Search with the configured backends
    music search ortopilot insomnia

    # Put a running Chrome in front of the configured backends
    music search --proxy "ws://localhost:9222/devtools/browser/<token>" ortopilot insomnia

    # Download into a specific directory
    music download "https://www.youtube.com/watch?v=dQw4w9WgXcQ" --output ~/Music

Exit Codes:
    0   success
    1   configuration error
    2   search error (no backend reachable, page failure)
    3   download error
    4   any other application error
    130 interrupted
"""

import sys
from collections.abc import Callable
from pathlib import Path

import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from cli_music_player import __version__
from cli_music_player.browser import ProxyConfig, proxy_backend
from cli_music_player.core import (
    ConfigError,
    DownloadError,
    InvalidFormatError,
    MusicPlayerError,
    SearchError,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from cli_music_player.core.config import Config, load_config
from cli_music_player.download import DownloadConfigFromURI, get_download_provider
from cli_music_player.search import SearchQuery, get_search_provider

logger = get_logger(__name__)


config_option = click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)


@click.group(invoke_without_command=True)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, version: bool) -> None:
    """
    cli-music-player: find music on YouTube and download it.

    Searches go through a real browser, taken from the configured backends
    in priority order: an already running Chrome (proxy), a Chrome started
    in a Docker container, or a locally launched Chromium.

    \b
    BASIC USAGE:
        music search ortopilot insomnia          # Print result URLs
        music play ortopilot insomnia            # Download the first result
        music download "https://www.youtube.com/watch?v=..."
        music backends                           # Show backend priority
    """
    if version:
        click.echo(f"cli-music-player {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("keywords", nargs=-1, required=True)
@config_option
@click.option(
    "--proxy",
    type=str,
    default=None,
    metavar="<ws-url>",
    help="DevTools URL of a running Chrome, tried before the configured backends"
)
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    metavar="<n>",
    help="Print at most n results"
)
@click.pass_context
def search(
    ctx: click.Context,
    keywords: tuple[str, ...],
    config_path: Path | None,
    proxy: str | None,
    limit: int | None
) -> None:
    """Search YouTube and print one result URL per line."""
    proxy_config = _parse_proxy_option(proxy)

    def action(config: Config) -> None:
        links = _search(config, keywords, proxy_config)
        if not links:
            click.echo("No results", err=True)
            return
        for link in links[:limit]:
            click.echo(link)

    _run(ctx, config_path, action)


@cli.command()
@click.argument("uri")
@config_option
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Download directory (default: download.directory from config)"
)
@click.pass_context
def download(ctx: click.Context, uri: str, config_path: Path | None, output: Path | None) -> None:
    """Download the audio behind URI."""

    def action(config: Config) -> None:
        directory = output.expanduser() if output is not None else config.download.directory
        path = _download(config, uri, directory)
        click.echo(str(path))

    _run(ctx, config_path, action)


@cli.command()
@click.argument("keywords", nargs=-1, required=True)
@config_option
@click.pass_context
def play(ctx: click.Context, keywords: tuple[str, ...], config_path: Path | None) -> None:
    """Search YouTube and download the first result."""

    def action(config: Config) -> None:
        links = _search(config, keywords)
        if not links:
            raise SearchError(
                f"No results for '{' '.join(keywords)}'",
                details={"keywords": list(keywords)}
            )
        logger.info(f"First result: {links[0]}")
        path = _download(config, links[0], config.download.directory)
        click.echo(str(path))

    _run(ctx, config_path, action)


@cli.command()
@config_option
def backends(config_path: Path | None) -> None:
    """List the configured browser backends in priority order."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    for position, backend in enumerate(config.search.backends, start=1):
        click.echo(f"{position}. {backend.label}")


def _parse_proxy_option(proxy: str | None) -> ProxyConfig | None:
    if proxy is None:
        return None
    try:
        return proxy_backend(proxy)
    except InvalidFormatError as e:
        raise click.BadParameter(e.message, param_hint="--proxy") from e


def _search(
    config: Config,
    keywords: tuple[str, ...],
    proxy_config: ProxyConfig | None = None
) -> list[str]:
    """Run a search with the configured backends, proxy_config first if given."""
    query = SearchQuery.from_text(" ".join(keywords))
    backend_list = config.search.backends
    if proxy_config is not None:
        backend_list = (proxy_config, *backend_list)

    provider = get_search_provider(
        "youtube",
        backends=backend_list,
        timeout=config.search.timeout
    )
    provider.setup()
    return provider.search(query)


def _download(config: Config, uri: str, directory: Path) -> Path:
    factory = DownloadConfigFromURI(directory)
    provider = get_download_provider(
        "yt-dlp",
        format=config.download.format,
        download_dir=directory
    )
    provider.setup()
    return provider.download(factory.generate({"uri": uri}))


def _run(ctx: click.Context, config_path: Path | None, action: Callable[[Config], None]) -> None:
    """
    Load configuration, set up logging and run action.

    Maps application errors to exit codes (see module docstring).

    Raises:
        SystemExit: On any error, with the matching exit code.
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))

    try:
        config = load_config(config_path)
        setup_logging(config.download.directory, verbose=verbose)
        logger.debug(f"cli-music-player {__version__} starting")

        action(config)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except SearchError as e:
        click.echo(f"Search error: {e.message}", err=True)
        logger.error(f"Search error: {e.message}")
        sys.exit(2)

    except DownloadError as e:
        click.echo(f"Download error: {e.message}", err=True)
        logger.error(f"Download error: {e.message}", exc_info=True)
        sys.exit(3)

    except MusicPlayerError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        shutdown_logging()


def main() -> None:
    """
    Entry point for the CLI.

    Called when running `music` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
