from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from webparity.cache import CacheStore
from webparity.config import Config
from webparity.models import is_opaque
from webparity.output.report import emit_report
from webparity.pipeline import run
from webparity.requestor import CacheableWebRequestor
from webparity.throttle import HandleLimiter


USAGE_GUIDE = """Usage:
  webparity fetch URL [OPTIONS]
  webparity pair PATH... --source-host URL --destination-host URL [OPTIONS]
  webparity prune [OPTIONS]

Examples:
  webparity fetch https://www.example.com/about --cache-path ./html-cache
  webparity fetch https://www.example.com/report.pdf --head
  webparity pair /about /contact --source-host https://old.example.com --destination-host https://new.example.com --json
  webparity pair --paths-file paths.txt --source-host https://old.example.com --destination-host https://new.example.com
  webparity prune --cache-path ./html-cache --cache-duration 3600000

Tips:
  - Use --help (or -h) to see all options.
  - Settings can also come from WEBPARITY_* environment variables or a .env file.
  - Cached entries younger than --cache-duration (ms) are served without a request.
"""


def _read_paths_file(path: Path | None) -> list[str]:
    if path is None:
        return []
    values: list[str] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        values.append(line)
    return values


def _show_usage(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(USAGE_GUIDE)
    ctx.exit(0)


def _configure_logging(verbose: bool | None) -> None:
    logging.basicConfig(
        level=logging.DEBUG if bool(verbose) else logging.INFO,
        stream=sys.stderr,
        format="%(levelname)s %(message)s",
    )


def _build_config(**options: Any) -> Config | None:
    overrides = {key: value for key, value in options.items() if value is not None}
    try:
        return Config(**overrides)
    except ValidationError as exc:
        click.echo(f"configuration error: {exc}", err=True)
        return None


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option(
            "--cache-path",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Root directory for cache files.",
        ),
        click.option("--cache-duration", type=int, default=None, help="Cache TTL in milliseconds."),
        click.option("--verbose", is_flag=True, default=None, help="Verbose stderr logs."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(
    context_settings={"help_option_names": ["--help", "-h"]},
    invoke_without_command=True,
)
@click.option(
    "--usage",
    is_flag=True,
    is_eager=True,
    expose_value=False,
    callback=_show_usage,
    help="Show usage guide and examples.",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Fetch pages from two deployments of a site through a shared cache."""
    load_dotenv(override=False)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("fetch", help="Fetch one URL through the cache and print its body or headers.")
@click.argument("url")
@click.option("--head", "head_only", is_flag=True, help="Fetch headers (HEAD) instead of the body.")
@click.option("--retry-delay-ms", type=int, default=None, help="Delay before replaying a reset connection.")
@common_options
def fetch(
    url: str,
    head_only: bool,
    retry_delay_ms: int | None,
    cache_path: Path | None,
    cache_duration: int | None,
    verbose: bool | None,
) -> None:
    _configure_logging(verbose)
    config = _build_config(
        cache_path=cache_path,
        cache_duration=cache_duration,
        retry_delay_ms=retry_delay_ms,
        verbose=verbose,
    )
    if config is None:
        return

    async def _fetch() -> dict[str, str] | str | None:
        async with CacheableWebRequestor(config) as requestor:
            if head_only:
                return await requestor.get_headers(url)
            return await requestor.get_contents(url)

    try:
        result = asyncio.run(_fetch())
    except Exception as exc:  # noqa: BLE001
        click.echo(f"fetch error: {exc}", err=True)
        return

    if result is None:
        click.echo(f"unavailable: {url}", err=True)
    elif isinstance(result, dict):
        click.echo(json.dumps(result, indent=2, sort_keys=True))
    elif is_opaque(result):
        click.echo(f"non-html content: {url}", err=True)
    else:
        click.echo(result)


@cli.command("pair", help="Fetch paths from a source and a destination host.")
@click.argument("paths", nargs=-1)
@click.option(
    "--paths-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File containing server-relative paths (one per line).",
)
@click.option("--source-host", required=True, help="Migration source host, e.g. https://old.example.com.")
@click.option("--destination-host", required=True, help="Migration destination host.")
@click.option("--concurrency", type=int, default=None, help="Paths processed in parallel.")
@click.option("--json", "json_output", is_flag=True, default=False, help="Emit run report JSON.")
@click.option("--include-content", is_flag=True, default=False, help="Include page bodies in the JSON report.")
@common_options
def pair(  # noqa: PLR0913
    paths: tuple[str, ...],
    paths_file: Path | None,
    source_host: str,
    destination_host: str,
    concurrency: int | None,
    json_output: bool,
    include_content: bool,
    cache_path: Path | None,
    cache_duration: int | None,
    verbose: bool | None,
) -> None:
    _configure_logging(verbose)
    config = _build_config(
        cache_path=cache_path,
        cache_duration=cache_duration,
        concurrency=concurrency,
        verbose=verbose,
    )
    if config is None:
        return

    all_paths = list(paths) + _read_paths_file(paths_file)
    try:
        report = asyncio.run(run(config, all_paths, source_host, destination_host))
    except Exception as exc:  # noqa: BLE001
        click.echo(f"pipeline error: {exc}", err=True)
        return

    if json_output:
        emit_report(report, include_content=include_content)
    else:
        click.echo(
            f"webpages={report.webpage_count} files={report.file_count} failed={report.failure_count}"
        )
        for item in report.items:
            if item.failed:
                click.echo(f"- {item.path} -- {item.error_step.value}: {'; '.join(item.fetch_errors)}")


@cli.command("prune", help="Delete cache files older than the cache duration.")
@common_options
def prune(cache_path: Path | None, cache_duration: int | None, verbose: bool | None) -> None:
    _configure_logging(verbose)
    config = _build_config(cache_path=cache_path, cache_duration=cache_duration, verbose=verbose)
    if config is None:
        return

    store = CacheStore(
        config.cache_path,
        config.ttl_seconds,
        HandleLimiter(config.max_concurrent_handles, config.handle_wait_interval_seconds),
    )
    try:
        removed = asyncio.run(store.prune())
    except Exception as exc:  # noqa: BLE001
        click.echo(f"prune error: {exc}", err=True)
        return
    click.echo(f"removed {removed} expired cache files")


def main() -> int:
    try:
        cli.main(standalone_mode=False)
    except Exception as exc:  # noqa: BLE001
        click.echo(f"fatal error: {exc}", err=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
