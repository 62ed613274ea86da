"""Command-line interface for SiteSift."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import click
import structlog
from rich.console import Console
from rich.table import Table

from sitesift import __version__
from sitesift.analysis.comparison import COMPARISON_METRICS
from sitesift.config import CrawlConfig, Settings, load_settings
from sitesift.crawler.cache import ResponseCache
from sitesift.crawler.orchestrator import CrawlOrchestrator
from sitesift.dataset.exporter import to_jsonable
from sitesift.exceptions import SiteSiftError
from sitesift.observability.logging import configure_logging
from sitesift.observability.metrics import start_metrics_server
from sitesift.protocols import FailedPage, PageReport

console = Console()
logger = structlog.get_logger(__name__)

T = TypeVar("T")


def summarize(report: PageReport) -> Dict[str, Any]:
    """Compact, JSON-friendly view of a crawled page."""
    metadata = report.page.metadata
    return {
        "url": report.url,
        "status_code": report.status_code,
        "size": report.size,
        "encoding": report.fetch.encoding,
        "title": metadata.title,
        "description": metadata.description,
        "word_count": report.page.text.word_count,
        "links": len(report.page.links),
        "images": len(report.page.images),
        "has_schema": bool(report.page.schema),
        "language": report.language.language,
        "sentiment": report.sentiment.sentiment,
        "keywords": [kw.word for kw in report.keywords],
        "readability": report.readability.flesch_score,
        "quality": {
            "overall": report.quality.overall,
            "grade": report.quality.grade.value,
            "breakdown": report.quality.breakdown,
            "recommendations": report.quality.recommendations,
        },
        "timestamp": report.timestamp.isoformat(),
    }


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(to_jsonable(data), ensure_ascii=False))


def _page_view(result: Any) -> Any:
    return result if isinstance(result, FailedPage) else summarize(result)


def _read_urls(urls_file: Optional[Any], urls: tuple[str, ...]) -> List[str]:
    url_list: List[str] = list(urls)
    if urls_file:
        url_list.extend(line.strip() for line in urls_file if line.strip() and not line.startswith("#"))
    if not url_list:
        console.print("[red]Error: no URLs provided[/red]")
        sys.exit(1)
    return url_list


def _run(ctx: click.Context, job: Callable[[CrawlOrchestrator], Awaitable[T]]) -> T:
    """Run ``job`` against a fresh orchestrator built from the CLI settings."""
    settings: Settings = ctx.obj["settings"]
    overrides: Dict[str, Any] = ctx.obj["overrides"]
    config: CrawlConfig = settings.crawl.merged(**overrides)

    async def runner() -> T:
        cache = ResponseCache(ttl_seconds=settings.cache.ttl_seconds, max_entries=settings.cache.max_entries)
        async with CrawlOrchestrator(config, cache=cache) as orchestrator:
            return await job(orchestrator)

    try:
        return asyncio.run(runner())
    except SiteSiftError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.option("--user-agent", default=None, help="User-Agent header for all requests")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option("--retries", type=click.IntRange(min=1), default=None, help="Total attempts per URL")
@click.option("--delay-ms", type=click.IntRange(min=0), default=None, help="Politeness delay before every fetch")
@click.option("--ignore-robots", is_flag=True, help="Do not consult robots.txt")
@click.option("--cache/--no-cache", "cache_enabled", default=None, help="Use the response cache")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[str],
    log_level: Optional[str],
    user_agent: Optional[str],
    timeout: Optional[float],
    retries: Optional[int],
    delay_ms: Optional[int],
    ignore_robots: bool,
    cache_enabled: Optional[bool],
) -> None:
    """SiteSift - polite crawling with quality, change and duplicate analytics."""
    ctx.ensure_object(dict)
    settings = load_settings(Path(config) if config else None)
    if log_level:
        settings.monitoring.log_level = log_level

    configure_logging(settings.monitoring)
    if settings.monitoring.prometheus_port:
        start_metrics_server(settings.monitoring.prometheus_port)

    ctx.obj["settings"] = settings
    ctx.obj["overrides"] = {
        "user_agent": user_agent,
        "timeout": timeout,
        "retries": retries,
        "delay_ms": delay_ms,
        "respect_robots": False if ignore_robots else None,
        "cache_enabled": cache_enabled,
    }


@cli.command()
@click.argument("url")
@click.option("--full", is_flag=True, help="Print the full extracted record instead of a summary")
@click.pass_context
def crawl(ctx: click.Context, url: str, full: bool) -> None:
    """Crawl a single page and print its analysis."""
    report = _run(ctx, lambda orchestrator: orchestrator.crawl(url))
    if full:
        _print_json({"summary": summarize(report), "page": report.page})
    else:
        _print_json(summarize(report))


@cli.command()
@click.argument("urls_file", type=click.File("r"), required=False)
@click.option("--url", "urls", multiple=True, help="URL to crawl (can be used multiple times)")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="URLs per window")
@click.option("--batch-delay-ms", type=click.IntRange(min=0), default=None, help="Pause between windows")
@click.option("--duplicates", is_flag=True, help="Report duplicate content across the batch")
@click.option("--threshold", type=float, default=0.8, show_default=True, help="Duplicate similarity threshold")
@click.option(
    "--export",
    "export_format",
    type=click.Choice(["json", "csv", "xml"]),
    default=None,
    help="Print the similarity log and performance snapshot in this format",
)
@click.pass_context
def batch(
    ctx: click.Context,
    urls_file: Optional[Any],
    urls: tuple[str, ...],
    concurrency: Optional[int],
    batch_delay_ms: Optional[int],
    duplicates: bool,
    threshold: float,
    export_format: Optional[str],
) -> None:
    """Crawl many URLs in bounded-concurrency windows."""
    url_list = _read_urls(urls_file, urls)

    async def job(orchestrator: CrawlOrchestrator) -> Dict[str, Any]:
        track = duplicates or export_format is not None
        results = await orchestrator.crawl_many(
            url_list, track_similarity=track, concurrency=concurrency, batch_delay_ms=batch_delay_ms
        )
        return {
            "results": [_page_view(r) for r in results],
            "duplicates": orchestrator.find_duplicates(threshold) if duplicates else [],
            "performance": orchestrator.get_performance_stats(),
            "export": orchestrator.export(export_format) if export_format else None,
        }

    output = _run(ctx, job)
    exported = output.pop("export")
    if exported is not None:
        click.echo(exported)
        return
    _print_json(output)


@cli.command()
@click.argument("seed")
@click.option("--max-depth", type=click.IntRange(min=0), default=None, help="Maximum link distance from the seed")
@click.option("--max-urls", type=click.IntRange(min=0), default=None, help="Maximum URLs to discover")
@click.option("--pattern", "url_pattern", default=None, help="Glob filter for discovered URLs (e.g. '*/blog/*')")
@click.pass_context
def discover(
    ctx: click.Context,
    seed: str,
    max_depth: Optional[int],
    max_urls: Optional[int],
    url_pattern: Optional[str],
) -> None:
    """Discover a site breadth-first from SEED."""
    result = _run(
        ctx,
        lambda orchestrator: orchestrator.discover(
            seed, max_depth=max_depth, max_urls=max_urls, url_pattern=url_pattern
        ),
    )
    _print_json(
        {
            "discovered_urls": result.discovered_urls,
            "pages": [summarize(page) for page in result.pages],
            "stats": result.stats,
            "timestamp": result.timestamp,
        }
    )


@cli.command("check-links")
@click.argument("urls_file", type=click.File("r"), required=False)
@click.option("--url", "urls", multiple=True, help="URL to check (can be used multiple times)")
@click.option("--from-page", default=None, help="Check every link found on this page")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Links checked at once")
@click.pass_context
def check_links(
    ctx: click.Context,
    urls_file: Optional[Any],
    urls: tuple[str, ...],
    from_page: Optional[str],
    concurrency: Optional[int],
) -> None:
    """Report the HTTP status of links, flagging broken ones."""

    async def job(orchestrator: CrawlOrchestrator):
        targets = list(urls)
        if urls_file:
            targets.extend(line.strip() for line in urls_file if line.strip())
        if from_page:
            page = await orchestrator.crawl(from_page)
            targets.extend(link.url for link in page.page.links if link.url.startswith(("http://", "https://")))
        return await orchestrator.check_links(list(dict.fromkeys(targets)), concurrency=concurrency)

    statuses = _run(ctx, job)

    table = Table(title="Link status")
    table.add_column("URL", overflow="fold")
    table.add_column("Status", justify="right")
    table.add_column("Detail")
    for status in statuses:
        style = "red" if status.is_broken else "green"
        table.add_row(status.url, f"[{style}]{status.status_code}[/{style}]", status.status_text)
    console.print(table)

    broken = sum(1 for status in statuses if status.is_broken)
    console.print(f"{len(statuses)} links checked, {broken} broken")
    if broken:
        sys.exit(2)


@cli.command()
@click.argument("base_url")
@click.option("--max-depth", type=click.IntRange(min=0), default=3, show_default=True)
@click.option("--max-urls", type=click.IntRange(min=0), default=1000, show_default=True)
@click.option("--pattern", "url_pattern", default=None, help="Glob filter for included URLs")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write the XML here")
@click.pass_context
def sitemap(
    ctx: click.Context,
    base_url: str,
    max_depth: int,
    max_urls: int,
    url_pattern: Optional[str],
    output: Optional[str],
) -> None:
    """Build an XML sitemap for BASE_URL."""
    result = _run(
        ctx,
        lambda orchestrator: orchestrator.build_sitemap(
            base_url, max_depth=max_depth, max_urls=max_urls, url_pattern=url_pattern
        ),
    )
    if output:
        Path(output).write_text(result.xml, encoding="utf-8")
        console.print(f"[green]Wrote {len(result.entries)} URLs to {output}[/green]")
    else:
        click.echo(result.xml)


@cli.command()
@click.argument("url")
@click.pass_context
def tech(ctx: click.Context, url: str) -> None:
    """Detect the technology stack behind URL."""
    _print_json(_run(ctx, lambda orchestrator: orchestrator.detect_technology(url)))


@cli.command()
@click.argument("urls_file", type=click.File("r"), required=False)
@click.option("--url", "urls", multiple=True, help="Competitor URL (can be used multiple times)")
@click.pass_context
def compete(ctx: click.Context, urls_file: Optional[Any], urls: tuple[str, ...]) -> None:
    """Analyse competing pages side by side."""
    url_list = _read_urls(urls_file, urls)
    analysis = _run(ctx, lambda orchestrator: orchestrator.analyze_competitors(url_list))
    _print_json(
        {
            "pages": [_page_view(result) for result in analysis.pages],
            "average_quality": analysis.average_quality,
            "common_keywords": analysis.common_keywords,
            "duplicates": analysis.duplicates,
            "performance": analysis.performance,
            "url_patterns": analysis.url_patterns,
            "sentiment": analysis.sentiment,
            "readability": analysis.readability,
            "timestamp": analysis.timestamp,
        }
    )


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option(
    "--metric",
    "metrics",
    multiple=True,
    type=click.Choice(COMPARISON_METRICS),
    help="Metric to compare (defaults to all)",
)
@click.pass_context
def compare(ctx: click.Context, urls: tuple[str, ...], metrics: tuple[str, ...]) -> None:
    """Score URLS against each other and name the best page per metric."""
    comparison = _run(
        ctx, lambda orchestrator: orchestrator.compare_pages(list(urls), metrics=metrics or COMPARISON_METRICS)
    )
    _print_json(
        {
            "scores": comparison.scores,
            "winners": comparison.winners,
            "recommendations": comparison.recommendations,
            "timestamp": comparison.timestamp,
        }
    )


@cli.command()
@click.argument("url")
@click.pass_context
def insight(ctx: click.Context, url: str) -> None:
    """Print headline facts about URL."""
    _print_json(_run(ctx, lambda orchestrator: orchestrator.insight(url)))


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
