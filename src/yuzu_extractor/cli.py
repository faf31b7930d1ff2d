"""Command-line interface for yuzu-extractor."""

from __future__ import annotations

import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import click
import structlog
from playwright.async_api import BrowserContext, Page, async_playwright
from rich.console import Console
from rich.table import Table

from . import __version__
from .browser import PlaywrightScope, PlaywrightScrollTarget
from .config import Config, ConversionOptions, find_config_file
from .models import ErrorResult, ExtractionOutcome, MarkdownOutcome
from .observability import configure_logging
from .pipeline import ExtractionPipeline, as_error_result
from .protocols import ContentScope

# Artifacts go to stdout; everything else to stderr
console = Console(stderr=True)
logger = structlog.get_logger(__name__)


def load_config(path: Optional[Path]) -> Config:
    """Explicit file, else ``yuzu-extractor.yaml`` in the working directory, else defaults."""
    path = path or find_config_file()
    if path is None:
        return Config()
    return Config.from_yaml(path)


@asynccontextmanager
async def open_page(config: Config) -> AsyncIterator[Tuple[BrowserContext, Page]]:
    """Launch the configured browser and yield a context with one page."""
    browser_config = config.browser
    async with async_playwright() as playwright:
        browser_type = getattr(playwright, browser_config.browser)
        browser = None
        if browser_config.user_data_dir:
            context = await browser_type.launch_persistent_context(
                str(browser_config.user_data_dir), headless=browser_config.headless
            )
        else:
            browser = await browser_type.launch(headless=browser_config.headless)
            context = await browser.new_context()
        try:
            page = context.pages[0] if context.pages else await context.new_page()
            page.set_default_navigation_timeout(browser_config.navigation_timeout_ms)
            yield context, page
        finally:
            await context.close()
            if browser is not None:
                await browser.close()


async def prepare_scope(
    pipeline: ExtractionPipeline, page: Page, url: str, scroll: bool, step_delay: Optional[int]
) -> ContentScope:
    """Navigate, locate the content scope and optionally run the readiness sequence on it."""
    await page.goto(url, wait_until="domcontentloaded")
    await page.wait_for_timeout(pipeline.config.browser.load_wait_ms)

    wrapper = PlaywrightScope(page.main_frame, same_origin_only=pipeline.config.locator.same_origin_only)
    scope = await pipeline.locator.locate(wrapper)
    if scroll and isinstance(scope, PlaywrightScope):
        await pipeline.run_readiness_sequence(PlaywrightScrollTarget(scope.frame), step_delay)
    return scope


def write_artifact(text: str, output: Optional[Path]) -> None:
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def conversion_options(strip_ui: bool, fix_print: bool) -> ConversionOptions:
    return ConversionOptions(strip_ui=strip_ui, fix_print=fix_print)


common_options = [
    click.argument("url"),
    click.option(
        "--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write to file instead of stdout"
    ),
    click.option("--strip-ui/--keep-ui", default=True, help="Remove reader chrome, hidden elements and scripts"),
    click.option("--scroll/--no-scroll", default=True, help="Run the readiness sequence before extracting"),
    click.option("--step-delay", type=int, default=None, help="Pause after each scroll step in milliseconds"),
]


def with_common_options(func: Any) -> Any:
    for option in reversed(common_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str]) -> None:
    """yuzu-extractor - print-ready HTML and Markdown from the Yuzu reader."""
    ctx.ensure_object(dict)
    try:
        loaded = load_config(config)
    except Exception as e:
        fail(f"Invalid configuration: {e}")
        return
    if log_level:
        loaded.monitoring.log_level = log_level
    configure_logging(loaded.monitoring)
    ctx.obj["config"] = loaded


@cli.command()
@with_common_options
@click.option("--fix-print/--keep-print", default=True, help="Strip print-blocking CSS")
@click.pass_context
def html(
    ctx: click.Context,
    url: str,
    output: Optional[Path],
    strip_ui: bool,
    scroll: bool,
    step_delay: Optional[int],
    fix_print: bool,
) -> None:
    """Extract a standalone, print-ready HTML document from URL."""
    pipeline = ExtractionPipeline(ctx.obj["config"])
    options = conversion_options(strip_ui, fix_print)

    async def run() -> ExtractionOutcome:
        async with open_page(pipeline.config) as (_, page):
            try:
                scope = await prepare_scope(pipeline, page, url, scroll, step_delay)
            except Exception as e:
                return as_error_result("Wrapper extraction error:", e)
            return await pipeline.extract_content(scope, options, scrolled=scroll)

    result = asyncio.run(run())
    if isinstance(result, ErrorResult):
        fail(result.error)
        return

    write_artifact(result.to_html(), output)
    summary = Table(title=result.title)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value", style="magenta")
    summary.add_row("Body markup", f"{len(result.body_markup)} chars")
    summary.add_row("Styles", str(len(result.styles)))
    summary.add_row("Scrolled", "yes" if result.scrolled else "no")
    summary.add_row("Output", str(output) if output else "stdout")
    console.print(summary)


@cli.command()
@with_common_options
@click.option("--no-images", is_flag=True, help="Keep remote image URLs instead of embedding them")
@click.pass_context
def markdown(
    ctx: click.Context,
    url: str,
    output: Optional[Path],
    strip_ui: bool,
    scroll: bool,
    step_delay: Optional[int],
    no_images: bool,
) -> None:
    """Convert URL to Markdown with LaTeX math and embedded images."""
    pipeline = ExtractionPipeline(ctx.obj["config"])
    options = conversion_options(strip_ui, True)

    async def run() -> MarkdownOutcome:
        async with open_page(pipeline.config) as (context, page):
            try:
                scope = await prepare_scope(pipeline, page, url, scroll, step_delay)
            except Exception as e:
                return as_error_result("Markdown extraction error:", e)
            cookies: Dict[str, str] = {
                cookie["name"]: cookie["value"] for cookie in await context.cookies([scope.url])
            }
            return await pipeline.extract_markdown(scope, options, cookies=cookies, inline_images=not no_images)

    result = asyncio.run(run())
    if isinstance(result, ErrorResult):
        fail(result.error)
        return

    write_artifact(result.markdown_text, output)
    console.print(
        f"[green]Converted '{result.title}': {len(result.markdown_text)} chars, "
        f"{len(result.images)} images[/green]"
    )


@cli.command("validate-config")
@click.pass_context
def validate_config(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config: Config = ctx.obj["config"]
    table = Table(title="Configuration")
    table.add_column("Section", style="cyan")
    table.add_column("Settings", style="magenta")
    for name, section in config.model_dump(mode="json").items():
        table.add_row(name, str(section))
    console.print(table)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
