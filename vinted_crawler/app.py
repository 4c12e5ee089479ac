"""Typer CLI entrypoint for Vinted-Crawler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository
from .errors import CrawlerError
from .logging_conf import configure_logging, crawler_log_path, tail_log
from .orchestrator import Orchestrator, RunSummary

app = typer.Typer(
    help="Vinted-Crawler command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect crawler logs",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: Orchestrator


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    orchestrator = Orchestrator(config_repository=repository)
    return AppState(repository=repository, orchestrator=orchestrator)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _collect_overrides(**options: Any) -> dict[str, Any]:
    return {key: value for key, value in options.items() if value is not None}


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title=f"Run {summary.run_id}", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Saved", str(summary.saved))
    table.add_row("Pages fetched", str(summary.pages_fetched))
    table.add_row("Total pages", "-" if summary.total_pages is None else str(summary.total_pages))
    table.add_row("Sessions", str(summary.sessions_minted))
    table.add_row("Stop reason", summary.reason.value)
    if summary.output_path:
        table.add_row("Output", str(summary.output_path))
    return table


app.add_typer(log_app, name="log", help="View recent log output")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Crawl the Vinted catalog once and export the listings.")
def run(
    ctx: typer.Context,
    input_name: Optional[str] = typer.Option(
        None, "--input", help="YAML/JSON crawl input file, or the name of one under data/inputs."
    ),
    start_url: Optional[str] = typer.Option(None, "--start-url", help="Catalog URL to crawl."),
    keyword: Optional[str] = typer.Option(None, "--keyword", help="Search text."),
    category: Optional[str] = typer.Option(None, "--category", help="women, men, kids or home."),
    min_price: Optional[float] = typer.Option(None, "--min-price", help="Lower price bound."),
    max_price: Optional[float] = typer.Option(None, "--max-price", help="Upper price bound."),
    results_wanted: Optional[int] = typer.Option(
        None, "--results-wanted", help="Stop after this many listings."
    ),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Fetch at most N pages."),
    proxies: Optional[List[str]] = typer.Option(
        None, "--proxy", help="Proxy URL; repeat to build a pool."
    ),
    output_format: Optional[str] = typer.Option(
        None, "--output-format", help="json, csv, sqlite or mongodb."
    ),
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    payload: dict[str, Any] = {}
    if input_name is not None:
        try:
            payload = state.repository.load_input(input_name).model_dump()
        except FileNotFoundError as exc:
            console.print(str(exc), style="red")
            raise typer.Exit(code=1)
        except CrawlerError as exc:
            console.print(f"Invalid input file: {exc}", style="red", markup=False)
            raise typer.Exit(code=1)
    payload.update(
        _collect_overrides(
            start_url=start_url,
            keyword=keyword,
            category=category,
            min_price=min_price,
            max_price=max_price,
            results_wanted=results_wanted,
            max_pages=max_pages,
        )
    )
    if proxies:
        payload["proxy_configuration"] = {"use_proxy": True, "proxy_urls": list(proxies)}

    orchestrator = state.orchestrator
    if output_format:
        if output_format not in ("json", "csv", "sqlite", "mongodb"):
            raise typer.BadParameter(
                f"Unsupported output format: {output_format}", param_hint="--output-format"
            )
        global_config = orchestrator.global_config.model_copy(update={"output_format": output_format})
        orchestrator = Orchestrator(
            config_repository=state.repository,
            global_config=global_config,
            transport_provider=orchestrator.transport_provider,
            sleep=orchestrator.sleep,
        )

    summary = orchestrator.run(payload)
    if quiet:
        console.print(f"Saved {summary.saved} listings ({summary.reason.value})")
    else:
        console.print(_render_summary_table(summary))
    if summary.error is not None:
        console.print(f"{type(summary.error).__name__}: {summary.error}", style="red", markup=False)
        raise typer.Exit(code=1)


@log_app.command("show", help="Show the most recent lines of the crawler log.")
def log_show(
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    lines = tail_log(crawler_log_path(), tail)
    if not lines:
        console.print("No log output yet.", style="dim")
        return
    console.print(f"crawler.log · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
