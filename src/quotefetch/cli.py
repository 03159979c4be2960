"""Click-based CLI for quotefetch.

Thin wrapper around library modules. Each command delegates to the
orchestrator, the providers and the codecs.
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console

from quotefetch.codecs.files import OutputFormat
from quotefetch.core.models import Period, ProviderName

console = Console(stderr=True)
logger = logging.getLogger(__name__)

_QUOTE_SOURCES = [ProviderName.YAHOO.value, ProviderName.TIINGO.value, ProviderName.GDAX.value]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily and wire up logging on first call."""
    if "config" not in ctx.obj:
        from quotefetch.core import configure_logging, load_config

        config = load_config(config_path=ctx.obj.get("config_path"))
        configure_logging(
            ctx.obj.get("log") or config.logging.destination,
            ctx.obj.get("verbose") or config.logging.verbose,
        )
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _resolve_symbols(infile: str | None, symbols: tuple[str, ...]) -> list[str]:
    """Symbols from --infile, else from the positional arguments."""
    if infile:
        from quotefetch.codecs.files import read_symbols

        resolved = read_symbols(infile)
    else:
        resolved = [s.strip() for s in symbols if s.strip()]
    if not resolved:
        raise click.UsageError("no symbols specified")
    return resolved


def _resolve_range(start: str, end: str, years: int):
    """Turn --start/--end/--years into a (start, end) datetime pair."""
    from quotefetch.core.dates import lookback_range, parse_date_string

    try:
        end_dt = parse_date_string(end)
        if start:
            return parse_date_string(start), end_dt
        return lookback_range(years, end_dt)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--start' / '--end' / '--years'") from e


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="QUOTEFETCH_CONFIG",
    default=None,
    help="Path to quotefetch.yml config file.",
)
@click.option(
    "--log",
    "log",
    type=str,
    default=None,
    help="Log destination: stdout|stderr|discard|<filename>.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="quotefetch")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log: str | None, verbose: bool) -> None:
    """quotefetch: download historical price quotes."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log"] = log
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbols", nargs=-1)
@click.option("--infile", "-i", type=click.Path(exists=True, dir_okay=False), default=None, help="File of symbols, one per line.")
@click.option("--start", "-s", type=str, default="", help="Start date yyyy[-mm[-dd]].")
@click.option("--end", "-e", type=str, default="", help="End date yyyy[-mm[-dd]]. Default: now.")
@click.option("--years", "-y", type=int, default=5, show_default=True, help="Years to download when --start is absent.")
@click.option(
    "--period",
    "-p",
    type=click.Choice([p.value for p in Period]),
    default=Period.DAILY.value,
    show_default=True,
    help="Bar period.",
)
@click.option(
    "--source",
    type=click.Choice(_QUOTE_SOURCES, case_sensitive=False),
    default=ProviderName.YAHOO.value,
    show_default=True,
    help="Quote provider.",
)
@click.option("--token", type=str, envvar="TIINGO_API_TOKEN", default=None, help="Tiingo API token.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
    default=OutputFormat.CSV.value,
    show_default=True,
    help="Output format.",
)
@click.option("--adjust/--no-adjust", default=True, show_default=True, help="Adjust Yahoo prices.")
@click.option("--all", "all_in_one", is_flag=True, default=False, help="Write all symbols to one file.")
@click.option("--outfile", "-o", type=str, default=None, help="Output filename.")
@click.option("--delay", type=int, default=None, help="Milliseconds between symbol requests.")
@click.option("--strict", is_flag=True, default=False, help="Fail a symbol on any malformed field.")
@click.pass_context
def fetch(
    ctx: click.Context,
    symbols: tuple[str, ...],
    infile: str | None,
    start: str,
    end: str,
    years: int,
    period: str,
    source: str,
    token: str | None,
    output_format: str,
    adjust: bool,
    all_in_one: bool,
    outfile: str | None,
    delay: int | None,
    strict: bool,
) -> None:
    """Download quotes for SYMBOLS (or --infile) and write them to files."""
    from quotefetch.codecs.files import write_collection, write_series
    from quotefetch.core.exceptions import InvalidRequestError
    from quotefetch.orchestrator import QuoteOrchestrator
    from quotefetch.providers import check_period, create_provider

    config = _load_config(ctx)
    symbol_list = _resolve_symbols(infile, symbols)
    if len(symbol_list) > 1 and outfile and not all_in_one:
        raise click.UsageError("--outfile not valid with multiple symbols, use --all")

    start_dt, end_dt = _resolve_range(start, end, years)
    bar_period = Period(period)
    provider_name = ProviderName(source.lower())
    fmt = OutputFormat(output_format.lower())

    try:
        check_period(provider_name, bar_period)
    except InvalidRequestError as e:
        raise click.UsageError(str(e)) from e

    fetch_updates: dict = {}
    if delay is not None:
        fetch_updates["request_delay_ms"] = delay
    if strict:
        fetch_updates["strict_parsing"] = True
    updates: dict = {"fetch": config.fetch.model_copy(update=fetch_updates)}
    if token:
        updates["tiingo"] = config.tiingo.model_copy(update={"token": token})
    run_config = config.model_copy(update=updates)

    async def _run():
        async with create_provider(provider_name, run_config) as provider:
            orchestrator = QuoteOrchestrator(provider, run_config.fetch)
            with console.status(f"Fetching {len(symbol_list)} symbol(s) from {provider_name.value}..."):
                collection = await orchestrator.fetch_many(
                    symbol_list, start_dt, end_dt, bar_period, adjust
                )
            return collection, orchestrator.failures

    try:
        collection, failures = _run_async(_run())
    except InvalidRequestError as e:
        raise click.UsageError(str(e)) from e

    if all_in_one:
        path = write_collection(collection, fmt, outfile)
        console.print(f"[green]✓[/green] Wrote {len(collection)} series to {path}")
    else:
        for series in collection.series:
            write_series(series, fmt, outfile)
        console.print(f"[green]✓[/green] Wrote {len(collection)} series")

    if failures:
        for failure in failures:
            console.print(f"[red]{failure.symbol}: {failure.message}[/red]")
        console.print(f"[yellow]{len(failures)} symbol(s) failed[/yellow]")


# ---------------------------------------------------------------------------
# etf / market
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--outfile", "-o", type=str, default=None, help="Output filename. Default: etf.txt")
@click.pass_context
def etf(ctx: click.Context, outfile: str | None) -> None:
    """Write the list of listed ETF symbols."""
    from quotefetch.codecs.files import write_symbols
    from quotefetch.core.exceptions import FetchError
    from quotefetch.providers.nasdaq import EtfListProvider

    config = _load_config(ctx)
    try:
        symbols = _run_async(EtfListProvider(config=config.nasdaq).list_symbols())
    except FetchError as e:
        console.print(f"[red]ETF list download failed: {e}[/red]")
        raise SystemExit(1)
    path = write_symbols(symbols, outfile or "etf.txt")
    console.print(f"[green]✓[/green] Wrote {len(symbols)} symbols to {path}")


@cli.command()
@click.argument("name", type=str)
@click.option("--outfile", "-o", type=str, default=None, help="Output filename. Default: <NAME>.txt")
@click.pass_context
def market(ctx: click.Context, name: str, outfile: str | None) -> None:
    """Write the symbols of a market, exchange or sector (or 'allmarkets')."""
    from quotefetch.codecs.files import write_symbols
    from quotefetch.core.exceptions import FetchError
    from quotefetch.providers.nasdaq import VALID_MARKETS, list_market

    config = _load_config(ctx)
    name = name.lower()
    if name != "allmarkets" and name not in VALID_MARKETS:
        raise click.UsageError(
            f"invalid market {name!r}, choose from: allmarkets, {', '.join(VALID_MARKETS)}"
        )

    async def _run():
        targets = list(VALID_MARKETS) if name == "allmarkets" else [name]
        written = 0
        for m in targets:
            try:
                symbols = await list_market(m, config.nasdaq, config.fetch)
            except FetchError as e:
                logger.error("Market %s failed: %s", m, e)
                console.print(f"[red]{m}: {e}[/red]")
                continue
            filename = outfile if outfile and len(targets) == 1 else f"{m}.txt"
            write_symbols(symbols, filename)
            console.print(f"[green]✓[/green] {m}: {len(symbols)} symbols -> {filename}")
            written += 1
        return written

    written = _run_async(_run())
    if written == 0:
        raise SystemExit(1)
