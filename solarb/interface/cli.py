"""
solarb CLI
==========
Operator surface built on Typer + Rich.

Commands:
    python main.py scan
    python main.py execute
    python main.py execute --from-cache
    python main.py cache
"""

import asyncio
import math
import time
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import thresholds
from solarb.shared.models import ArbitrageExecution, CachedOpportunity
from solarb.shared.system.errors import ArbError, ConfigurationMissing
from solarb.shared.system.logging import Logger

app = typer.Typer(
    name="solarb",
    help="solarb - Raydium / Meteora cross-venue arbitrage",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def parse_selection(raw: str, count: int) -> int:
    """1-based operator choice -> 0-based index; falls back to the best opportunity."""
    try:
        choice = int(raw.strip())
    except (ValueError, AttributeError):
        choice = 0
    if not 1 <= choice <= count:
        Logger.warning(f"[CLI] Invalid choice {raw!r}, using opportunity #1")
        return 0
    return choice - 1


def parse_amount(raw: str, default: float = thresholds.DEFAULT_TRADE_AMOUNT_SOL) -> float:
    try:
        amount = float(raw.strip())
    except (ValueError, AttributeError):
        amount = 0.0
    if not math.isfinite(amount) or amount <= 0:
        Logger.warning(f"[CLI] Invalid amount {raw!r}, using {default} SOL")
        return default
    return amount


def render_opportunities(entries: List[CachedOpportunity], title: str = "Top Opportunities") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Pair")
    table.add_column("Profit (bps)", justify="right", style="green")
    table.add_column("Spread %", justify="right")
    table.add_column("Buy on")
    table.add_column("Liquidity R / M", justify="right", style="dim")
    table.add_column("Token", style="dim")

    for i, entry in enumerate(entries, start=1):
        opp = entry.opportunity
        table.add_row(
            str(i),
            opp.pair_name,
            f"{opp.expected_profit_bps:.1f}",
            f"{opp.spread_pct:+.3f}",
            opp.direction.buy_venue.value,
            f"${opp.raydium_liquidity_usd:,.0f} / ${opp.meteora_liquidity_usd:,.0f}",
            opp.token_mint,
        )
    return table


# ═══════════════════════════════════════════════════════════════════════════════
# COMMAND: SCAN
# ═══════════════════════════════════════════════════════════════════════════════

@app.command()
def scan():
    """
    Run one detection cycle and print the ranked opportunities.

    Writes pool snapshots and the top-N to the cache directory.
    """
    from solarb.execution.pipeline import ArbPipeline

    async def _run():
        pipeline = ArbPipeline.from_settings(execution=False)
        try:
            return await pipeline.detect()
        finally:
            await pipeline.close()

    report = asyncio.run(_run())
    if not report.cached:
        console.print("[yellow]No opportunities found this cycle.[/yellow]")
        raise typer.Exit(0)
    console.print(render_opportunities(report.cached))
    if report.degraded:
        console.print(f"[yellow]Degraded venues: {', '.join(v.value for v in report.degraded)}[/yellow]")


# ═══════════════════════════════════════════════════════════════════════════════
# COMMAND: EXECUTE
# ═══════════════════════════════════════════════════════════════════════════════

@app.command()
def execute(
    from_cache: bool = typer.Option(
        False,
        "--from-cache",
        help="Pick from the cached top-N instead of running a fresh scan",
    ),
    amount: Optional[float] = typer.Option(
        None,
        "--amount",
        help="Trade size in SOL (prompted when omitted)",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        help="Skip the confirmation prompt",
    ),
):
    """
    Select an opportunity by index and submit it as one atomic transaction.

    [bold red]Real funds.[/bold red] The relay tip is paid only if the transaction lands.
    """
    from config.settings import Settings
    from solarb.execution.pipeline import ArbPipeline

    try:
        signer = Settings.load_signer()
        pipeline = ArbPipeline.from_settings(execution=True)
    except ConfigurationMissing as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(2)

    async def _run():
        try:
            if from_cache:
                entries = await pipeline.load_cached_opportunities()
            else:
                entries = (await pipeline.detect()).cached
            if not entries:
                console.print("[yellow]No opportunities available.[/yellow]")
                return None

            console.print(render_opportunities(entries))
            index = parse_selection(typer.prompt("Select opportunity", default="1"), len(entries))
            chosen = entries[index]
            raw_amount = str(amount) if amount is not None else typer.prompt(
                "Amount in SOL", default=str(thresholds.DEFAULT_TRADE_AMOUNT_SOL)
            )
            size = parse_amount(raw_amount)

            opp = chosen.opportunity
            console.print(Panel.fit(
                f"[bold cyan]{opp.pair_name}[/bold cyan]\n"
                f"Buy on {opp.direction.buy_venue.value}, sell on {opp.direction.sell_venue.value}\n"
                f"Expected {opp.expected_profit_bps:.1f} bps on {size} SOL",
                border_style="cyan",
            ))
            if not yes and not typer.confirm("Execute this trade?", default=False):
                console.print("[yellow]Aborted.[/yellow]")
                return None

            return await pipeline.execute(ArbitrageExecution(opp, size), signer)
        finally:
            await pipeline.close()

    try:
        report = asyncio.run(_run())
    except ArbError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(1)

    if report is None:
        raise typer.Exit(0)
    if report.success:
        console.print(f"[bold green]✅ Confirmed: {report.signature}[/bold green]")
        return
    console.print(f"[bold red]❌ {report.state.value}: {report.error}[/bold red]")
    raise typer.Exit(1)


# ═══════════════════════════════════════════════════════════════════════════════
# COMMAND: CACHE
# ═══════════════════════════════════════════════════════════════════════════════

@app.command()
def cache():
    """Show the cached top-N and its age."""
    from config.settings import Settings
    from solarb.shared.cache.file_store import CacheFileStore

    loaded = CacheFileStore(Settings.CACHE_DIR).load_top_n()
    if loaded is None:
        console.print("[yellow]No cached opportunities.[/yellow]")
        raise typer.Exit(0)

    timestamp_ms, entries = loaded
    age = time.time() - timestamp_ms / 1000
    state = "[green]live[/green]" if age < thresholds.TOP_N_CACHE_TTL_SEC else "[red]expired[/red]"
    console.print(render_opportunities(entries, title=f"Cached Top {len(entries)} ({age:.0f}s old, {state})"))
