"""Typer CLI for Creatorgate."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="creatorgate", help="Creatorgate: subscription entitlements and usage quotas")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Creatorgate API server."""
    import uvicorn
    from creatorgate.app import create_app

    console.print(f"[bold green]Starting Creatorgate on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def limits(
    tier: Optional[str] = typer.Option(None, help="Show a single tier"),
):
    """Print the monthly quota table (offline, no DB required)."""
    from creatorgate.catalog.tiers import FeatureKey, Tier, quota_table

    table_data = quota_table()
    tiers = [Tier.parse(tier)] if tier else list(table_data)

    table = Table(title="Monthly limits")
    table.add_column("Feature")
    for t in tiers:
        table.add_column(t.value, justify="right")
    for feature in FeatureKey:
        cells = []
        for t in tiers:
            limit = table_data[t][feature]
            cells.append(str(limit) if limit else "[dim]—[/dim]")
        table.add_row(feature.value, *cells)
    console.print(table)


async def _usage(user_id: str):
    from creatorgate.deps import get_db, get_subscription_service, get_usage_ledger

    db = get_db()
    await db.init()
    await db.create_all()
    try:
        tier = await get_subscription_service().tier_for(user_id)
        summary = await get_usage_ledger().usage_summary(user_id, tier)
    finally:
        await db.close()
    return tier, summary


@app.command()
def usage(
    user_id: str = typer.Argument(..., help="User id"),
):
    """Show a user's usage for the current period."""
    tier, summary = asyncio.run(_usage(user_id))

    table = Table(title=f"{user_id} ({tier.value})")
    table.add_column("Feature")
    table.add_column("Used", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Resets")
    for u in summary:
        table.add_row(
            u.feature.value,
            str(u.used),
            str(u.limit),
            str(u.remaining),
            u.reset_at.isoformat() if u.reset_at else "",
        )
    console.print(table)


async def _reset(user_id: str) -> None:
    from creatorgate.deps import get_db, get_usage_ledger

    db = get_db()
    await db.init()
    await db.create_all()
    try:
        await get_usage_ledger().reset_all_for_user(user_id)
    finally:
        await db.close()


@app.command()
def reset(
    user_id: str = typer.Argument(..., help="User id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Reset every usage counter for a user and start a new period."""
    if not yes:
        typer.confirm(f"Reset all usage for {user_id}?", abort=True)
    asyncio.run(_reset(user_id))
    console.print(f"[bold green]Usage reset[/bold green] for {user_id}")


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Creatorgate server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
