"""Click CLI: analyze, classify, networks, quote."""

from __future__ import annotations

import asyncio
import json
import logging

import click

from ledgerlens.config import get_settings
from ledgerlens.errors import LedgerLensError


def _setup_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """LedgerLens - EVM transaction, block and address analysis."""
    _setup_logging()


@cli.command()
@click.argument("value")
@click.option("--chain", default=None, help="Network short name or ID (avalanche, fuji, ethereum, arbitrum, ...)")
@click.option("--json", "as_json", is_flag=True, help="Print the full artifact as JSON")
def analyze(value: str, chain: str | None, as_json: bool):
    """Analyze a transaction hash, block number or address."""
    import pandas as pd

    from ledgerlens.analysis.orchestrator import AnalysisOrchestrator
    from ledgerlens.chain.registry import resolve_network

    try:
        network_id = resolve_network(chain).id if chain else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--chain") from exc
    orchestrator = AnalysisOrchestrator.from_settings()

    try:
        artifact = asyncio.run(orchestrator.analyze(value, network_id=network_id))
    except LedgerLensError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(artifact.to_json(), indent=2))
        return

    click.echo(f"{artifact.network.name} {artifact.kind}: {artifact.explorer_url}")
    if artifact.kind == "transaction":
        summary = artifact.summary
        click.echo(
            f"Status: {summary.status}  Complexity: {summary.complexity_tier}  "
            f"Risk: {summary.risk_tier.value if summary.risk_tier else 'n/a'}"
        )
        if artifact.events:
            df = pd.DataFrame([
                {
                    "kind": e.kind.value,
                    "from": e.from_address,
                    "to": e.to_address,
                    "amount": int(e.amount) / 10 ** e.token.decimals,
                    "token": e.token.symbol,
                }
                for e in artifact.events
            ])
            click.echo("\n--- Transfers ---")
            click.echo(df.to_string(index=False))
        if artifact.protocols:
            click.echo("\n--- Protocols ---")
            for tag in artifact.protocols:
                click.echo(f"  {tag.address}: {tag.protocol_name} ({tag.category.value}, {tag.action})")
        if summary.total_usd is not None:
            click.echo(f"\nTotal value: ${summary.total_usd:,.2f}  Fees: ${summary.fees_usd:,.4f}")
    elif artifact.kind == "block":
        click.echo(
            f"Block {artifact.number}: {artifact.summary.total_transactions} txns, "
            f"{artifact.summary.gas_efficiency_pct:.1f}% gas used, {artifact.summary.block_health}"
        )
    else:
        click.echo(
            f"{artifact.summary.address_type} {artifact.address}: "
            f"{artifact.balance_native:.4f} {artifact.network.native_symbol}, "
            f"{artifact.transaction_count} txns"
        )

    if artifact.incomplete_sections:
        click.echo(f"\nIncomplete sections: {', '.join(artifact.incomplete_sections)}")
    for failure in artifact.endpoint_failures:
        click.echo(f"Endpoint failed: {failure.url} ({failure.reason})")


@cli.command()
@click.argument("value")
def classify(value: str):
    """Show how an input string would be interpreted."""
    from ledgerlens.analysis.inputs import classify_input

    result = classify_input(value)
    if result.valid:
        click.echo(f"{result.kind.value}: {result.normalized}")
    else:
        raise click.ClickException(f"Invalid input: {value!r}")


@cli.command()
def networks():
    """List supported networks."""
    import pandas as pd

    from ledgerlens.chain.registry import all_networks

    df = pd.DataFrame([
        {"id": n.id, "name": n.short_name, "network": n.name, "symbol": n.native_symbol, "explorer": n.explorer_url}
        for n in all_networks()
    ])
    click.echo(df.to_string(index=False))


@cli.command()
@click.argument("symbols", nargs=-1, required=True)
def quote(symbols: tuple[str, ...]):
    """Fetch USD quotes for one or more token symbols."""
    from ledgerlens.analysis.orchestrator import AnalysisOrchestrator

    oracle = AnalysisOrchestrator.from_settings().oracle
    quotes = asyncio.run(oracle.get_quotes(symbols))
    for symbol, q in quotes.items():
        click.echo(f"{symbol}: ${q.usd_price:,.4f} ({q.source}, confidence {q.confidence:.2f})")


if __name__ == "__main__":
    cli()
