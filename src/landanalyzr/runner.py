"""CLI runner for analyzing a file of parcel records.

Run via: python -m landanalyzr.runner parcels.json
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .analysis import ParcelAnalyzer
from .analysis.calculator import resolve_as_of
from .models.metrics import DerivedMetrics
from .models.parcel import ParcelRecord, normalize_parcels

console = Console()

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_parcels(path: Path) -> list[ParcelRecord]:
    """Load a JSON array of parcel records in either naming convention.

    Raises:
        ValueError: If the file does not hold a JSON array.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and isinstance(data.get("plots"), list):
        data = data["plots"]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of parcel records")
    return normalize_parcels(data)


def _fmt(value, template: str = "{}", missing: str = "N/A") -> str:
    return missing if value is None else template.format(value)


def print_summary(parcels: list[ParcelRecord], results: list[DerivedMetrics]) -> None:
    """Print one row per parcel, best score first."""
    by_id = {p.id: p for p in parcels}

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Parcel")
    table.add_column("City")
    table.add_column("Price", justify="right")
    table.add_column("ROI", justify="right")
    table.add_column("True ROI", justify="right")
    table.add_column("Risk")
    table.add_column("Verdict")
    table.add_column("Cheaper Than", justify="right")

    def sort_key(m: DerivedMetrics) -> float:
        return m.score.total if m.score else -1

    for metrics in sorted(results, key=sort_key, reverse=True):
        parcel = by_id[metrics.parcel_id]

        if metrics.score is None:
            score_str = "[dim]N/A[/dim]"
        elif metrics.score.total >= 7:
            score_str = f"[green]{metrics.score.total:.1f}[/green]"
        elif metrics.score.total >= 5:
            score_str = f"[yellow]{metrics.score.total:.1f}[/yellow]"
        else:
            score_str = f"[red]{metrics.score.total:.1f}[/red]"

        waterfall = metrics.waterfall
        psm = metrics.percentiles.price_per_sqm if metrics.percentiles else None

        table.add_row(
            score_str,
            parcel.id,
            parcel.city,
            f"₪{parcel.total_price:,.0f}",
            _fmt(waterfall.headline_roi if waterfall else None, "{}%"),
            _fmt(waterfall.true_roi if waterfall else None, "{}%"),
            metrics.risk.label if metrics.risk else "N/A",
            metrics.verdict.label if metrics.verdict else "N/A",
            _fmt(psm.cheaper_than if psm else None, "{}%"),
        )

    console.print(table)


def print_detail(parcel: ParcelRecord, metrics: DerivedMetrics) -> None:
    """Print the full breakdown for a single parcel."""
    console.print(f"[bold]Parcel {parcel.id}[/bold] {parcel.city}")
    console.print()

    w = metrics.waterfall
    if w is not None:
        table = Table(title="Profit waterfall", show_header=False)
        table.add_column("Item")
        table.add_column("Amount", justify="right")
        table.add_row("Gross profit", f"₪{w.gross_profit:,.0f}")
        table.add_row("Transaction costs", f"-₪{w.transaction_costs:,.0f}")
        table.add_row("Betterment levy", f"-₪{w.betterment_levy:,.0f}")
        table.add_row("Capital gains tax", f"-₪{w.capital_gains_tax:,.0f}")
        table.add_row("[bold]Net profit[/bold]", f"[bold]₪{w.net_profit:,.2f}[/bold]")
        table.add_row("True ROI", _fmt(w.true_roi, "{}%"))
        table.add_row("Total investment", f"₪{w.total_investment:,.0f}")
        console.print(table)

    if metrics.score is not None:
        table = Table(title=f"Score {metrics.score.total}/10 ({metrics.score.grade.grade})")
        table.add_column("Factor")
        table.add_column("Points", justify="right")
        table.add_column("Explanation")
        for factor in metrics.score.factors:
            table.add_row(factor.label, f"{factor.points}/{factor.max_points}", factor.explanation)
        console.print(table)

    if metrics.risk is not None:
        console.print(f"Risk: {metrics.risk.label} ({metrics.risk.risk_points} pts)")
        for factor in metrics.risk.factors:
            console.print(f"  - {factor}")
    if metrics.verdict is not None:
        console.print(f"Verdict: {metrics.verdict.label}: {metrics.verdict.description}")
    if metrics.scenarios:
        console.print("Scenarios:")
        for scenario in metrics.scenarios:
            console.print(
                f"  {scenario.name:<13} ₪{scenario.net_profit:,.0f} ({_fmt(scenario.true_roi, '{}%')})"
            )
    for commute in metrics.commute_times[:3]:
        console.print(f"  {commute.city}: ~{commute.driving_minutes} min ({commute.road_km} km)")
    for badge in metrics.badges:
        console.print(f"[bold cyan]{badge.label}[/bold cyan]")


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="LandAnalyzr Parcel Analyzer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m landanalyzr.runner parcels.json
  python -m landanalyzr.runner parcels.json --id 42
  python -m landanalyzr.runner parcels.json --as-of 2026-01-01 -v
        """,
    )

    parser.add_argument("path", type=Path, help="JSON file with an array of parcel records")
    parser.add_argument("--id", dest="parcel_id", help="Show the full breakdown for one parcel")
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Reference date for day counts (ISO format, default now)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    try:
        parcels = load_parcels(args.path)
    except (OSError, ValueError) as e:
        logger.error(f"Could not load parcels: {e}")
        sys.exit(1)

    if not parcels:
        console.print("[yellow]No valid parcels found.[/yellow]")
        return

    analyzer = ParcelAnalyzer()
    results = analyzer.analyze_batch(parcels, as_of=resolve_as_of(args.as_of))

    if args.parcel_id:
        for parcel, metrics in zip(parcels, results):
            if parcel.id == args.parcel_id:
                print_detail(parcel, metrics)
                return
        console.print(f"[yellow]Parcel {args.parcel_id} not found.[/yellow]")
        sys.exit(1)

    print_summary(parcels, results)


if __name__ == "__main__":
    main()
