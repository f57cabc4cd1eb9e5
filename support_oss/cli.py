"""support-oss command line client

Reads a package.json (or JSON on stdin), posts the dependency list to the
analyze endpoint and renders which dependencies need support.

Usage:
    support-oss analyze [path] [--budget 100] [--json] [--api URL]
    cat package.json | support-oss analyze -
    support-oss import-curated [--corporate FILE] [--ai-disruption FILE]
| support-oss analyze -
"""

import argparse
import json
import math
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from rich.console import Console

from support_oss.config import settings
from support_oss.services.curated import run_curated_import

console = Console()

CATEGORY_STYLES = {
    "critical": "red",
    "needs-support": "yellow",
    "stable": "blue",
    "thriving": "green",
    "corporate": "magenta",
}

CATEGORY_LABELS = {
    "critical": "CRITICAL",
    "needs-support": "NEEDS SUPPORT",
    "stable": "STABLE",
    "thriving": "THRIVING",
    "corporate": "CORPORATE",
}

MAX_NEEDS_SUPPORT_ROWS = 10
MAX_ALLOCATION_ROWS = 5


def parse_dependencies(content: str) -> Optional[Dict[str, str]]:
    """
    Extract a name -> range mapping from JSON text.

    Accepts a package.json (dependencies merged with devDependencies) or a
    bare {name: range} object. Returns None when nothing usable is found.
    """
    try:
        parsed = json.loads(content)
    except ValueError:
        return None

    if not isinstance(parsed, dict):
        return None

    if "dependencies" in parsed or "devDependencies" in parsed:
        dependencies = parsed.get("dependencies") or {}
        dev_dependencies = parsed.get("devDependencies") or {}
        if not isinstance(dependencies, dict) or not isinstance(dev_dependencies, dict):
            return None
        return {**dependencies, **dev_dependencies}

    if all(isinstance(v, str) for v in parsed.values()):
        return parsed
    return None


def read_dependencies(path: Optional[str]) -> Optional[Dict[str, str]]:
    """Read dependencies from a file, "-" for stdin, default ./package.json"""
    if path == "-":
        return parse_dependencies(sys.stdin.read())

    target = Path(path) if path else Path.cwd() / "package.json"
    if not target.exists():
        return None
    return parse_dependencies(target.read_text(encoding="utf-8"))


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = "$" if currency == "USD" else f"{currency} "
    return f"{symbol}{amount:,.2f}"


def format_number(num: int) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def request_analysis(api_url: str, dependencies: Dict[str, str], budget: float) -> Dict[str, Any]:
    """
    POST the dependency list to the analyze endpoint.

    Raises:
        httpx.HTTPError: On network failures or non-2xx responses
    """
    response = httpx.post(
        f"{api_url.rstrip('/')}/v1/analyze",
        json={"dependencies": dependencies, "budget": budget},
        timeout=30.0,
    )
    response.raise_for_status()
    return response.json()


def render_report(data: Dict[str, Any], api_url: str) -> None:
    """Print the analysis as a colored terminal report"""
    summary = data["summary"]
    currency = data.get("currency", "USD")
    rule = "─" * 40

    console.print()
    console.print("[bold]  Support-OSS Dependency Analysis[/bold]")
    console.print(f"[dim]  {rule}[/dim]")
    console.print()

    console.print("[bold]  Summary[/bold]")
    console.print(f"    Total packages:    [cyan]{summary['total']}[/cyan]")
    console.print(f"    In database:       [cyan]{summary['found']}[/cyan]")
    console.print(f"    Unknown:           [dim]{summary['not_found']}[/dim]")
    console.print(f"    Monthly budget:    [green]{format_currency(data['budget'], currency)}[/green]")
    console.print()

    console.print("[bold]  Health Breakdown[/bold]")
    for category, count in summary["by_category"].items():
        if count > 0:
            style = CATEGORY_STYLES.get(category, "dim")
            label = CATEGORY_LABELS.get(category, category.upper())
            console.print(f"    [{style}]●[/{style}] {label:<14} {count}")
    console.print()

    needs_support = [
        p for p in data["packages"] if p["found"] and p["category"] in ("critical", "needs-support")
    ]
    if needs_support:
        console.print("[bold]  Packages Needing Support[/bold]")
        for pkg in needs_support[:MAX_NEEDS_SUPPORT_ROWS]:
            style = CATEGORY_STYLES[pkg["category"]]
            downloads = (pkg.get("signals") or {}).get("weekly_downloads")
            downloads_text = f" · {format_number(downloads)}/wk" if downloads else ""
            console.print(
                f"    [{style}]●[/{style}] {pkg['name']} [dim]score: {pkg['score']}{downloads_text}[/dim]",
                highlight=False,
            )
            if pkg.get("funding_sources"):
                platforms = ", ".join(source["platform"] for source in pkg["funding_sources"])
                console.print(f"[dim]      Fund via: {platforms}[/dim]")
        console.print()

    with_allocation = [
        p for p in data["packages"] if p.get("allocation") and p["allocation"]["suggested_amount"] > 0
    ]
    if with_allocation:
        console.print("[bold]  Suggested Allocation[/bold]")
        for pkg in with_allocation[:MAX_ALLOCATION_ROWS]:
            allocation = pkg["allocation"]
            amount = format_currency(allocation["suggested_amount"], currency)
            console.print(
                f"    {pkg['name']:<20} [green]{amount}[/green] [dim]({allocation['percentage']:.1f}%)[/dim]",
                highlight=False,
            )
        if len(with_allocation) > MAX_ALLOCATION_ROWS:
            console.print(f"[dim]    ... and {len(with_allocation) - MAX_ALLOCATION_ROWS} more[/dim]")
        console.print()

    console.print(f"[dim]  {rule}[/dim]")
    console.print(f"[dim]  API: {api_url}[/dim]")
    console.print()


def analyze_command(args: argparse.Namespace) -> int:
    dependencies = read_dependencies(args.path)
    if not dependencies:
        console.print("[red]No dependencies found[/red]")
        console.print("[dim]Make sure you have a package.json in the current directory[/dim]")
        console.print("[dim]or pipe dependencies via stdin:  cat package.json | support-oss analyze -[/dim]")
        return 1

    try:
        with console.status(f"Analyzing {len(dependencies)} dependencies..."):
            data = request_analysis(args.api, dependencies, args.budget)
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("detail", e.response.reason_phrase)
        except ValueError:
            detail = e.response.reason_phrase
        console.print(f"[red]Analysis failed: {detail}[/red]")
        return 1
    except httpx.HTTPError:
        console.print("[red]Failed to connect to API[/red]")
        console.print(f"[dim]Could not reach {args.api}[/dim]")
        return 1

    if args.json:
        print(json.dumps(data, indent=2))
        return 0

    render_report(data, args.api)
    return 0


def import_curated_command(args: argparse.Namespace) -> int:
    if not args.corporate and not args.ai_disruption:
        console.print("[red]Nothing to import[/red]")
        console.print("[dim]Pass --corporate and/or --ai-disruption with a curated JSON file[/dim]")
        return 1

    try:
        result = run_curated_import(
            Path(args.corporate) if args.corporate else None,
            Path(args.ai_disruption) if args.ai_disruption else None,
        )
    except (OSError, ValueError) as e:
        console.print(f"[red]Import failed: {e}[/red]")
        return 1

    console.print(f"Corporate backing: [cyan]{result.corporate}[/cyan] packages updated")
    console.print(f"AI disruption: [cyan]{result.ai_disruption}[/cyan] packages flagged")
    return 0


def positive_float(value: str) -> float:
    amount = float(value)
    if not math.isfinite(amount) or amount <= 0:
        raise argparse.ArgumentTypeError("budget must be a positive number")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="support-oss",
        description="Analyze your dependencies and find open source projects that need support",
    )
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze", help="Analyze dependencies from package.json")
    analyze.add_argument("path", nargs="?", help='Path to package.json, or "-" for stdin (default: ./package.json)')
    analyze.add_argument("-b", "--budget", type=positive_float, default=settings.default_budget, help="Monthly budget")
    analyze.add_argument("--json", action="store_true", help="Output as JSON (for CI integration)")
    analyze.add_argument("--api", default=settings.api_url, help="API URL")
    analyze.set_defaults(func=analyze_command)

    curated = subparsers.add_parser("import-curated", help="Import corporate backing and AI disruption flags")
    curated.add_argument("--corporate", help='Corporate backing JSON ({"packages": [{"name", "company"}]})')
    curated.add_argument(
        "--ai-disruption",
        help='AI disruption JSON ({"packages": [{"name", "disruptionType", "note"}]})',
    )
    curated.set_defaults(func=import_curated_command)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
