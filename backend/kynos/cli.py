"""Terminal front end: fuzzy search, prompt resolution and cache control."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional

from loguru import logger

from kynos.client.catalog_client import KynosClient, default_client
from kynos.client.search_session import SearchSession
from kynos.core.errors import KynosError
from kynos.core.settings import settings
from kynos.models.records import ResolvedSelection, SeriesSummary
from kynos.services.search import SearchService
from kynos.services.series import describe_change


def _print_series(body: Dict[str, Any]) -> None:
    summary = SeriesSummary.model_validate(body.get("summary") or {})
    bars = body.get("chartData") or []
    print(f"{body.get('companyName')} ({body.get('ticker')}), last {body.get('days')} days, {len(bars)} bars")
    if summary.first_close is not None:
        print(f"  {summary.first_close:.2f} -> {summary.last_close:.2f}")
    print(f"  {describe_change(summary)}")


def cmd_search(client: KynosClient, args: argparse.Namespace) -> int:
    service = SearchService(client.load_catalog())
    chosen: List[ResolvedSelection] = []
    session = SearchSession(service, on_select=chosen.append, limit=args.limit)
    results = session.on_input(args.query)
    if not results:
        print("No matches.")
        return 1
    for i, line in enumerate(session.render("*", "*")):
        print(f"{i:>2}. {line}")
    if args.pick is None:
        return 0
    if not 0 <= args.pick < len(results):
        print(f"--pick must be between 0 and {len(results) - 1}", file=sys.stderr)
        return 2
    session.select(args.pick)
    print(session.text)
    sel = chosen[-1]
    _print_series(client.stock_series(sel.symbol, sel.name, args.days))
    return 0


def cmd_ask(client: KynosClient, args: argparse.Namespace) -> int:
    _print_series(client.ask(args.prompt))
    return 0


def cmd_chart(client: KynosClient, args: argparse.Namespace) -> int:
    service = SearchService(client.load_catalog())
    name = service.resolve_by_symbol(args.symbol)
    if name is None:
        print(f'Ticker "{args.symbol}" not found in S&P 500 list.', file=sys.stderr)
        return 1
    _print_series(client.stock_series(args.symbol, name, args.days))
    return 0


def cmd_cache(client: KynosClient, args: argparse.Namespace) -> int:
    if args.action == "clear":
        client.cache.invalidate()
        print("Catalog cache cleared.")
    else:
        catalog = client.refresh_catalog()
        print(f"Catalog cache refreshed with {len(catalog)} tickers.")
    return 0


def cmd_serve(_client: Optional[KynosClient], args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("kynos.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="kynos", description="S&P 500 stock charts from the terminal")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("search", help="Fuzzy search tickers and company names")
    s.add_argument("query")
    s.add_argument("--limit", type=int, default=settings.search_result_limit)
    s.add_argument("--pick", type=int, default=None, help="Index of the suggestion to chart")
    s.add_argument("--days", type=int, default=settings.default_days)
    s.set_defaults(func=cmd_search)

    a = sub.add_parser("ask", help="Resolve a free-text request, e.g. 'Microsoft last 90 days'")
    a.add_argument("prompt")
    a.set_defaults(func=cmd_ask)

    c = sub.add_parser("chart", help="Series for a known ticker")
    c.add_argument("symbol")
    c.add_argument("--days", type=int, default=settings.default_days)
    c.set_defaults(func=cmd_chart)

    k = sub.add_parser("cache", help="Manage the local ticker cache")
    k.add_argument("action", choices=["clear", "refresh"])
    k.set_defaults(func=cmd_cache)

    v = sub.add_parser("serve", help="Run the API server")
    v.add_argument("--host", default="127.0.0.1")
    v.add_argument("--port", type=int, default=settings.port)
    v.add_argument("--reload", action="store_true")
    v.set_defaults(func=cmd_serve)
    return p


def main(argv: Optional[List[str]] = None, client: Optional[KynosClient] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command != "serve" and client is None:
        client = default_client()
    try:
        return args.func(client, args)
    except KynosError as e:
        logger.debug(f"{args.command} failed: {e.message}")
        print(e.message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
