"""CLI and main logic."""

import argparse
import os
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from livepeer_delegator.analytics import FILTER_MODES, FILTER_WORKING
from livepeer_delegator.console import (
    TABS,
    print_compare,
    print_dashboard,
    print_earnings,
    print_header,
    print_history,
)
from livepeer_delegator.constants import (
    DEFAULT_SHARE_BASE_URL,
    DEFAULT_SORT_COLUMN,
    ENS_SUBGRAPH_ID_ENV,
    ENS_SUBGRAPH_ID_MAINNET,
    GRAPH_API_KEY_ENV,
    LIVEPEER_SUBGRAPH_ID_ARBITRUM,
    LIVEPEER_SUBGRAPH_ID_ENV,
    ORCHESTRATOR_SORT_COLUMNS,
)
from livepeer_delegator.ens import ENSResolver
from livepeer_delegator.errors import DashboardError, InputValidationError
from livepeer_delegator.session import DashboardSession, address_from_url, share_url
from livepeer_delegator.subgraph import SubgraphClient, build_gateway_url
from livepeer_delegator.validation import (
    validate_claims,
    validate_cumulative_series,
    validate_profile,
    validate_timeline_order,
)

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30
ENRICHMENT_TIMEOUT = 60
NAME_GRACE_TIMEOUT = 2


def _decimal_arg(value: str) -> Decimal:
    try:
        d = Decimal(value)
    except InvalidOperation as ex:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from ex
    if not d.is_finite() or d < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative number: {value!r}")
    return d


def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return n


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        description="Earnings, claim history and orchestrator comparison for a Livepeer delegator."
    )
    p.add_argument("subject", nargs="?", default=None, help="Delegator address (0x...) or ENS name (.eth).")
    p.add_argument(
        "--from-url",
        default=None,
        help="Read the delegator address from a share URL (?address=0x...).",
    )
    p.add_argument(
        "--api-key",
        default=None,
        help=f"The Graph gateway API key. Required if {GRAPH_API_KEY_ENV} is not set (unless --subgraph-url is given).",
    )
    p.add_argument(
        "--subgraph-id",
        default=None,
        help=f"Livepeer subgraph ID. Default: ${LIVEPEER_SUBGRAPH_ID_ENV} or the Arbitrum deployment.",
    )
    p.add_argument(
        "--ens-subgraph-id",
        default=None,
        help=f"ENS subgraph ID. Default: ${ENS_SUBGRAPH_ID_ENV} or the mainnet deployment.",
    )
    p.add_argument("--subgraph-url", default=None, help="Full Livepeer subgraph URL (overrides key/ID).")
    p.add_argument("--ens-subgraph-url", default=None, help="Full ENS subgraph URL (overrides key/ID).")
    p.add_argument(
        "--tab",
        choices=TABS,
        default=None,
        help="Show only one view. Default: dashboard, earnings and history (plus compare with --compare).",
    )
    p.add_argument("--compare", action="store_true", help="Load and show the orchestrator leaderboard.")
    p.add_argument("--filter", choices=FILTER_MODES, default=FILTER_WORKING, help="Leaderboard filter.")
    p.add_argument("--sort-by", choices=ORCHESTRATOR_SORT_COLUMNS, default=DEFAULT_SORT_COLUMN)
    p.add_argument("--ascending", action="store_true", help="Sort the leaderboard ascending.")
    p.add_argument(
        "--stake",
        type=_decimal_arg,
        default=None,
        help="LPT amount for yield projections. Default: the delegator's bonded amount.",
    )
    p.add_argument("--limit", type=_positive_int, default=None, help="Show at most N leaderboard rows.")
    p.add_argument("--export-csv", type=Path, default=None, help="Write the leaderboard to a CSV file.")
    p.add_argument(
        "--html",
        action="store_true",
        help="Generate an HTML dashboard and serve it locally, opening the default browser.",
    )
    p.add_argument("--no-enrich", action="store_true", help="Skip ENS names and fee trend sparklines.")
    p.add_argument("--share-base", default=DEFAULT_SHARE_BASE_URL, help="Base URL for the printed share link.")
    return p.parse_args(argv)


def _subgraph_url(explicit_url: str | None, api_key: str | None, subgraph_id: str) -> str | None:
    if explicit_url:
        return explicit_url
    if not api_key:
        return None
    return build_gateway_url(api_key, subgraph_id)


def _report_issues(title: str, issues: list[str]) -> None:
    if issues:
        print(f"⚠️  {title}:", file=sys.stderr)
        for issue in issues:
            print(f"   {issue}", file=sys.stderr)


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)

    raw_subject = args.subject
    if args.from_url:
        raw_subject = address_from_url(args.from_url)
        if not raw_subject:
            print(f"Error: no address parameter in {args.from_url}", file=sys.stderr)
            return 2
    if not raw_subject:
        print("Error: a delegator address or ENS name is required (or --from-url).", file=sys.stderr)
        return 2

    api_key = args.api_key or os.getenv(GRAPH_API_KEY_ENV)
    livepeer_url = _subgraph_url(
        args.subgraph_url,
        api_key,
        args.subgraph_id or os.getenv(LIVEPEER_SUBGRAPH_ID_ENV) or LIVEPEER_SUBGRAPH_ID_ARBITRUM,
    )
    if not livepeer_url:
        print(
            f"Error: API key is required. Provide --api-key or set {GRAPH_API_KEY_ENV} environment variable.",
            file=sys.stderr,
        )
        return 2
    ens_url = _subgraph_url(
        args.ens_subgraph_url,
        api_key,
        args.ens_subgraph_id or os.getenv(ENS_SUBGRAPH_ID_ENV) or ENS_SUBGRAPH_ID_MAINNET,
    )

    client = SubgraphClient(livepeer_url, timeout_s=DEFAULT_TIMEOUT)
    ens_client = SubgraphClient(ens_url, timeout_s=DEFAULT_TIMEOUT) if ens_url else None
    ens = ENSResolver(ens_client) if ens_client is not None else None

    try:
        with DashboardSession(client, ens, show_progress=sys.stderr.isatty()) as session:
            return _run(args, session, raw_subject)
    finally:
        client.close()
        if ens_client is not None:
            ens_client.close()


def _run(args: argparse.Namespace, session: DashboardSession, raw_subject: str) -> int:
    print(f"ℹ️ Looking up {raw_subject.strip()}...", file=sys.stderr)
    try:
        dashboard = session.lookup(raw_subject)
    except InputValidationError as ex:
        print(f"Error: {ex.user_message}", file=sys.stderr)
        return 2
    except DashboardError as ex:
        print(f"Error: {ex.user_message}", file=sys.stderr)
        if str(ex) != ex.user_message:
            print(f"   ({ex})", file=sys.stderr)
        return 1
    if dashboard is None:
        return 1
    print(
        f"✅ Loaded {dashboard.summary.claims_count} claims and {len(dashboard.timeline)} events",
        file=sys.stderr,
    )

    _report_issues("Profile warnings", validate_profile(dashboard.profile))
    _report_issues("Claim warnings", validate_claims(dashboard.claims))
    _report_issues("Cumulative series warnings", validate_cumulative_series(dashboard.cumulative))
    _report_issues("Timeline warnings", validate_timeline_order(dashboard.timeline))

    enrich = not args.no_enrich
    delegate = dashboard.profile.delegate
    if enrich and delegate is not None:
        session.enrich_names([delegate.address])

    want_compare = args.compare or args.tab == "compare" or args.export_csv is not None
    board = None
    stake = args.stake if args.stake is not None else dashboard.profile.bonded_amount
    if want_compare:
        try:
            network = session.network()
        except DashboardError as ex:
            print(f"Error: {ex.user_message}", file=sys.stderr)
            print(f"   ({ex})", file=sys.stderr)
            return 1
        if enrich:
            addresses = [o.address for o in network.orchestrators]
            session.enrich_names(addresses)
            session.enrich_trends(addresses)
        if enrich and not session.wait_for_enrichment(ENRICHMENT_TIMEOUT):
            print("⚠️  Enrichment still running; continuing without it.", file=sys.stderr)
        board = session.leaderboard(
            filter_mode=args.filter,
            sort_column=args.sort_by,
            descending=not args.ascending,
        )
    elif enrich:
        # Names are cosmetic here; render with whatever arrived within the grace period.
        session.wait_for_enrichment(NAME_GRACE_TIMEOUT)

    if args.export_csv is not None and board is not None:
        # Lazy import: export is only needed with --export-csv.
        from livepeer_delegator.export import export_leaderboard_csv

        count = export_leaderboard_csv(board, stake, args.export_csv)
        print(f"✅ Wrote {count} rows to {args.export_csv}", file=sys.stderr)

    link = share_url(dashboard.address, args.share_base)

    # HTML mode: generate and serve
    if args.html:
        # Lazy import: HTML reporting is an optional, heavier feature.
        from livepeer_delegator.export import leaderboard_csv
        from livepeer_delegator.html_report import (
            LEADERBOARD_CSV_PATH,
            generate_html_report,
            serve_html_and_open_browser,
        )

        csv_content = leaderboard_csv(board, stake) if board is not None else None
        html_content = generate_html_report(
            dashboard,
            board=board,
            stake=stake,
            names=session.names,
            trends=session.trends,
            share_link=link,
            csv_href=LEADERBOARD_CSV_PATH if csv_content is not None else None,
        )
        serve_html_and_open_browser(html_content, csv_content=csv_content, address=dashboard.address)
        return 0

    names = session.names
    print_header(dashboard)
    tabs = [args.tab] if args.tab else ["dash", "earn", "hist"] + (["compare"] if board is not None else [])
    for tab in tabs:
        if tab == "dash":
            print_dashboard(dashboard, names)
        elif tab == "earn":
            print_earnings(dashboard)
        elif tab == "hist":
            print_history(dashboard, names)
        elif tab == "compare" and board is not None:
            total = len(session.network().orchestrators)
            print_compare(board, stake=stake, total_count=total, trends=session.trends, limit=args.limit)

    print(f"\n🔗 Share: {link}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
