"""HTML report generation."""

import html
import http.server
import socketserver
import sys
import webbrowser
from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from urllib.parse import urlsplit

from livepeer_delegator.analytics import FILTER_WORKING, claim_breakdown, projected_stake_yield
from livepeer_delegator.constants import ARBISCAN_BASE, LIVEPEER_EXPLORER_BASE
from livepeer_delegator.formatters import (
    NO_DATA,
    checksum_address,
    display_name,
    format_date,
    format_eth,
    format_lpt,
    format_month,
    format_number,
    format_optional,
    format_pct,
    format_scaled_fraction,
)
from livepeer_delegator.models import DelegatorDashboard, Leaderboard
from livepeer_delegator.session import share_url

LEADERBOARD_CSV_PATH = "/leaderboard.csv"

# HTML Template
_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Livepeer Delegator Dashboard</title>
    <link rel="preconnect" href="https://fonts.googleapis.com">
    <link rel="preconnect" href="https://fonts.gstatic.com" crossorigin>
    <link href="https://fonts.googleapis.com/css2?family=DM+Sans:wght@400;600;800&family=Space+Mono:wght@400;700&display=swap" rel="stylesheet">
    <style>
        :root {
            --bg-primary: #06060e;
            --bg-card: rgba(255, 255, 255, 0.02);
            --accent-green: #00e88c;
            --accent-blue: #64a0ff;
            --accent-purple: #c77dff;
            --accent-orange: #ffb84d;
            --accent-red: #ff5c5c;
            --text-primary: #ffffff;
            --text-secondary: rgba(255, 255, 255, 0.5);
            --text-muted: rgba(255, 255, 255, 0.25);
            --border-color: rgba(255, 255, 255, 0.06);
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: 'DM Sans', 'Segoe UI', system-ui, sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            line-height: 1.6;
        }
        .container { max-width: 960px; margin: 0 auto; padding: 2rem 1.25rem; }
        header { text-align: center; margin-bottom: 2rem; }
        header h1 {
            font-size: 1.8rem;
            font-weight: 800;
            background: linear-gradient(135deg, var(--accent-green), var(--accent-blue), var(--accent-purple));
            -webkit-background-clip: text;
            -webkit-text-fill-color: transparent;
            background-clip: text;
        }
        header .subject { font-family: 'Space Mono', monospace; color: var(--text-secondary); font-size: 0.85rem; }
        section {
            background: var(--bg-card);
            border: 1px solid var(--border-color);
            border-radius: 16px;
            padding: 1.25rem 1.5rem;
            margin-bottom: 1.5rem;
        }
        section h2 {
            font-size: 0.7rem;
            color: var(--text-muted);
            text-transform: uppercase;
            letter-spacing: 0.1em;
            margin-bottom: 1rem;
        }
        .metrics-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 1rem; }
        .metric-box .label { font-size: 0.65rem; color: var(--text-muted); text-transform: uppercase; letter-spacing: 0.1em; }
        .metric-box .value { font-family: 'Space Mono', monospace; font-size: 1.3rem; font-weight: 700; color: var(--accent-green); }
        .metric-box .value.eth { color: var(--accent-purple); }
        .metric-box .sub { font-size: 0.65rem; color: var(--text-muted); }
        table { width: 100%; border-collapse: collapse; font-family: 'Space Mono', monospace; font-size: 0.72rem; }
        th { text-align: right; color: var(--text-muted); font-weight: 600; text-transform: uppercase; font-size: 0.6rem; padding: 0.5rem; }
        td { text-align: right; padding: 0.5rem; border-bottom: 1px solid rgba(255, 255, 255, 0.025); color: var(--text-secondary); }
        th:first-child, td:first-child, td.left, th.left { text-align: left; }
        tr.current { background: rgba(0, 232, 140, 0.06); }
        .tag { font-size: 0.55rem; font-weight: 700; padding: 2px 6px; border-radius: 4px; text-transform: uppercase; }
        .tag.yours { color: var(--accent-green); background: rgba(0, 232, 140, 0.15); }
        .tag.idle { color: var(--text-muted); }
        .evt { font-weight: 700; }
        .evt.bond { color: var(--accent-green); }
        .evt.claim { color: var(--accent-blue); }
        .evt.unbond, .evt.withdraw { color: var(--accent-red); }
        .evt.rebond { color: var(--accent-orange); }
        .evt.redelegate, .evt.withdrawFees { color: var(--accent-purple); }
        .note { font-size: 0.7rem; color: var(--text-muted); margin-top: 0.75rem; }
        a { color: var(--accent-blue); text-decoration: none; }
        footer { text-align: center; font-size: 0.7rem; color: var(--text-muted); padding: 1rem 0; }
    </style>
</head>
<body>
<div class="container">
<!--CONTENT_PLACEHOLDER-->
</div>
</body>
</html>
"""

_HTML_CONTENT_PLACEHOLDER = "<!--CONTENT_PLACEHOLDER-->"


def link_address(address: str, text: str | None = None) -> str:
    """Generate an Arbiscan link for an address."""
    if text is None:
        text = address
    url = f"{ARBISCAN_BASE}/address/{checksum_address(address)}"
    return f'<a href="{url}" target="_blank" rel="noopener noreferrer">{html.escape(text)}</a>'


def link_orchestrator(address: str, text: str | None = None) -> str:
    """Generate a Livepeer Explorer link for an orchestrator."""
    if text is None:
        text = address
    url = f"{LIVEPEER_EXPLORER_BASE}/accounts/{address}/orchestrating"
    return f'<a href="{url}" target="_blank" rel="noopener noreferrer">{html.escape(text)}</a>'


def svg_sparkline(
    values: Sequence[Decimal | int | float],
    *,
    width: int = 120,
    height: int = 24,
    color: str = "#64a0ff",
) -> str:
    """Inline SVG polyline for a series; empty string for fewer than two points."""
    if len(values) < 2:
        return ""
    nums = [float(v) for v in values]
    lo, hi = min(nums), max(nums)
    span = (hi - lo) or 1.0
    step = width / (len(nums) - 1)
    points = " ".join(f"{i * step:.1f},{height - (v - lo) / span * height:.1f}" for i, v in enumerate(nums))
    return (
        f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" preserveAspectRatio="none">'
        f'<polyline fill="none" stroke="{color}" stroke-width="1.5" points="{points}"/></svg>'
    )


def _metric(label: str, value: str, sub: str = "", css: str = "") -> str:
    sub_html = f'<div class="sub">{html.escape(sub)}</div>' if sub else ""
    return (
        f'<div class="metric-box"><div class="label">{html.escape(label)}</div>'
        f'<div class="value {css}">{html.escape(value)}</div>{sub_html}</div>'
    )


def generate_overview_section(dashboard: DelegatorDashboard, names: dict[str, str]) -> str:
    """Stat cards, current orchestrator and cumulative growth."""
    s = dashboard.summary
    p = dashboard.profile
    parts = [
        "<section><h2>Overview</h2><div class=\"metrics-grid\">",
        _metric("Bonded Amount", format_lpt(s.bonded_amount)),
        _metric(
            "Lifetime LPT Earned",
            format_lpt(s.lifetime_earned_lpt),
            f"{s.claims_count} claims across {s.total_rounds_covered} rounds",
        ),
        _metric(
            "Lifetime ETH Earned",
            format_eth(s.lifetime_earned_eth),
            f"{format_number(p.withdrawn_fees, 6)} withdrawn",
            "eth",
        ),
        _metric("Reward ROI", format_pct(s.reward_roi, decimals=0)),
        _metric("Avg LPT / Round", format_optional(s.avg_per_round)),
        "</div></section>",
    ]

    d = p.delegate
    if d is not None:
        parts.append(
            f"""<section><h2>Current Orchestrator</h2>
            <p>{link_orchestrator(d.address, display_name(d.address, names))} • {"Active" if d.active else "Inactive"}</p>
            <div class="metrics-grid">
                {_metric("Reward Cut", format_scaled_fraction(d.reward_cut))}
                {_metric("Fee Share", format_scaled_fraction(d.fee_share))}
                {_metric("Total Stake", format_lpt(d.total_stake))}
                {_metric("30d Fees", format_eth(d.thirty_day_volume_eth, decimals=4), css="eth")}
            </div></section>"""
        )

    if dashboard.cumulative:
        first, last = dashboard.cumulative[0], dashboard.cumulative[-1]
        parts.append(
            f"""<section><h2>Cumulative Growth</h2>
            <p>LPT {svg_sparkline([pt.lpt for pt in dashboard.cumulative], width=600, height=80, color="#00e88c")}</p>
            <p>ETH {svg_sparkline([pt.eth for pt in dashboard.cumulative], width=600, height=80, color="#c77dff")}</p>
            <div class="note">{html.escape(format_month(first.timestamp))} → {html.escape(format_month(last.timestamp))}</div>
            </section>"""
        )
    return "\n".join(parts)


def generate_earnings_section(dashboard: DelegatorDashboard) -> str:
    """Claim history table, newest first."""
    rows: list[str] = []
    for b in reversed(claim_breakdown(dashboard.claims)):
        c = b.claim
        rows.append(
            f"<tr><td>{html.escape(c.round_range)}</td><td>+{format_number(c.reward_tokens)}</td>"
            f"<td>{format_number(b.lpt_per_round)}</td><td>+{format_number(c.fees, 5)}</td>"
            f"<td>{format_number(b.eth_per_round, 6)}</td><td>{html.escape(format_date(c.timestamp))}</td></tr>"
        )
    if not rows:
        rows.append('<tr><td colspan="6">No earnings claims yet.</td></tr>')
    return f"""<section><h2>Claim History — {len(dashboard.claims)} claims</h2>
    <table><thead><tr><th>Rounds</th><th>LPT Earned</th><th>LPT/Round</th><th>ETH Fees</th><th>ETH/Round</th><th>Date</th></tr></thead>
    <tbody>{"".join(rows)}</tbody></table></section>"""


def generate_history_section(dashboard: DelegatorDashboard) -> str:
    """Event timeline, newest first."""
    rows: list[str] = []
    for e in reversed(dashboard.timeline):
        rows.append(
            f'<tr><td class="left"><span class="evt {e.kind.value}">{html.escape(e.kind.value)}</span></td>'
            f'<td class="left">{html.escape(e.description)}</td><td>{html.escape(e.display_value)}</td>'
            f"<td>{e.round or NO_DATA}</td><td>{html.escape(format_date(e.timestamp))}</td></tr>"
        )
    if not rows:
        rows.append('<tr><td colspan="5">No events recorded.</td></tr>')
    return f"""<section><h2>Event Timeline — {len(dashboard.timeline)} events</h2>
    <table><thead><tr><th class="left">Type</th><th class="left">Event</th><th>Value</th><th>Round</th><th>Date</th></tr></thead>
    <tbody>{"".join(rows)}</tbody></table></section>"""


def generate_compare_section(
    board: Leaderboard,
    *,
    stake: Decimal | None = None,
    trends: dict[str, list[Decimal]] | None = None,
    csv_href: str | None = None,
) -> str:
    """Orchestrator leaderboard."""
    show_stake = stake is not None and stake > 0
    label = "working" if board.filter_mode == FILTER_WORKING else "active"
    headers = ["#", "Orchestrator", "Reward APY", "30d ETH Fees", "ETH/LPT/yr", "Reward Cut", "Fee Share", "Total Stake", "30d Trend"]
    if show_stake:
        headers += ["Est. LPT/yr", "Est. ETH/yr"]
    head_html = "".join(f"<th>{html.escape(h)}</th>" for h in headers)

    rows: list[str] = []
    for rank, o in enumerate(board.rows, start=1):
        is_current = o.address == board.current_orchestrator
        tags = ' <span class="tag yours">yours</span>' if is_current else ""
        if not o.is_working:
            tags += ' <span class="tag idle">idle</span>'
        cells = [
            str(rank),
            f'<td class="left">{link_orchestrator(o.address, display_name(o.address, board.names))}{tags}</td>',
            format_pct(o.reward_apy),
            format_number(o.eth_30d, 4) if o.eth_30d > 0 else "0",
            f"{o.eth_yield_per_lpt:.6f}" if o.eth_yield_per_lpt > 0 else NO_DATA,
            format_scaled_fraction(o.reward_cut),
            format_scaled_fraction(o.fee_share),
            format_number(o.stake, 0),
            svg_sparkline((trends or {}).get(o.address, []), width=80, height=18),
        ]
        if show_stake:
            est_lpt, est_eth = projected_stake_yield(o, stake)
            cells += [format_number(est_lpt), f"{est_eth:.6f}" if est_eth > 0 else NO_DATA]
        row_html = "".join(c if c.startswith("<td") else f"<td>{c}</td>" for c in cells)
        rows.append(f'<tr class="{"current" if is_current else ""}">{row_html}</tr>')

    rank_note = ""
    if board.current_rank > 0:
        rank_note = f"<p>Your orchestrator: Rank #{board.current_rank} of {len(board.rows)} {label}</p>"
    download = f' <a href="{html.escape(csv_href)}" download>Download CSV</a>' if csv_href else ""
    return f"""<section><h2>Orchestrator Leaderboard — {len(board.rows)} orchestrators</h2>
    {rank_note}
    <table><thead><tr>{head_html}</tr></thead><tbody>{"".join(rows)}</tbody></table>
    <div class="note">Reward APY assumes one round per day; ETH yield annualizes the last 30 days of fees.{download}</div>
    </section>"""


def generate_html_report(
    dashboard: DelegatorDashboard,
    *,
    board: Leaderboard | None = None,
    stake: Decimal | None = None,
    names: dict[str, str] | None = None,
    trends: dict[str, list[Decimal]] | None = None,
    share_link: str | None = None,
    csv_href: str | None = None,
) -> str:
    """Generate a complete HTML dashboard for one delegator."""
    names = names or {}
    subject = dashboard.ens_name or display_name(dashboard.address, names)
    parts = [
        f"""<header>
        <h1>Livepeer Delegator Dashboard</h1>
        <div class="subject">{html.escape(subject)} • {link_address(dashboard.address)}</div>
        </header>""",
        generate_overview_section(dashboard, names),
        generate_earnings_section(dashboard),
        generate_history_section(dashboard),
    ]
    if board is not None:
        parts.append(generate_compare_section(board, stake=stake, trends=trends, csv_href=csv_href))

    share_html = f' • <a href="{html.escape(share_link)}">Share link</a>' if share_link else ""
    parts.append(
        f"""<footer>Data from the Livepeer subgraph via <a href="https://thegraph.com" target="_blank">The Graph</a>{share_html}</footer>"""
    )
    return _HTML_TEMPLATE.replace(_HTML_CONTENT_PLACEHOLDER, "\n".join(parts))


def dashboard_pages(html_content: str, csv_content: str | None = None) -> dict[str, tuple[str, bytes]]:
    """Routes served for one report: the page itself and, with a leaderboard, its CSV."""
    pages = {"/": ("text/html; charset=utf-8", html_content.encode("utf-8"))}
    if csv_content is not None:
        pages[LEADERBOARD_CSV_PATH] = ("text/csv; charset=utf-8", csv_content.encode("utf-8"))
    return pages


def build_dashboard_server(pages: dict[str, tuple[str, bytes]], port: int = 0) -> socketserver.TCPServer:
    """Bind (but do not start) a loopback server answering GET for `pages`; anything else is a 404."""

    class DashboardHandler(http.server.BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            path = urlsplit(self.path).path
            page = pages.get(path)
            if page is None:
                self.send_error(404, f"No such page: {path}")
                return
            content_type, body = page
            self.send_response(200)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            if path == LEADERBOARD_CSV_PATH:
                self.send_header("Content-Disposition", 'attachment; filename="leaderboard.csv"')
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, fmt: str, *args: Any) -> None:
            pass

    return socketserver.TCPServer(("127.0.0.1", port), DashboardHandler)


def serve_html_and_open_browser(
    html_content: str,
    *,
    csv_content: str | None = None,
    address: str | None = None,
    port: int = 0,
) -> None:
    """Serve the report locally until Ctrl+C, opening the browser at the subject's share URL."""
    with build_dashboard_server(dashboard_pages(html_content, csv_content), port) as httpd:
        base = f"http://127.0.0.1:{httpd.server_address[1]}/"
        url = share_url(address, base) if address else base

        print(f"\n🌐 Serving dashboard at: {url}", file=sys.stderr)
        if csv_content is not None:
            print(f"   Leaderboard CSV: {base.rstrip('/')}{LEADERBOARD_CSV_PATH}", file=sys.stderr)
        print("   Press Ctrl+C to stop the server.", file=sys.stderr)

        # The socket is already listening, so the browser's request just queues.
        webbrowser.open(url)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\n\n🛑 Server stopped.", file=sys.stderr)
