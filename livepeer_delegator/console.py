"""Console output formatting."""

from decimal import Decimal

from livepeer_delegator.analytics import FILTER_WORKING, claim_breakdown, projected_stake_yield
from livepeer_delegator.formatters import (
    NO_DATA,
    display_name,
    event_marker,
    fmt_addr,
    format_date,
    format_eth,
    format_lpt,
    format_month,
    format_number,
    format_optional,
    format_pct,
    format_scaled_fraction,
    sparkline,
)
from livepeer_delegator.models import DelegatorDashboard, Leaderboard

TABS = ("dash", "earn", "hist", "compare")


def print_header(dashboard: DelegatorDashboard) -> None:
    """Print the banner for the current subject."""
    print("=" * 70)
    print("🎥 LIVEPEER DELEGATOR DASHBOARD")
    subject = dashboard.address
    if dashboard.ens_name:
        subject = f"{dashboard.ens_name} ({dashboard.address})"
    print(f"   👛 {subject}")
    print("=" * 70)


def print_dashboard(dashboard: DelegatorDashboard, names: dict[str, str] | None = None) -> None:
    """Overview: stake, lifetime earnings, ROI, current orchestrator, growth."""
    s = dashboard.summary
    p = dashboard.profile

    print("\n📊 OVERVIEW")
    print("   " + "─" * 50)
    print(f"   💰 Bonded Amount:        {format_lpt(s.bonded_amount)}")
    print(f"   🌱 Lifetime LPT Earned:  {format_lpt(s.lifetime_earned_lpt)}")
    print(f"      • {s.claims_count} claims across {s.total_rounds_covered} rounds")
    print(f"   💎 Lifetime ETH Earned:  {format_eth(s.lifetime_earned_eth)}")
    print(f"      • Accrued (profile): {format_eth(p.fees)}  •  withdrawn: {format_eth(p.withdrawn_fees)}")
    print(f"   📈 Reward ROI:           {format_pct(s.reward_roi, decimals=0)}")
    print(f"      • Principal (bonded - earned): {format_lpt(s.principal)}")
    print(f"   ⏱️  Avg LPT / Round:      {format_optional(s.avg_per_round)}")
    print(f"   🏁 Delegating since round {p.start_round}")
    if p.last_claim_round is not None:
        print(f"   🧾 Last claim round: {p.last_claim_round}")

    d = p.delegate
    print("\n🛰️  CURRENT ORCHESTRATOR")
    print("   " + "─" * 50)
    if d is None:
        print("   ℹ️ Not delegated to any orchestrator.")
    else:
        status = "🟢 Active" if d.active else "⚪ Inactive"
        print(f"   {display_name(d.address, names)}  ({d.address})  •  {status}")
        print(f"   • Reward Cut:   {format_scaled_fraction(d.reward_cut)}")
        print(f"   • Fee Share:    {format_scaled_fraction(d.fee_share)}")
        print(f"   • Total Stake:  {format_lpt(d.total_stake)}")
        print(f"   • 30d Fees:     {format_eth(d.thirty_day_volume_eth, decimals=4)}")
        print(f"   • 90d Fees:     {format_eth(d.ninety_day_volume_eth, decimals=4)}")
        if d.last_reward_round is not None:
            print(f"   • Last reward round: {d.last_reward_round}")
        if d.service_uri:
            print(f"   • Service URI: {d.service_uri}")

    if dashboard.cumulative:
        first, last = dashboard.cumulative[0], dashboard.cumulative[-1]
        print("\n📈 CUMULATIVE GROWTH")
        print("   " + "─" * 50)
        print(f"   LPT {sparkline([pt.lpt for pt in dashboard.cumulative])}  {format_lpt(last.lpt)}")
        print(f"   ETH {sparkline([pt.eth for pt in dashboard.cumulative])}  {format_eth(last.eth, decimals=5)}")
        print(f"   {format_month(first.timestamp)} → {format_month(last.timestamp)}")


def print_earnings(dashboard: DelegatorDashboard) -> None:
    """Claim history with per-round rates, newest first."""
    claims = dashboard.claims
    s = dashboard.summary
    print(f"\n🧾 CLAIM HISTORY — {len(claims)} claims")
    print("   " + "─" * 66)
    if not claims:
        print("   ℹ️ No earnings claims yet.")
        return

    print("   LPT/claim  " + sparkline([c.reward_tokens for c in claims]))
    print("   LPT/round  " + sparkline([b.lpt_per_round for b in claim_breakdown(claims)]))
    print("   ETH/claim  " + sparkline([c.fees for c in claims]))
    print("")
    print(f"   {'Rounds':<13} {'LPT Earned':>12} {'LPT/Round':>10} {'ETH Fees':>11} {'ETH/Round':>10}  Date")
    for b in reversed(claim_breakdown(claims)):
        c = b.claim
        print(
            f"   {c.round_range:<13} {'+' + format_number(c.reward_tokens):>12} {format_number(b.lpt_per_round):>10}"
            f" {'+' + format_number(c.fees, 5):>11} {format_number(b.eth_per_round, 6):>10}  {format_date(c.timestamp)}"
        )
    avg_eth = s.lifetime_earned_eth / s.total_rounds_covered if s.total_rounds_covered > 0 else None
    print("   " + "─" * 66)
    print(
        f"   {'Total':<13} {format_number(s.lifetime_earned_lpt):>12} {'avg ' + format_optional(s.avg_per_round):>10}"
        f" {format_number(s.lifetime_earned_eth, 5):>11} {'avg ' + format_optional(avg_eth, decimals=6):>10}"
    )


def print_history(dashboard: DelegatorDashboard, names: dict[str, str] | None = None) -> None:
    """Event timeline, newest first."""
    timeline = dashboard.timeline
    print(f"\n🗓️  EVENT TIMELINE — {len(timeline)} events")
    print("   " + "─" * 66)
    if not timeline:
        print("   ℹ️ No events recorded.")
        return
    for e in reversed(timeline):
        round_label = f"round {e.round}" if e.round else NO_DATA
        print(f"   {event_marker(e.kind.value)} {format_date(e.timestamp):<13} {e.kind.value:<12} {e.description}")
        detail = f"      {e.display_value}  •  {round_label}"
        if e.counterparty and e.kind.value in ("bond", "redelegate"):
            detail += f"  •  → {display_name(e.counterparty, names)}"
        print(detail)


def print_compare(
    board: Leaderboard,
    *,
    stake: Decimal | None = None,
    total_count: int | None = None,
    trends: dict[str, list[Decimal]] | None = None,
    limit: int | None = None,
) -> None:
    """Orchestrator leaderboard with projected yields for `stake`."""
    label = "working" if board.filter_mode == FILTER_WORKING else "active"
    arrow = "↓" if board.descending else "↑"
    print(f"\n🏆 ORCHESTRATOR LEADERBOARD — {len(board.rows)} {label} orchestrators")
    total = f" / All Active ({total_count})" if total_count is not None else ""
    print(f"   Working ({board.working_count}){total}  •  sorted by {board.sort_column} {arrow}")
    print("   " + "─" * 66)

    if board.current_orchestrator:
        you = display_name(board.current_orchestrator, board.names)
        if board.current_rank > 0:
            print(f"   ⭐ Your orchestrator {you}: Rank #{board.current_rank} of {len(board.rows)} {label}")
        else:
            print(f"   ⭐ Your orchestrator {you} is not in this list")

    show_stake = stake is not None and stake > 0
    if show_stake:
        print(f"   💡 Projections for {format_lpt(stake)}")

    rows = board.rows if limit is None else board.rows[:limit]
    print("")
    header = f"   {'#':>3}  {'Orchestrator':<22} {'Reward APY':>10} {'30d ETH':>10} {'ETH/LPT/yr':>11} {'Cut':>7} {'Share':>7} {'Stake':>12}"
    if show_stake:
        header += f" {'Est. LPT/yr':>12} {'Est. ETH/yr':>11}"
    print(header)
    for rank, o in enumerate(rows, start=1):
        name = display_name(o.address, board.names)
        marker = "⭐" if o.address == board.current_orchestrator else "  "
        idle = "" if o.is_working else " idle"
        eth_yield = f"{o.eth_yield_per_lpt:.6f}" if o.eth_yield_per_lpt > 0 else NO_DATA
        line = (
            f" {marker}{rank:>3}  {(name + idle)[:22]:<22} {format_pct(o.reward_apy):>10}"
            f" {format_number(o.eth_30d, 4) if o.eth_30d > 0 else '0':>10} {eth_yield:>11}"
            f" {format_scaled_fraction(o.reward_cut):>7} {format_scaled_fraction(o.fee_share):>7}"
            f" {format_number(o.stake, 0):>12}"
        )
        if show_stake:
            est_lpt, est_eth = projected_stake_yield(o, stake)
            line += f" {format_number(est_lpt):>12} {(f'{est_eth:.6f}' if est_eth > 0 else NO_DATA):>11}"
        print(line)
        trend = (trends or {}).get(o.address)
        if trend:
            print(f"         30d fees {sparkline(trend)}  ({fmt_addr(o.address)})")

    if limit is not None and len(board.rows) > limit:
        print(f"\nℹ️ {len(board.rows) - limit} more orchestrator(s) omitted (use --limit to show more).")
    print("\nℹ️ Reward APY assumes one round per day; ETH yield annualizes the last 30 days of fees.")
