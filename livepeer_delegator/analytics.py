"""Metric derivation for delegators and orchestrators.

Pure functions over parsed subgraph data:
- Delegator summary (lifetime earnings, ROI, per-round average)
- Cumulative earnings series for growth charts
- Orchestrator yield projection (reward APY, ETH yield per LPT)
- Orchestrator leaderboard ranking
"""

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from livepeer_delegator.constants import (
    DEFAULT_SORT_COLUMN,
    FEE_WINDOWS_PER_YEAR,
    ORCHESTRATOR_SORT_COLUMNS,
    PERCENTAGE_SCALE,
    ROUNDS_PER_YEAR,
)
from livepeer_delegator.models import (
    ClaimBreakdown,
    ClaimRecord,
    CumulativePoint,
    DelegatorDashboard,
    DelegatorProfile,
    DelegatorSummary,
    EventKind,
    Leaderboard,
    NetworkBundle,
    OrchestratorSnapshot,
    OrchestratorYield,
    ProtocolSnapshot,
    StakeEvent,
)
from livepeer_delegator.timeline import flatten_stake_events, merge_timeline

FILTER_WORKING = "working"
FILTER_ALL = "all"
FILTER_MODES = (FILTER_WORKING, FILTER_ALL)

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)


def reward_roi(lifetime_earned_lpt: Decimal, bonded_amount: Decimal) -> Decimal:
    """Reward ROI in percent: earned / max(bonded - earned, 1) * 100.

    The principal may be negative once stake was unbonded after rewards accrued; the
    max(., 1) clamp keeps the denominator positive and intentionally lets the ratio grow
    large instead of capping it. A delegator with nothing bonded reports 0.
    """
    if bonded_amount <= 0:
        return ZERO
    principal = bonded_amount - lifetime_earned_lpt
    return lifetime_earned_lpt / max(principal, ONE) * HUNDRED


def summarize_delegator(bonded_amount: Decimal, claims: Sequence[ClaimRecord]) -> DelegatorSummary:
    """Scalar metrics over a delegator's claims."""
    earned_lpt = sum((c.reward_tokens for c in claims), ZERO)
    earned_eth = sum((c.fees for c in claims), ZERO)
    total_rounds = sum(c.rounds_covered for c in claims)

    avg_per_round = earned_lpt / total_rounds if total_rounds > 0 else None

    return DelegatorSummary(
        bonded_amount=bonded_amount,
        lifetime_earned_lpt=earned_lpt,
        lifetime_earned_eth=earned_eth,
        total_rounds_covered=total_rounds,
        principal=bonded_amount - earned_lpt,
        reward_roi=reward_roi(earned_lpt, bonded_amount),
        avg_per_round=avg_per_round,
        claims_count=len(claims),
    )


def cumulative_series(claims: Iterable[ClaimRecord]) -> list[CumulativePoint]:
    """Running LPT/ETH totals, one point per claim in timestamp order."""
    out: list[CumulativePoint] = []
    lpt = ZERO
    eth = ZERO
    for c in sorted(claims, key=lambda x: x.timestamp):
        lpt += c.reward_tokens
        eth += c.fees
        out.append(CumulativePoint(timestamp=c.timestamp, lpt=lpt, eth=eth, claim_lpt=c.reward_tokens, claim_eth=c.fees))
    return out


def claim_breakdown(claims: Iterable[ClaimRecord]) -> list[ClaimBreakdown]:
    """Per-round rates of each claim."""
    return [
        ClaimBreakdown(
            claim=c,
            lpt_per_round=c.reward_tokens / c.rounds_covered,
            eth_per_round=c.fees / c.rounds_covered,
        )
        for c in claims
    ]


def build_dashboard(
    profile: DelegatorProfile,
    claims: Sequence[ClaimRecord],
    events_by_kind: Mapping[EventKind, Sequence[StakeEvent]],
    *,
    ens_name: str | None = None,
) -> DelegatorDashboard:
    """Merge and derive everything shown for one delegator."""
    return DelegatorDashboard(
        address=profile.address,
        profile=profile,
        claims=tuple(claims),
        events=tuple(flatten_stake_events(events_by_kind)),
        timeline=tuple(merge_timeline(events_by_kind, claims)),
        summary=summarize_delegator(profile.bonded_amount, claims),
        cumulative=tuple(cumulative_series(claims)),
        ens_name=ens_name,
    )


def project_orchestrator_yield(o: OrchestratorSnapshot, protocol: ProtocolSnapshot) -> OrchestratorYield:
    """Projected delegator yields for one orchestrator.

    Reward APY assumes one round per day; ETH yield annualizes the last 30 days of fees.
    """
    base_yield = (
        protocol.mintable_tokens / protocol.total_active_stake if protocol.total_active_stake > 0 else ZERO
    )
    delegator_yield = base_yield * (ONE - o.reward_cut / PERCENTAGE_SCALE)
    reward_apy = delegator_yield * ROUNDS_PER_YEAR * HUNDRED

    delegator_fees_30d = o.thirty_day_volume_eth * (o.fee_share / PERCENTAGE_SCALE)
    eth_yield_per_lpt = (
        delegator_fees_30d / o.total_stake * FEE_WINDOWS_PER_YEAR if o.total_stake > 0 else ZERO
    )

    return OrchestratorYield(
        snapshot=o,
        reward_apy=reward_apy,
        delegator_fees_30d=delegator_fees_30d,
        eth_yield_per_lpt=eth_yield_per_lpt,
        is_working=o.thirty_day_volume_eth > 0,
        calling_reward=o.last_reward_round is not None and o.last_reward_round == protocol.current_round,
    )


def project_network(bundle: NetworkBundle) -> list[OrchestratorYield]:
    """Yield projection for every orchestrator in the bundle, in query order."""
    return [project_orchestrator_yield(o, bundle.protocol) for o in bundle.orchestrators]


def projected_stake_yield(row: OrchestratorYield, stake: Decimal) -> tuple[Decimal, Decimal]:
    """(LPT per year, ETH per year) for a hypothetical stake delegated to `row`."""
    return stake * row.reward_apy / HUNDRED, stake * row.eth_yield_per_lpt


def rank_orchestrators(
    rows: Sequence[OrchestratorYield],
    *,
    filter_mode: str = FILTER_WORKING,
    sort_column: str = DEFAULT_SORT_COLUMN,
    descending: bool = True,
    current_orchestrator: str | None = None,
    names: Mapping[str, str] | None = None,
) -> Leaderboard:
    """Filter (working/all) and sort by one numeric column. Ties keep input order."""
    if filter_mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode: {filter_mode} (expected one of {', '.join(FILTER_MODES)})")
    if sort_column not in ORCHESTRATOR_SORT_COLUMNS:
        raise ValueError(
            f"Unknown sort column: {sort_column} (expected one of {', '.join(ORCHESTRATOR_SORT_COLUMNS)})"
        )

    filtered = [r for r in rows if filter_mode == FILTER_ALL or r.is_working]
    # list.sort is stable in both directions.
    filtered.sort(key=lambda r: getattr(r, sort_column), reverse=descending)

    current = current_orchestrator.lower() if current_orchestrator else None
    current_rank = 0
    if current:
        for i, r in enumerate(filtered, start=1):
            if r.address == current:
                current_rank = i
                break

    return Leaderboard(
        rows=tuple(filtered),
        filter_mode=filter_mode,
        sort_column=sort_column,
        descending=descending,
        current_orchestrator=current,
        current_rank=current_rank,
        working_count=sum(1 for r in rows if r.is_working),
        names=dict(names or {}),
    )
