"""Consistency checks over parsed subgraph data and derived series."""

from collections.abc import Sequence

from livepeer_delegator.models import ClaimRecord, CumulativePoint, DelegatorProfile, TimelineEntry


def validate_claims(claims: Sequence[ClaimRecord], *, warn_only: bool = True) -> list[str]:
    """
    Validate claim records.

    Returns list of warnings. If warn_only=False, raises ValueError on the first issue.
    """
    issues: list[str] = []

    def _flag(msg: str) -> None:
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    prev_ts: int | None = None
    for c in claims:
        # rounds_covered clamps to 1, so an inverted range would otherwise go unnoticed.
        if c.end_round < c.start_round:
            _flag(f"Claim {c.id}: inverted round range {c.start_round}–{c.end_round} (counted as 1 round)")
        if c.reward_tokens < 0:
            _flag(f"Claim {c.id}: negative rewardTokens: {c.reward_tokens}")
        if c.fees < 0:
            _flag(f"Claim {c.id}: negative fees: {c.fees}")
        if prev_ts is not None and c.timestamp < prev_ts:
            _flag(f"Claim {c.id}: out of timestamp order ({c.timestamp} < {prev_ts})")
        prev_ts = c.timestamp

    return issues


def validate_profile(profile: DelegatorProfile, *, warn_only: bool = True) -> list[str]:
    """Validate delegator profile invariants."""
    issues: list[str] = []

    if profile.withdrawn_fees > profile.fees:
        msg = (
            f"Delegator {profile.address}: withdrawnFees ({profile.withdrawn_fees}) "
            f"exceeds lifetime fees ({profile.fees})"
        )
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if profile.bonded_amount < 0:
        msg = f"Delegator {profile.address}: negative bondedAmount: {profile.bonded_amount}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    return issues


def validate_cumulative_series(series: Sequence[CumulativePoint], *, warn_only: bool = True) -> list[str]:
    """Cumulative LPT and ETH must be non-decreasing."""
    issues: list[str] = []
    for i in range(1, len(series)):
        prev, cur = series[i - 1], series[i]
        if cur.lpt < prev.lpt or cur.eth < prev.eth:
            msg = (
                f"Cumulative series decreased at point {i}: "
                f"LPT {prev.lpt} → {cur.lpt}, ETH {prev.eth} → {cur.eth}"
            )
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)
    return issues


def validate_timeline_order(timeline: Sequence[TimelineEntry], *, warn_only: bool = True) -> list[str]:
    """Timeline must be ascending by timestamp."""
    issues: list[str] = []
    for i in range(len(timeline) - 1):
        if timeline[i].timestamp > timeline[i + 1].timestamp:
            msg = f"Timeline out of order at {i}: {timeline[i].timestamp} > {timeline[i + 1].timestamp}"
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)
    return issues
