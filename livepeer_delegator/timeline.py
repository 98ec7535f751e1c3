"""Event normalization: stake events and claims merged into one chronological timeline."""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from livepeer_delegator.formatters import fmt_addr, format_number
from livepeer_delegator.models import ClaimRecord, EventKind, StakeEvent, TimelineEntry

# Source-append order; also the tie order for equal timestamps.
STAKE_EVENT_ORDER = (
    EventKind.BOND,
    EventKind.UNBOND,
    EventKind.REBOND,
    EventKind.WITHDRAW_STAKE,
    EventKind.WITHDRAW_FEES,
)


def classify_bond(additional_amount: Decimal, old_delegate: str | None) -> EventKind:
    """Bond vs redelegate.

    The subgraph has no discriminant for a pure delegate switch, so a bond that adds no
    stake while moving away from a previous delegate is treated as a redelegation. Both
    conditions must hold.
    """
    if additional_amount == 0 and old_delegate:
        return EventKind.REDELEGATE
    return EventKind.BOND


def stake_event_entry(e: StakeEvent) -> TimelineEntry:
    """Project one stake event onto the timeline shape."""
    if e.kind is EventKind.REDELEGATE:
        description = f"Moved delegation to {fmt_addr(e.new_delegate)}"
        value = f"{format_number(e.amount)} LPT"
    elif e.kind is EventKind.BOND:
        description = f"Bonded {format_number(e.amount)} LPT"
        value = f"{format_number(e.amount)} LPT"
    elif e.kind is EventKind.UNBOND:
        description = f"Unbonded {format_number(e.amount)} LPT"
        value = f"{format_number(e.amount)} LPT"
    elif e.kind is EventKind.REBOND:
        description = f"Rebonded {format_number(e.amount)} LPT"
        value = f"{format_number(e.amount)} LPT"
    elif e.kind is EventKind.WITHDRAW_STAKE:
        description = f"Withdrew {format_number(e.amount)} LPT stake"
        value = f"{format_number(e.amount)} LPT"
    elif e.kind is EventKind.WITHDRAW_FEES:
        description = f"Withdrew {format_number(e.amount, 6)} ETH fees"
        value = f"{format_number(e.amount, 6)} ETH"
    else:
        raise ValueError(f"Not a stake event kind: {e.kind}")

    counterparty = e.new_delegate if e.kind in (EventKind.BOND, EventKind.REDELEGATE) else None
    return TimelineEntry(
        kind=e.kind,
        timestamp=e.timestamp,
        round=e.round,
        description=description,
        display_value=value,
        counterparty=counterparty,
    )


def claim_entry(c: ClaimRecord) -> TimelineEntry:
    """Project one claim onto the timeline shape. Claims are placed at their end round."""
    return TimelineEntry(
        kind=EventKind.CLAIM,
        timestamp=c.timestamp,
        round=c.end_round,
        description=(
            f"Claimed {format_number(c.reward_tokens)} LPT + {format_number(c.fees, 6)} ETH ({c.round_range})"
        ),
        display_value=f"{format_number(c.reward_tokens)} LPT",
        counterparty=c.delegate,
    )


def flatten_stake_events(events_by_kind: Mapping[EventKind, Iterable[StakeEvent]]) -> list[StakeEvent]:
    """Concatenate per-collection events in source-append order."""
    out: list[StakeEvent] = []
    for kind in STAKE_EVENT_ORDER:
        out.extend(events_by_kind.get(kind, ()))
    return out


def merge_timeline(
    events_by_kind: Mapping[EventKind, Iterable[StakeEvent]],
    claims: Iterable[ClaimRecord],
) -> list[TimelineEntry]:
    """Merge stake events and claims, ascending by timestamp.

    Entries are appended (stake collections first, then claims) and stably sorted, so equal
    timestamps keep append order and duplicates are preserved.
    """
    entries = [stake_event_entry(e) for e in flatten_stake_events(events_by_kind)]
    entries.extend(claim_entry(c) for c in claims)
    entries.sort(key=lambda x: x.timestamp)
    return entries
