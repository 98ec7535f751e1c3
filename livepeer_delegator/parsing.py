"""Subgraph payload parsing."""

from decimal import Decimal
from typing import Any

from livepeer_delegator.formatters import as_decimal, as_int, entity_id
from livepeer_delegator.models import (
    ClaimRecord,
    DelegateInfo,
    DelegatorProfile,
    EventKind,
    OrchestratorSnapshot,
    ProtocolSnapshot,
    StakeEvent,
)
from livepeer_delegator.timeline import classify_bond


def _optional_round(ref: Any) -> int | None:
    rid = entity_id(ref)
    return as_int(rid) if rid is not None else None


def _lower(value: str | None) -> str | None:
    return value.lower() if value else None


def parse_delegate(raw: dict[str, Any] | None) -> DelegateInfo | None:
    """Parse the nested `delegate` entity of a delegator."""
    if not raw or not raw.get("id"):
        return None
    return DelegateInfo(
        address=str(raw["id"]).lower(),
        total_stake=as_decimal(raw.get("totalStake")),
        reward_cut=as_decimal(raw.get("rewardCut")),
        fee_share=as_decimal(raw.get("feeShare")),
        active=bool(raw.get("active")),
        last_reward_round=_optional_round(raw.get("lastRewardRound")),
        service_uri=raw.get("serviceURI"),
        thirty_day_volume_eth=as_decimal(raw.get("thirtyDayVolumeETH")),
        ninety_day_volume_eth=as_decimal(raw.get("ninetyDayVolumeETH")),
    )


def parse_delegator_profile(raw: dict[str, Any]) -> DelegatorProfile:
    """Parse a `delegator` entity."""
    return DelegatorProfile(
        address=str(raw["id"]).lower(),
        bonded_amount=as_decimal(raw.get("bondedAmount")),
        fees=as_decimal(raw.get("fees")),
        withdrawn_fees=as_decimal(raw.get("withdrawnFees")),
        start_round=as_int(raw.get("startRound")),
        last_claim_round=_optional_round(raw.get("lastClaimRound")),
        delegate=parse_delegate(raw.get("delegate")),
    )


def parse_claims(raw: list[dict[str, Any]] | None) -> list[ClaimRecord]:
    """Parse `earningsClaimedEvents` in their given (timestamp ascending) order."""
    out: list[ClaimRecord] = []
    for c in raw or []:
        out.append(
            ClaimRecord(
                id=str(c.get("id", "")),
                timestamp=as_int(c.get("timestamp")),
                start_round=as_int(c.get("startRound")),
                end_round=as_int(entity_id(c.get("endRound"))),
                reward_tokens=as_decimal(c.get("rewardTokens")),
                fees=as_decimal(c.get("fees")),
                delegate=_lower(entity_id(c.get("delegate"))),
            )
        )
    return out


def parse_bond_events(raw: list[dict[str, Any]] | None) -> list[StakeEvent]:
    """Parse `bondEvents`, classifying each as a bond or a redelegation."""
    out: list[StakeEvent] = []
    for e in raw or []:
        additional = as_decimal(e.get("additionalAmount"))
        old_delegate = _lower(entity_id(e.get("oldDelegate")))
        out.append(
            StakeEvent(
                id=str(e.get("id", "")),
                kind=classify_bond(additional, old_delegate),
                timestamp=as_int(e.get("timestamp")),
                round=as_int(entity_id(e.get("round"))),
                amount=additional,
                new_delegate=_lower(entity_id(e.get("newDelegate"))),
                old_delegate=old_delegate,
                bonded_amount=as_decimal(e.get("bondedAmount")),
            )
        )
    return out


def _parse_amount_events(raw: list[dict[str, Any]] | None, kind: EventKind) -> list[StakeEvent]:
    out: list[StakeEvent] = []
    for e in raw or []:
        out.append(
            StakeEvent(
                id=str(e.get("id", "")),
                kind=kind,
                timestamp=as_int(e.get("timestamp")),
                round=as_int(entity_id(e.get("round"))),
                amount=as_decimal(e.get("amount")),
            )
        )
    return out


def parse_stake_events(raw: dict[str, Any]) -> dict[EventKind, list[StakeEvent]]:
    """Parse the five stake event collections of one events query.

    Bond and redelegate events share the BOND key: they come from the same collection.
    """
    return {
        EventKind.BOND: parse_bond_events(raw.get("bondEvents")),
        EventKind.UNBOND: _parse_amount_events(raw.get("unbondEvents"), EventKind.UNBOND),
        EventKind.REBOND: _parse_amount_events(raw.get("rebondEvents"), EventKind.REBOND),
        EventKind.WITHDRAW_STAKE: _parse_amount_events(raw.get("withdrawStakeEvents"), EventKind.WITHDRAW_STAKE),
        EventKind.WITHDRAW_FEES: _parse_amount_events(raw.get("withdrawFeesEvents"), EventKind.WITHDRAW_FEES),
    }


def parse_orchestrators(raw: list[dict[str, Any]] | None) -> list[OrchestratorSnapshot]:
    """Parse `transcoders`, preserving the query order."""
    out: list[OrchestratorSnapshot] = []
    for t in raw or []:
        out.append(
            OrchestratorSnapshot(
                address=str(t["id"]).lower(),
                active=bool(t.get("active")),
                reward_cut=as_decimal(t.get("rewardCut")),
                fee_share=as_decimal(t.get("feeShare")),
                total_stake=as_decimal(t.get("totalStake")),
                thirty_day_volume_eth=as_decimal(t.get("thirtyDayVolumeETH")),
                ninety_day_volume_eth=as_decimal(t.get("ninetyDayVolumeETH")),
                total_volume_eth=as_decimal(t.get("totalVolumeETH")),
                last_reward_round=_optional_round(t.get("lastRewardRound")),
            )
        )
    return out


def parse_protocol(raw: dict[str, Any] | None) -> ProtocolSnapshot:
    """Parse the singleton `protocol` entity."""
    if not raw:
        raise ValueError("Protocol entity missing from subgraph response")
    current_round = raw.get("currentRound") or {}
    return ProtocolSnapshot(
        current_round=as_int(current_round.get("id")),
        mintable_tokens=as_decimal(current_round.get("mintableTokens")),
        total_active_stake=as_decimal(raw.get("totalActiveStake")),
        total_supply=as_decimal(raw.get("totalSupply")),
        inflation=as_decimal(raw.get("inflation")),
        participation_rate=as_decimal(raw.get("participationRate")),
        lpt_price_eth=as_decimal(raw.get("lptPriceEth")),
    )


def parse_fee_trend(raw: list[dict[str, Any]] | None) -> list[Decimal]:
    """Parse `transcoderDays` (newest first) into daily ETH volume, oldest first."""
    days = sorted(raw or [], key=lambda d: as_int(d.get("date")))
    return [as_decimal(d.get("volumeETH")) for d in days]
