"""Data models for Livepeer delegator analytics."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class EventKind(str, Enum):
    """Timeline entry kinds. REDELEGATE is derived from a bond event, not emitted on-chain."""

    BOND = "bond"
    REDELEGATE = "redelegate"
    UNBOND = "unbond"
    REBOND = "rebond"
    WITHDRAW_STAKE = "withdraw"
    WITHDRAW_FEES = "withdrawFees"
    CLAIM = "claim"


@dataclass(frozen=True)
class DelegateInfo:
    """The orchestrator a delegator is currently bonded to."""

    address: str
    total_stake: Decimal
    # Fixed point, scale 1_000_000.
    reward_cut: Decimal
    fee_share: Decimal
    active: bool
    last_reward_round: int | None
    service_uri: str | None
    thirty_day_volume_eth: Decimal
    ninety_day_volume_eth: Decimal


@dataclass(frozen=True)
class DelegatorProfile:
    """Point-in-time snapshot of a delegator entity."""

    address: str
    bonded_amount: Decimal
    # Lifetime fee accrual (ETH), including fees already withdrawn.
    fees: Decimal
    withdrawn_fees: Decimal
    start_round: int
    last_claim_round: int | None
    delegate: DelegateInfo | None


@dataclass(frozen=True)
class ClaimRecord:
    """Rewards and fees claimed for the inclusive round range [start_round, end_round]."""

    id: str
    timestamp: int
    start_round: int
    end_round: int
    reward_tokens: Decimal
    fees: Decimal
    delegate: str | None

    @property
    def rounds_covered(self) -> int:
        return max(self.end_round - self.start_round + 1, 1)

    @property
    def round_range(self) -> str:
        return f"{self.start_round}–{self.end_round}"


@dataclass(frozen=True)
class StakeEvent:
    """A single stake lifecycle event with its kind already classified."""

    id: str
    kind: EventKind
    timestamp: int
    round: int
    amount: Decimal
    # Bond / redelegate only.
    new_delegate: str | None = None
    old_delegate: str | None = None
    bonded_amount: Decimal | None = None


@dataclass(frozen=True)
class TimelineEntry:
    """Common projection of claims and stake events."""

    kind: EventKind
    timestamp: int
    round: int
    description: str
    display_value: str
    counterparty: str | None = None


@dataclass(frozen=True)
class CumulativePoint:
    """Running totals after one claim."""

    timestamp: int
    lpt: Decimal
    eth: Decimal
    claim_lpt: Decimal
    claim_eth: Decimal


@dataclass(frozen=True)
class ClaimBreakdown:
    """Per-claim rates for the earnings table."""

    claim: ClaimRecord
    lpt_per_round: Decimal
    eth_per_round: Decimal


@dataclass(frozen=True)
class DelegatorSummary:
    """Scalar metrics derived from a delegator's claims and profile."""

    bonded_amount: Decimal
    lifetime_earned_lpt: Decimal
    lifetime_earned_eth: Decimal
    total_rounds_covered: int
    principal: Decimal
    reward_roi: Decimal
    # None when no rounds are covered ("no data").
    avg_per_round: Decimal | None
    claims_count: int


@dataclass(frozen=True)
class DelegatorDashboard:
    """Everything shown for one resolved address. Replaced wholesale on each lookup."""

    address: str
    profile: DelegatorProfile
    claims: tuple[ClaimRecord, ...]
    events: tuple[StakeEvent, ...]
    timeline: tuple[TimelineEntry, ...]
    summary: DelegatorSummary
    cumulative: tuple[CumulativePoint, ...]
    # The raw input when it was an ENS name.
    ens_name: str | None = None


@dataclass(frozen=True)
class OrchestratorSnapshot:
    """Network-wide view of one active orchestrator."""

    address: str
    active: bool
    reward_cut: Decimal
    fee_share: Decimal
    total_stake: Decimal
    thirty_day_volume_eth: Decimal
    ninety_day_volume_eth: Decimal
    total_volume_eth: Decimal
    last_reward_round: int | None


@dataclass(frozen=True)
class ProtocolSnapshot:
    """Protocol-wide constants for the current round."""

    current_round: int
    mintable_tokens: Decimal
    total_active_stake: Decimal
    total_supply: Decimal
    inflation: Decimal
    participation_rate: Decimal
    lpt_price_eth: Decimal


@dataclass(frozen=True)
class NetworkBundle:
    """Orchestrators and protocol constants fetched together for the comparison view."""

    orchestrators: tuple[OrchestratorSnapshot, ...]
    protocol: ProtocolSnapshot


@dataclass(frozen=True)
class OrchestratorYield:
    """One leaderboard row: an orchestrator with its projected delegator yields."""

    snapshot: OrchestratorSnapshot
    reward_apy: Decimal  # percent
    delegator_fees_30d: Decimal
    eth_yield_per_lpt: Decimal  # ETH per LPT staked per year
    is_working: bool
    calling_reward: bool

    @property
    def address(self) -> str:
        return self.snapshot.address

    @property
    def stake(self) -> Decimal:
        return self.snapshot.total_stake

    @property
    def reward_cut(self) -> Decimal:
        return self.snapshot.reward_cut

    @property
    def fee_share(self) -> Decimal:
        return self.snapshot.fee_share

    @property
    def eth_30d(self) -> Decimal:
        return self.snapshot.thirty_day_volume_eth

    @property
    def eth_90d(self) -> Decimal:
        return self.snapshot.ninety_day_volume_eth


@dataclass(frozen=True)
class Leaderboard:
    """Filtered and sorted comparison rows plus where the subject's orchestrator landed."""

    rows: tuple[OrchestratorYield, ...]
    filter_mode: str
    sort_column: str
    descending: bool
    current_orchestrator: str | None
    # 1-based; 0 when the current orchestrator is not in `rows`.
    current_rank: int
    working_count: int
    names: dict[str, str] = field(default_factory=dict)
