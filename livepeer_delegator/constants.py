"""Constants and configuration for Livepeer delegator analytics."""

from decimal import Decimal

# The Graph decentralized gateway. Subgraphs are addressed by deployment-independent IDs.
# Use --subgraph-id / --ens-subgraph-id (or the env vars below) to point at other deployments.
GRAPH_GATEWAY_URL_TEMPLATE = "https://gateway.thegraph.com/api/{api_key}/subgraphs/id/{subgraph_id}"
LIVEPEER_SUBGRAPH_ID_ARBITRUM = "FE63YgkzcpVocxdCEyEYbvjYqEf2kb1A6daMYRxmejYC"
ENS_SUBGRAPH_ID_MAINNET = "5XqPmWe6gjyrJtFn9cLy237i4cWw2j9HcUJEXsP5qGtH"

GRAPH_API_KEY_ENV = "GRAPH_API_KEY"
LIVEPEER_SUBGRAPH_ID_ENV = "LIVEPEER_SUBGRAPH_ID"
ENS_SUBGRAPH_ID_ENV = "ENS_SUBGRAPH_ID"

ENS_SUFFIX = ".eth"

# Subgraph collections are capped at this many records per query.
QUERY_PAGE_SIZE = 100

# Delegator profile including the current delegate (orchestrator).
DELEGATOR_QUERY = """
query Delegator($id: ID!) {
  delegator(id: $id) {
    id
    bondedAmount
    fees
    withdrawnFees
    startRound
    delegate {
      id
      totalStake
      rewardCut
      feeShare
      active
      lastRewardRound { id }
      serviceURI
      thirtyDayVolumeETH
      ninetyDayVolumeETH
    }
    lastClaimRound { id }
  }
}
"""

EARNINGS_QUERY = """
query Earnings($delegator: String!, $first: Int!) {
  earningsClaimedEvents(
    where: { delegator: $delegator }
    orderBy: timestamp
    orderDirection: asc
    first: $first
  ) {
    id
    timestamp
    startRound
    endRound { id }
    rewardTokens
    fees
    delegate { id }
  }
}
"""

# All five stake lifecycle collections in one document.
STAKE_EVENTS_QUERY = """
query StakeEvents($delegator: String!, $first: Int!) {
  bondEvents(where: { delegator: $delegator }, orderBy: timestamp, orderDirection: asc, first: $first) {
    id timestamp round { id } bondedAmount additionalAmount newDelegate { id } oldDelegate { id }
  }
  unbondEvents(where: { delegator: $delegator }, orderBy: timestamp, orderDirection: asc, first: $first) {
    id timestamp round { id } amount delegate { id }
  }
  rebondEvents(where: { delegator: $delegator }, orderBy: timestamp, orderDirection: asc, first: $first) {
    id timestamp round { id } amount delegate { id }
  }
  withdrawStakeEvents(where: { delegator: $delegator }, orderBy: timestamp, orderDirection: asc, first: $first) {
    id timestamp round { id } amount
  }
  withdrawFeesEvents(where: { delegator: $delegator }, orderBy: timestamp, orderDirection: asc, first: $first) {
    id timestamp round { id } amount
  }
}
"""

TRANSCODERS_QUERY = """
query Transcoders($first: Int!) {
  transcoders(where: { active: true }, first: $first, orderBy: totalStake, orderDirection: desc) {
    id
    active
    rewardCut
    feeShare
    totalStake
    thirtyDayVolumeETH
    ninetyDayVolumeETH
    totalVolumeETH
    lastRewardRound { id }
  }
}
"""

PROTOCOL_QUERY = """
query Protocol {
  protocol(id: "0") {
    inflation
    totalActiveStake
    totalSupply
    participationRate
    currentRound { id mintableTokens }
    lptPriceEth
  }
}
"""

# Daily fee volume for one orchestrator, newest first (reversed before rendering).
TRANSCODER_DAYS_QUERY = """
query TranscoderDays($transcoder: String!, $first: Int!) {
  transcoderDays(where: { transcoder: $transcoder }, orderBy: date, orderDirection: desc, first: $first) {
    date
    volumeETH
  }
}
"""

ENS_RESOLVE_QUERY = """
query Resolve($name: String!) {
  domains(where: { name: $name }) {
    resolvedAddress { id }
  }
}
"""

ENS_REVERSE_QUERY = """
query Reverse($addresses: [String!]!) {
  domains(where: { resolvedAddress_in: $addresses }, orderBy: createdAt, orderDirection: asc) {
    name
    resolvedAddress { id }
  }
}
"""

# rewardCut / feeShare are stored on-chain as fixed point with this scale (100% == 1_000_000).
PERCENTAGE_SCALE = Decimal(1_000_000)
# One round is treated as one day when annualizing reward yield. Real round length drifts
# with L1 block times; the subgraph does not expose it.
ROUNDS_PER_YEAR = 365
# 30-day fee windows are annualized by this factor.
FEE_WINDOWS_PER_YEAR = 12
TREND_DAYS = 30

LPT_DISPLAY_DECIMALS = 2
ETH_DISPLAY_DECIMALS = 6

# Sortable numeric leaderboard columns.
ORCHESTRATOR_SORT_COLUMNS = (
    "reward_apy",
    "eth_30d",
    "eth_90d",
    "eth_yield_per_lpt",
    "reward_cut",
    "fee_share",
    "stake",
)
DEFAULT_SORT_COLUMN = "reward_apy"

EXPORT_COLUMNS = (
    "rank",
    "orchestrator",
    "ens_name",
    "is_working",
    "calling_reward",
    "reward_apy_pct",
    "eth_fees_30d",
    "eth_fees_90d",
    "eth_yield_per_lpt_year",
    "reward_cut_pct",
    "fee_share_pct",
    "total_stake",
    "simulated_stake",
    "est_lpt_year",
    "est_eth_year",
    "is_current_orchestrator",
)

DEFAULT_SHARE_BASE_URL = "https://livepeer-delegator.app/"
SHARE_QUERY_PARAM = "address"

# Explorer URLs
ARBISCAN_BASE = "https://arbiscan.io"
LIVEPEER_EXPLORER_BASE = "https://explorer.livepeer.org"
