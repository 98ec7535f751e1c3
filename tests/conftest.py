import threading

import pytest

from livepeer_delegator.constants import (
    DELEGATOR_QUERY,
    EARNINGS_QUERY,
    ENS_RESOLVE_QUERY,
    ENS_REVERSE_QUERY,
    PROTOCOL_QUERY,
    STAKE_EVENTS_QUERY,
    TRANSCODER_DAYS_QUERY,
    TRANSCODERS_QUERY,
)

DELEGATOR = "0x" + "1" * 40
ORCH_A = "0x" + "a" * 40
ORCH_B = "0x" + "b" * 40
ORCH_C = "0x" + "c" * 40


class FakeClient:
    """Subgraph client stand-in keyed by query document.

    A response may be a dict, an exception instance (raised), or a callable taking the
    variables (its return value is used, or raised if it is an exception).
    """

    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def query(self, document, variables=None):
        with self._lock:
            self.calls.append((document, variables))
        if document not in self.responses:
            raise AssertionError(f"unexpected query: {document[:40]!r}")
        resp = self.responses[document]
        if callable(resp):
            resp = resp(variables)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def count(self, document):
        return sum(1 for d, _ in self.calls if d == document)

    def close(self):
        self.closed = True


def delegator_payload(address=DELEGATOR, delegate=ORCH_A):
    return {
        "delegator": {
            "id": address,
            "bondedAmount": "1000",
            "fees": "0.005",
            "withdrawnFees": "0.001",
            "startRound": "9",
            "lastClaimRound": {"id": "15"},
            "delegate": {
                "id": delegate,
                "totalStake": "200000",
                "rewardCut": "100000",
                "feeShare": "500000",
                "active": True,
                "lastRewardRound": {"id": "3000"},
                "serviceURI": "https://orch.example:8935",
                "thirtyDayVolumeETH": "2.5",
                "ninetyDayVolumeETH": "6",
            },
        }
    }


def earnings_payload():
    return {
        "earningsClaimedEvents": [
            {
                "id": "c1",
                "timestamp": 1_700_000_100,
                "startRound": "10",
                "endRound": {"id": "10"},
                "rewardTokens": "5",
                "fees": "0.001",
                "delegate": {"id": ORCH_A},
            },
            {
                "id": "c2",
                "timestamp": 1_700_000_500,
                "startRound": "11",
                "endRound": {"id": "15"},
                "rewardTokens": "20",
                "fees": "0.004",
                "delegate": {"id": ORCH_A},
            },
        ]
    }


def events_payload():
    return {
        "bondEvents": [
            {
                "id": "b1",
                "timestamp": 1_700_000_000,
                "round": {"id": "9"},
                "bondedAmount": "975",
                "additionalAmount": "975",
                "newDelegate": {"id": ORCH_A},
                "oldDelegate": None,
            }
        ],
        "unbondEvents": [],
        "rebondEvents": [],
        "withdrawStakeEvents": [],
        "withdrawFeesEvents": [{"id": "w1", "timestamp": 1_700_000_600, "round": {"id": "16"}, "amount": "0.001"}],
    }


def transcoders_payload():
    def t(address, cut, share, stake, vol30, last_reward="3000"):
        return {
            "id": address,
            "active": True,
            "rewardCut": cut,
            "feeShare": share,
            "totalStake": stake,
            "thirtyDayVolumeETH": vol30,
            "ninetyDayVolumeETH": str(float(vol30) * 3),
            "totalVolumeETH": "100",
            "lastRewardRound": {"id": last_reward},
        }

    return {
        "transcoders": [
            t(ORCH_B, "50000", "250000", "300000", "0"),
            t(ORCH_A, "100000", "500000", "200000", "2.5"),
            t(ORCH_C, "200000", "750000", "100000", "1", last_reward="2999"),
        ]
    }


def protocol_payload():
    return {
        "protocol": {
            "inflation": "222",
            "totalActiveStake": "100000",
            "totalSupply": "30000000",
            "participationRate": "0.5",
            "currentRound": {"id": "3000", "mintableTokens": "1000"},
            "lptPriceEth": "0.002",
        }
    }


def trend_payload(variables):
    return {
        "transcoderDays": [
            {"date": 1_700_172_800, "volumeETH": "0.3"},
            {"date": 1_700_086_400, "volumeETH": "0.2"},
            {"date": 1_700_000_000, "volumeETH": "0.1"},
        ]
    }


@pytest.fixture
def make_client():
    """Factory for a FakeClient serving a full happy-path dataset, with overrides."""

    def _make(overrides=None):
        responses = {
            DELEGATOR_QUERY: delegator_payload(),
            EARNINGS_QUERY: earnings_payload(),
            STAKE_EVENTS_QUERY: events_payload(),
            TRANSCODERS_QUERY: transcoders_payload(),
            PROTOCOL_QUERY: protocol_payload(),
            TRANSCODER_DAYS_QUERY: trend_payload,
            ENS_RESOLVE_QUERY: {"domains": [{"resolvedAddress": {"id": DELEGATOR}}]},
            ENS_REVERSE_QUERY: {"domains": [{"name": "orch-a.eth", "resolvedAddress": {"id": ORCH_A}}]},
        }
        responses.update(overrides or {})
        return FakeClient(responses)

    return _make


@pytest.fixture
def addresses():
    return {"delegator": DELEGATOR, "a": ORCH_A, "b": ORCH_B, "c": ORCH_C}
