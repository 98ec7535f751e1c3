import os
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from livepeer_delegator.constants import (
    DELEGATOR_QUERY,
    ENS_REVERSE_QUERY,
    PROTOCOL_QUERY,
    TRANSCODER_DAYS_QUERY,
    TRANSCODERS_QUERY,
)
from livepeer_delegator.ens import ENSResolver
from livepeer_delegator.errors import DelegatorNotFoundError, SubgraphError
from livepeer_delegator.session import DashboardSession, address_from_url, share_url


@pytest.mark.parametrize(
    ("base", "expected"),
    [
        ("https://dash.example/", "https://dash.example/?address=0xabc"),
        ("https://dash.example", "https://dash.example/?address=0xabc"),
        ("https://dash.example/app?address=0xold&tab=earn", "https://dash.example/app?tab=earn&address=0xabc"),
    ],
)
def test_share_url_rewrites_address(base, expected):
    assert share_url("0xabc", base) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://dash.example/?address=0xabc", "0xabc"),
        ("https://dash.example/?tab=hist&address=me.eth", "me.eth"),
        ("https://dash.example/?address=", None),
        ("https://dash.example/", None),
    ],
)
def test_address_from_url(url, expected):
    assert address_from_url(url) == expected


def test_lookup_sets_current_subject(make_client, addresses):
    with DashboardSession(make_client(), show_progress=False) as session:
        dash = session.lookup(addresses["delegator"])
        assert session.current is dash
        assert dash.summary.claims_count == 2
        assert session.generation == 1


def test_lookup_by_name_records_ens_name(make_client, addresses):
    client = make_client()
    with DashboardSession(client, ENSResolver(client), show_progress=False) as session:
        dash = session.lookup("me.eth")
    assert dash.address == addresses["delegator"]
    assert dash.ens_name == "me.eth"


def test_failed_lookup_clears_current_subject(make_client, addresses):
    client = make_client()
    with DashboardSession(client, show_progress=False) as session:
        session.lookup(addresses["delegator"])
        client.responses[DELEGATOR_QUERY] = {"delegator": None}
        with pytest.raises(DelegatorNotFoundError):
            session.lookup(addresses["a"])
        assert session.current is None


def test_stale_generation_is_discarded(make_client, addresses):
    with DashboardSession(make_client(), show_progress=False) as session:
        first = session.begin_lookup()
        second = session.begin_lookup()
        dash = session.load(addresses["delegator"])
        assert session.commit(first, dash) is False
        assert session.current is None
        assert session.commit(second, dash) is True
        assert session.current is dash


def test_superseded_lookup_returns_none(make_client, addresses):
    client = make_client()
    payload = client.responses[DELEGATOR_QUERY]
    entered = threading.Event()
    release = threading.Event()

    def slow_delegator(variables):
        entered.set()
        release.wait(5)
        return payload

    client.responses[DELEGATOR_QUERY] = slow_delegator
    results = {}

    with DashboardSession(client, show_progress=False) as session:
        worker = threading.Thread(target=lambda: results.setdefault("slow", session.lookup(addresses["delegator"])))
        worker.start()
        assert entered.wait(5)
        # A newer lookup starts while the first is in flight.
        session.begin_lookup()
        release.set()
        worker.join(5)
        assert results["slow"] is None
        assert session.current is None


def test_network_bundle_fetched_once_per_session(make_client, addresses):
    client = make_client()
    with DashboardSession(client, show_progress=False) as session:
        assert not session.network_loaded
        session.lookup(addresses["delegator"])
        board1 = session.leaderboard()
        client.responses[DELEGATOR_QUERY] = {
            "delegator": dict(client.responses[DELEGATOR_QUERY]["delegator"], id=addresses["c"], delegate=None)
        }
        session.lookup(addresses["c"])
        board2 = session.leaderboard(filter_mode="all")
        assert session.network_loaded
    assert client.count(TRANSCODERS_QUERY) == 1
    assert client.count(PROTOCOL_QUERY) == 1
    assert board1.current_orchestrator == addresses["a"]
    assert board1.current_rank == 1
    assert board2.current_orchestrator is None
    assert len(board2.rows) == 3


def test_failed_network_fetch_is_not_memoized(make_client):
    client = make_client()
    good = client.responses[TRANSCODERS_QUERY]
    client.responses[TRANSCODERS_QUERY] = SubgraphError("gateway down")
    with DashboardSession(client, show_progress=False) as session:
        with pytest.raises(SubgraphError):
            session.network()
        assert not session.network_loaded
        client.responses[TRANSCODERS_QUERY] = good
        assert len(session.network().orchestrators) == 3


def test_enrichment_fills_side_tables(make_client, addresses):
    client = make_client()
    with DashboardSession(client, ENSResolver(client), show_progress=False) as session:
        session.enrich_names([addresses["a"], addresses["b"]])
        session.enrich_trends([addresses["a"]])
        assert session.wait_for_enrichment(5)
        assert session.names == {addresses["a"]: "orch-a.eth"}
        assert len(session.trends[addresses["a"]]) == 3
        # Already-known entries are not fetched again.
        session.enrich_trends([addresses["a"]])
        assert session.wait_for_enrichment(5)
    assert client.count(TRANSCODER_DAYS_QUERY) == 1


def test_enrichment_failures_are_swallowed(make_client, addresses, capsys):
    client = make_client({ENS_REVERSE_QUERY: SubgraphError("ens down"), TRANSCODER_DAYS_QUERY: SubgraphError("no days")})
    with DashboardSession(client, ENSResolver(client), show_progress=False) as session:
        session.enrich_names([addresses["a"]])
        session.enrich_trends([addresses["a"]])
        assert session.wait_for_enrichment(5)
        assert session.names == {}
        assert session.trends == {}
    err = capsys.readouterr().err
    assert "ENS name lookup failed" in err
    assert "Fee trend failed" in err


def test_leaderboard_uses_enriched_names(make_client, addresses):
    client = make_client()
    with DashboardSession(client, ENSResolver(client), show_progress=False) as session:
        session.lookup(addresses["delegator"])
        session.enrich_names([addresses["a"]])
        session.wait_for_enrichment(5)
        board = session.leaderboard()
    assert board.names[addresses["a"]] == "orch-a.eth"


def test_close_stops_pending_trend_requests(make_client, addresses):
    client = make_client()
    payload = client.responses[TRANSCODER_DAYS_QUERY]
    entered = threading.Event()
    release = threading.Event()

    def slow_days(variables):
        entered.set()
        release.wait(5)
        return payload(variables)

    client.responses[TRANSCODER_DAYS_QUERY] = slow_days
    session = DashboardSession(client, show_progress=False, trend_workers=1)
    fut = session.enrich_trends([addresses["a"], addresses["b"], addresses["c"]])
    assert entered.wait(5)
    assert session.wait_for_enrichment(0.05) is False
    session.close()
    assert session.closed
    release.set()
    fut.result(5)
    # Only the request already in flight was made.
    assert client.count(TRANSCODER_DAYS_QUERY) == 1
    assert list(session.trends) == [addresses["a"]]


_ABANDONED_ENRICHMENT_SCRIPT = """
import time
from livepeer_delegator.session import DashboardSession

class SlowClient:
    def query(self, query, variables=None):
        time.sleep(20)
        return {"transcoderDays": []}

session = DashboardSession(SlowClient(), show_progress=False)
session.enrich_trends(["0x" + "a" * 40, "0x" + "b" * 40])
assert session.wait_for_enrichment(0.2) is False
session.close()
"""


def test_exit_is_not_held_by_abandoned_enrichment():
    root = Path(__file__).resolve().parents[1]
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(filter(None, [str(root), os.environ.get("PYTHONPATH")])))
    started = time.monotonic()
    proc = subprocess.run(
        [sys.executable, "-c", _ABANDONED_ENRICHMENT_SCRIPT],
        env=env,
        capture_output=True,
        text=True,
        timeout=30,
        check=False,
    )
    elapsed = time.monotonic() - started
    assert proc.returncode == 0, proc.stderr
    assert elapsed < 10
