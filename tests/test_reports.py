import _thread
import csv
import io
import threading
from decimal import Decimal

import pytest
import requests
from web3 import Web3

from livepeer_delegator import html_report
from livepeer_delegator.analytics import FILTER_ALL, build_dashboard, project_network, rank_orchestrators
from livepeer_delegator.console import print_compare, print_dashboard, print_earnings, print_header, print_history
from livepeer_delegator.constants import EXPORT_COLUMNS
from livepeer_delegator.dispatch import fetch_delegator_bundle, fetch_network_bundle
from livepeer_delegator.export import export_leaderboard_csv, leaderboard_csv, leaderboard_rows
from livepeer_delegator.html_report import (
    LEADERBOARD_CSV_PATH,
    build_dashboard_server,
    dashboard_pages,
    generate_html_report,
    svg_sparkline,
)
from livepeer_delegator.models import DelegatorProfile


@pytest.fixture
def dashboard(make_client, addresses):
    profile, claims, events = fetch_delegator_bundle(make_client(), addresses["delegator"])
    return build_dashboard(profile, claims, events)


@pytest.fixture
def board(make_client, addresses):
    rows = project_network(fetch_network_bundle(make_client()))
    return rank_orchestrators(rows, current_orchestrator=addresses["a"], names={addresses["a"]: "orch-a.eth"})


def test_export_schema_on_filtered_board(board, addresses):
    text = leaderboard_csv(board, Decimal(1000))
    reader = csv.reader(io.StringIO(text))
    header = next(reader)
    data = list(reader)
    assert tuple(header) == EXPORT_COLUMNS
    assert len(header) == 16
    # Only working orchestrators are exported.
    assert len(data) == 2
    assert all(len(row) == len(EXPORT_COLUMNS) for row in data)


def test_export_row_values(board, addresses):
    first, second = leaderboard_rows(board, Decimal(1000))
    assert first["rank"] == "1"
    assert first["orchestrator"] == Web3.to_checksum_address(addresses["a"])
    assert first["ens_name"] == "orch-a.eth"
    assert first["is_working"] == "true"
    assert first["calling_reward"] == "true"
    assert first["reward_apy_pct"] == "328.5000"
    assert first["reward_cut_pct"] == "10.00"
    assert first["fee_share_pct"] == "50.00"
    assert first["simulated_stake"] == "1000.00"
    assert first["est_lpt_year"] == "3285.0000"
    assert first["is_current_orchestrator"] == "true"
    assert second["orchestrator"] == Web3.to_checksum_address(addresses["c"])
    assert second["calling_reward"] == "false"
    assert second["is_current_orchestrator"] == "false"


def test_export_order_follows_board_sort(make_client, addresses):
    rows = project_network(fetch_network_bundle(make_client()))
    board = rank_orchestrators(rows, filter_mode=FILTER_ALL, sort_column="stake", descending=False)
    exported = leaderboard_rows(board, Decimal(0))
    assert [r["orchestrator"].lower() for r in exported] == [addresses["c"], addresses["a"], addresses["b"]]
    assert {r["est_eth_year"] for r in exported} == {"0.000000"}


def test_export_to_file_creates_directories(board, tmp_path):
    path = tmp_path / "out" / "leaderboard.csv"
    assert export_leaderboard_csv(board, Decimal(10), path) == 2
    assert path.read_text(encoding="utf-8").splitlines()[0] == ",".join(EXPORT_COLUMNS)


def test_print_dashboard_and_earnings(dashboard, capsys):
    print_header(dashboard)
    print_dashboard(dashboard, {dashboard.profile.delegate.address: "orch-a.eth"})
    print_earnings(dashboard)
    out = capsys.readouterr().out
    assert "LIVEPEER DELEGATOR DASHBOARD" in out
    assert "1,000.00 LPT" in out
    assert "25.00 LPT" in out
    assert "2 claims across 6 rounds" in out
    assert "orch-a.eth" in out
    assert "11–15" in out
    assert "avg 4.17" in out


def test_print_dashboard_without_claims(capsys):
    profile = DelegatorProfile(
        address="0x" + "1" * 40,
        bonded_amount=Decimal(0),
        fees=Decimal(0),
        withdrawn_fees=Decimal(0),
        start_round=0,
        last_claim_round=None,
        delegate=None,
    )
    empty = build_dashboard(profile, [], {})
    print_dashboard(empty)
    print_earnings(empty)
    print_history(empty)
    out = capsys.readouterr().out
    assert "Avg LPT / Round:      —" in out
    assert "Not delegated" in out
    assert "No earnings claims yet." in out
    assert "No events recorded." in out


def test_print_history_newest_first(dashboard, capsys):
    print_history(dashboard)
    out = capsys.readouterr().out
    assert "4 events" in out
    assert out.index("Withdrew 0.001000 ETH fees") < out.index("Bonded 975.00 LPT")


def test_print_compare(board, addresses, capsys):
    print_compare(board, stake=Decimal(1000), total_count=3, trends={addresses["c"]: [Decimal(1), Decimal(2)]}, limit=1)
    out = capsys.readouterr().out
    assert "2 working orchestrators" in out
    assert "Working (2) / All Active (3)" in out
    assert "Rank #1 of 2 working" in out
    assert "Est. LPT/yr" in out
    assert "1 more orchestrator(s) omitted" in out


def test_html_report(dashboard, board):
    content = generate_html_report(
        dashboard,
        board=board,
        stake=Decimal(1000),
        names={},
        trends={},
        share_link="https://dash.example/?address=0x1",
    )
    assert content.startswith("<!DOCTYPE html>")
    assert "<!--CONTENT_PLACEHOLDER-->" not in content
    assert "Claim History" in content
    assert "Orchestrator Leaderboard" in content
    assert "Rank #1 of 2 working" in content
    assert "https://dash.example/?address=0x1" in content


def test_html_report_escapes_names(dashboard):
    content = generate_html_report(dashboard, names={dashboard.profile.delegate.address: "<b>x</b>.eth"})
    assert "<b>x</b>.eth" not in content
    assert "&lt;b&gt;x&lt;/b&gt;.eth" in content


def test_svg_sparkline():
    assert svg_sparkline([1]) == ""
    svg = svg_sparkline([Decimal(0), Decimal(1)], width=10, height=10)
    assert "points=\"0.0,10.0 10.0,0.0\"" in svg


def test_html_report_links_csv_download(dashboard, board):
    content = generate_html_report(dashboard, board=board, stake=Decimal(1000), csv_href=LEADERBOARD_CSV_PATH)
    assert f'href="{LEADERBOARD_CSV_PATH}" download' in content
    assert "Download CSV" not in generate_html_report(dashboard, board=board)


@pytest.fixture
def served(dashboard, board):
    pages = dashboard_pages(generate_html_report(dashboard, board=board), leaderboard_csv(board, Decimal(1000)))
    with build_dashboard_server(pages) as httpd:
        worker = threading.Thread(target=httpd.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True)
        worker.start()
        try:
            yield f"http://127.0.0.1:{httpd.server_address[1]}"
        finally:
            httpd.shutdown()
            worker.join(5)


def test_server_routes(served, addresses):
    page = requests.get(f"{served}/?address={addresses['delegator']}", timeout=5)
    assert page.status_code == 200
    assert page.headers["Content-Type"].startswith("text/html")
    assert "Orchestrator Leaderboard" in page.text

    exported = requests.get(f"{served}{LEADERBOARD_CSV_PATH}", timeout=5)
    assert exported.status_code == 200
    assert exported.headers["Content-Type"].startswith("text/csv")
    assert "leaderboard.csv" in exported.headers["Content-Disposition"]
    assert exported.text.splitlines()[0] == ",".join(EXPORT_COLUMNS)

    assert requests.get(f"{served}/missing", timeout=5).status_code == 404


def test_csv_route_only_with_leaderboard(dashboard):
    pages = dashboard_pages(generate_html_report(dashboard))
    assert list(pages) == ["/"]


def test_serve_opens_share_url_until_interrupted(dashboard, addresses, monkeypatch, capsys):
    seen = {}

    def fake_open(url):
        def visit():
            try:
                seen["url"] = url
                seen["status"] = requests.get(url, timeout=5).status_code
            finally:
                _thread.interrupt_main()

        threading.Thread(target=visit, daemon=True).start()
        return True

    monkeypatch.setattr(html_report.webbrowser, "open", fake_open)
    html_report.serve_html_and_open_browser(generate_html_report(dashboard), address=addresses["delegator"])
    assert seen["url"].startswith("http://127.0.0.1:")
    assert seen["url"].endswith(f"/?address={addresses['delegator']}")
    assert seen["status"] == 200
    err = capsys.readouterr().err
    assert "Serving dashboard at" in err
    assert "Leaderboard CSV" not in err
    assert "Server stopped" in err
