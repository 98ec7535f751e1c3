"""CSV export of the orchestrator leaderboard."""

import csv
import io
from decimal import Decimal
from pathlib import Path
from typing import TextIO

from livepeer_delegator.analytics import projected_stake_yield
from livepeer_delegator.constants import EXPORT_COLUMNS, PERCENTAGE_SCALE
from livepeer_delegator.formatters import checksum_address
from livepeer_delegator.models import Leaderboard


def _fixed(value: Decimal, decimals: int) -> str:
    return f"{value:.{decimals}f}"


def leaderboard_rows(board: Leaderboard, stake: Decimal) -> list[dict[str, str]]:
    """One dict per leaderboard row, keyed by EXPORT_COLUMNS, in board order."""
    out: list[dict[str, str]] = []
    for rank, row in enumerate(board.rows, start=1):
        est_lpt, est_eth = projected_stake_yield(row, stake)
        out.append(
            {
                "rank": str(rank),
                "orchestrator": checksum_address(row.address),
                "ens_name": board.names.get(row.address, ""),
                "is_working": str(row.is_working).lower(),
                "calling_reward": str(row.calling_reward).lower(),
                "reward_apy_pct": _fixed(row.reward_apy, 4),
                "eth_fees_30d": _fixed(row.eth_30d, 6),
                "eth_fees_90d": _fixed(row.eth_90d, 6),
                "eth_yield_per_lpt_year": _fixed(row.eth_yield_per_lpt, 8),
                "reward_cut_pct": _fixed(row.reward_cut / PERCENTAGE_SCALE * 100, 2),
                "fee_share_pct": _fixed(row.fee_share / PERCENTAGE_SCALE * 100, 2),
                "total_stake": _fixed(row.stake, 2),
                "simulated_stake": _fixed(stake, 2),
                "est_lpt_year": _fixed(est_lpt, 4),
                "est_eth_year": _fixed(est_eth, 6),
                "is_current_orchestrator": str(row.address == board.current_orchestrator).lower(),
            }
        )
    return out


def write_leaderboard_csv(board: Leaderboard, stake: Decimal, out: TextIO) -> int:
    """Write the board as CSV (header + rows). Returns the number of data rows."""
    rows = leaderboard_rows(board, stake)
    writer = csv.DictWriter(out, fieldnames=list(EXPORT_COLUMNS), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return len(rows)


def leaderboard_csv(board: Leaderboard, stake: Decimal) -> str:
    buf = io.StringIO()
    write_leaderboard_csv(board, stake, buf)
    return buf.getvalue()


def export_leaderboard_csv(board: Leaderboard, stake: Decimal, path: Path) -> int:
    """Write the board to `path`, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        return write_leaderboard_csv(board, stake, f)
