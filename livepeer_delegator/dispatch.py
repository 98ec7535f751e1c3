"""Query dispatch: input resolution and concurrent subgraph fetches."""

import queue
import re
import sys
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from decimal import Decimal
from typing import Any

from tqdm import tqdm

from livepeer_delegator.constants import (
    DELEGATOR_QUERY,
    EARNINGS_QUERY,
    ENS_SUFFIX,
    PROTOCOL_QUERY,
    QUERY_PAGE_SIZE,
    STAKE_EVENTS_QUERY,
    TRANSCODER_DAYS_QUERY,
    TRANSCODERS_QUERY,
    TREND_DAYS,
)
from livepeer_delegator.ens import ENSResolver
from livepeer_delegator.errors import DelegatorNotFoundError, InputValidationError, SubgraphError
from livepeer_delegator.models import ClaimRecord, DelegatorProfile, EventKind, NetworkBundle, StakeEvent
from livepeer_delegator.parsing import (
    parse_claims,
    parse_delegator_profile,
    parse_fee_trend,
    parse_orchestrators,
    parse_protocol,
    parse_stake_events,
)

ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
INVALID_INPUT_MESSAGE = "Please enter a valid Ethereum address (0x...) or ENS name (.eth)"

DEFAULT_TREND_WORKERS = 8


def parse_subject(raw: str) -> tuple[str, str | None]:
    """
    Classify raw user input without touching the network.

    Returns (address, None) for a 0x address (lowercased), or ("", name) for an ENS name
    that still needs resolving.
    """
    text = (raw or "").strip()
    if not text:
        raise InputValidationError(INVALID_INPUT_MESSAGE)
    if text.lower().endswith(ENS_SUFFIX):
        if len(text) <= len(ENS_SUFFIX):
            raise InputValidationError(INVALID_INPUT_MESSAGE)
        return "", text.lower()
    address = text.lower()
    if not ADDRESS_RE.match(address):
        raise InputValidationError(INVALID_INPUT_MESSAGE)
    return address, None


def resolve_subject(raw: str, ens: ENSResolver | None) -> tuple[str, str | None]:
    """Return (address, ens_name). Name resolution failure aborts the lookup."""
    address, name = parse_subject(raw)
    if name is None:
        return address, None
    if ens is None:
        raise InputValidationError(f'ENS resolution is not configured; cannot resolve "{name}"')
    return ens.resolve_name(name), name


def gather(calls: dict[str, Callable[[], Any]]) -> dict[str, Any]:
    """
    Run independent calls concurrently and join them.

    Completes only when every call succeeds; the first failure cancels whatever has not
    started yet and is re-raised. Partial results are discarded.
    """
    if not calls:
        return {}
    pool = ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="subgraph")
    try:
        futures = {name: pool.submit(fn) for name, fn in calls.items()}
        done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
        for name, fut in futures.items():
            if fut in done and fut.exception() is not None:
                for p in pending:
                    p.cancel()
                raise fut.exception()
        return {name: fut.result() for name, fut in futures.items()}
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def fetch_delegator_bundle(
    client: Any, address: str
) -> tuple[DelegatorProfile, list[ClaimRecord], dict[EventKind, list[StakeEvent]]]:
    """Fetch profile, claims and stake events for one address concurrently."""
    by_delegator = {"delegator": address, "first": QUERY_PAGE_SIZE}
    results = gather(
        {
            "delegator": lambda: client.query(DELEGATOR_QUERY, {"id": address}),
            "earnings": lambda: client.query(EARNINGS_QUERY, by_delegator),
            "events": lambda: client.query(STAKE_EVENTS_QUERY, by_delegator),
        }
    )

    raw_delegator = results["delegator"].get("delegator")
    if not raw_delegator:
        raise DelegatorNotFoundError(address)

    try:
        profile = parse_delegator_profile(raw_delegator)
        claims = parse_claims(results["earnings"].get("earningsClaimedEvents"))
        events = parse_stake_events(results["events"])
    except (KeyError, TypeError, ValueError) as ex:
        raise SubgraphError(f"Malformed delegator data for {address}: {ex}") from ex
    return profile, claims, events


def fetch_network_bundle(client: Any) -> NetworkBundle:
    """Fetch the active orchestrator list and protocol constants concurrently."""
    results = gather(
        {
            "transcoders": lambda: client.query(TRANSCODERS_QUERY, {"first": QUERY_PAGE_SIZE}),
            "protocol": lambda: client.query(PROTOCOL_QUERY),
        }
    )
    try:
        orchestrators = parse_orchestrators(results["transcoders"].get("transcoders"))
        protocol = parse_protocol(results["protocol"].get("protocol"))
    except (KeyError, TypeError, ValueError) as ex:
        raise SubgraphError(f"Malformed network data: {ex}") from ex
    return NetworkBundle(orchestrators=tuple(orchestrators), protocol=protocol)


def fetch_fee_trend(client: Any, address: str, *, days: int = TREND_DAYS) -> list[Decimal]:
    """Daily ETH fee volume for one orchestrator, oldest first."""
    data = client.query(TRANSCODER_DAYS_QUERY, {"transcoder": address, "first": days})
    return parse_fee_trend(data.get("transcoderDays"))


def fetch_fee_trends(
    client: Any,
    addresses: Iterable[str],
    *,
    max_workers: int = DEFAULT_TREND_WORKERS,
    on_result: Callable[[str, list[Decimal]], None] | None = None,
    show_progress: bool = True,
    stop: threading.Event | None = None,
) -> dict[str, list[Decimal]]:
    """
    Best-effort trend fetch for many orchestrators.

    Failures are reported on stderr and leave the address out of the result. Workers are
    daemon threads that stop picking up addresses once `stop` is set, so an abandoned
    fetch never holds up interpreter exit.
    """
    wanted = list(dict.fromkeys(a.lower() for a in addresses))
    results: dict[str, list[Decimal]] = {}
    if not wanted:
        return results

    work: queue.SimpleQueue[str] = queue.SimpleQueue()
    for addr in wanted:
        work.put(addr)
    lock = threading.Lock()

    with tqdm(
        total=len(wanted),
        desc="📈 Fetching fee trends",
        unit="orch",
        file=sys.stderr,
        disable=not show_progress,
    ) as pbar:

        def worker() -> None:
            while stop is None or not stop.is_set():
                try:
                    addr = work.get_nowait()
                except queue.Empty:
                    return
                try:
                    trend = fetch_fee_trend(client, addr)
                except Exception as ex:  # pylint: disable=broad-exception-caught
                    tqdm.write(f"⚠️  Fee trend failed for {addr}: {ex}", file=sys.stderr)
                else:
                    with lock:
                        results[addr] = trend
                    if on_result is not None:
                        on_result(addr, trend)
                with lock:
                    pbar.update(1)

        threads = [
            threading.Thread(target=worker, name=f"trend-{i}", daemon=True)
            for i in range(min(max_workers, len(wanted)))
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    with lock:
        return dict(results)
