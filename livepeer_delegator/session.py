"""Dashboard session state.

One session holds:
- the current subject (an immutable DelegatorDashboard, replaced wholesale per lookup)
- a lookup generation counter so a slow, superseded lookup can never overwrite a newer one
- the network-wide comparison bundle, fetched at most once per session
- append-only side tables filled by detached enrichment (ENS names, fee trends)
"""

import sys
import threading
from collections.abc import Iterable
from concurrent.futures import Future, wait
from decimal import Decimal
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from livepeer_delegator.analytics import FILTER_WORKING, build_dashboard, project_network, rank_orchestrators
from livepeer_delegator.constants import DEFAULT_SHARE_BASE_URL, DEFAULT_SORT_COLUMN, SHARE_QUERY_PARAM
from livepeer_delegator.dispatch import (
    DEFAULT_TREND_WORKERS,
    fetch_delegator_bundle,
    fetch_fee_trends,
    fetch_network_bundle,
    resolve_subject,
)
from livepeer_delegator.ens import ENSResolver
from livepeer_delegator.models import DelegatorDashboard, Leaderboard, NetworkBundle, OrchestratorYield


def share_url(address: str, base_url: str = DEFAULT_SHARE_BASE_URL) -> str:
    """Rewrite the address query parameter of `base_url`, keeping any other parameters."""
    parts = urlsplit(base_url)
    params = {k: v for k, v in parse_qs(parts.query, keep_blank_values=True).items() if k != SHARE_QUERY_PARAM}
    params[SHARE_QUERY_PARAM] = [address]
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(params, doseq=True), parts.fragment))


def address_from_url(url: str) -> str | None:
    """Extract the address query parameter from a share URL (unvalidated)."""
    values = parse_qs(urlsplit(url).query).get(SHARE_QUERY_PARAM)
    if not values:
        return None
    value = values[0].strip()
    return value or None


class DashboardSession:
    """Lookup state for one interactive session (one CLI run or one embedding app)."""

    def __init__(
        self,
        client: Any,
        ens: ENSResolver | None = None,
        *,
        trend_workers: int = DEFAULT_TREND_WORKERS,
        show_progress: bool = True,
    ):
        self.client = client
        self.ens = ens
        self.show_progress = show_progress

        self._lock = threading.Lock()
        self._generation = 0
        self._current: DelegatorDashboard | None = None

        self._network_lock = threading.Lock()
        self._network: NetworkBundle | None = None

        self._names: dict[str, str] = {}
        self._trends: dict[str, list[Decimal]] = {}
        self.trend_workers = trend_workers
        self._stop = threading.Event()
        self._pending: list[Future] = []

    # ── current subject ──

    @property
    def current(self) -> DelegatorDashboard | None:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    def begin_lookup(self) -> int:
        """Start a lookup and return its generation token."""
        with self._lock:
            self._generation += 1
            return self._generation

    def commit(self, generation: int, dashboard: DelegatorDashboard | None) -> bool:
        """Install a lookup result if it is still the latest one. Returns False if discarded."""
        with self._lock:
            if generation != self._generation:
                return False
            self._current = dashboard
            return True

    def load(self, raw: str) -> DelegatorDashboard:
        """Resolve and fetch one delegator (no session state is touched)."""
        address, ens_name = resolve_subject(raw, self.ens)
        profile, claims, events = fetch_delegator_bundle(self.client, address)
        return build_dashboard(profile, claims, events, ens_name=ens_name)

    def lookup(self, raw: str) -> DelegatorDashboard | None:
        """
        Run a full lookup and make it the current subject.

        On failure the current subject is cleared and the error re-raised. Returns None when a
        newer lookup started meanwhile (the result is dropped).
        """
        generation = self.begin_lookup()
        try:
            dashboard = self.load(raw)
        except Exception:
            self.commit(generation, None)
            raise
        if not self.commit(generation, dashboard):
            return None
        return dashboard

    # ── network comparison ──

    @property
    def network_loaded(self) -> bool:
        return self._network is not None

    def network(self) -> NetworkBundle:
        """Orchestrators and protocol constants; fetched once per session, not per address."""
        with self._network_lock:
            if self._network is None:
                self._network = fetch_network_bundle(self.client)
            return self._network

    def leaderboard(
        self,
        *,
        filter_mode: str = FILTER_WORKING,
        sort_column: str = DEFAULT_SORT_COLUMN,
        descending: bool = True,
    ) -> Leaderboard:
        """Ranked comparison rows with the current subject's orchestrator highlighted."""
        rows: list[OrchestratorYield] = project_network(self.network())
        current = self._current
        delegate = current.profile.delegate if current is not None else None
        return rank_orchestrators(
            rows,
            filter_mode=filter_mode,
            sort_column=sort_column,
            descending=descending,
            current_orchestrator=delegate.address if delegate else None,
            names=self.names,
        )

    # ── background enrichment ──

    @property
    def names(self) -> dict[str, str]:
        with self._lock:
            return dict(self._names)

    @property
    def trends(self) -> dict[str, list[Decimal]]:
        with self._lock:
            return dict(self._trends)

    def _record_name(self, address: str, name: str) -> None:
        with self._lock:
            self._names.setdefault(address.lower(), name)

    def _record_trend(self, address: str, trend: list[Decimal]) -> None:
        with self._lock:
            self._trends.setdefault(address.lower(), trend)

    def _spawn(self, fn: Any, *args: Any) -> Future:
        # Daemon thread: abandoned enrichment must not hold up interpreter exit.
        fut: Future = Future()

        def run() -> None:
            if not fut.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args)
            except BaseException as ex:  # pylint: disable=broad-exception-caught
                fut.set_exception(ex)
            else:
                fut.set_result(result)

        threading.Thread(target=run, name=f"enrich-{fn.__name__}", daemon=True).start()
        self._pending.append(fut)
        return fut

    def _names_task(self, addresses: list[str]) -> None:
        if self.ens is None or not addresses or self._stop.is_set():
            return
        try:
            found = self.ens.reverse_lookup(addresses)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  ENS name lookup failed: {ex}", file=sys.stderr)
            return
        for address, name in found.items():
            self._record_name(address, name)

    def _trends_task(self, addresses: list[str]) -> None:
        try:
            fetch_fee_trends(
                self.client,
                addresses,
                max_workers=self.trend_workers,
                on_result=self._record_trend,
                show_progress=self.show_progress,
                stop=self._stop,
            )
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  Fee trend enrichment failed: {ex}", file=sys.stderr)

    def enrich_names(self, addresses: Iterable[str]) -> Future:
        """Detached reverse-ENS lookup; never raises to the caller."""
        with self._lock:
            wanted = [a.lower() for a in addresses if a and a.lower() not in self._names]
        return self._spawn(self._names_task, wanted)

    def enrich_trends(self, addresses: Iterable[str]) -> Future:
        """Detached fee trend fetch for leaderboard sparklines; never raises to the caller."""
        with self._lock:
            wanted = [a.lower() for a in addresses if a and a.lower() not in self._trends]
        return self._spawn(self._trends_task, wanted)

    def wait_for_enrichment(self, timeout_s: float | None = None) -> bool:
        """Block until submitted enrichment finishes. Returns False on timeout."""
        pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout_s)
        self._pending = [f for f in self._pending if not f.done()]
        return not not_done

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        """Stop issuing enrichment requests. In-flight ones are abandoned, not joined."""
        self._stop.set()

    def __enter__(self) -> "DashboardSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
