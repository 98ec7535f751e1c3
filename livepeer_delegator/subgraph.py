"""GraphQL transport for The Graph gateway."""

from typing import Any

import requests

from livepeer_delegator.constants import GRAPH_GATEWAY_URL_TEMPLATE
from livepeer_delegator.errors import SubgraphError

DEFAULT_HEADERS = {"Content-Type": "application/json", "User-Agent": "livepeer-delegator/0.1"}


def build_gateway_url(api_key: str, subgraph_id: str) -> str:
    """Build the gateway URL for a subgraph ID."""
    if not api_key:
        raise ValueError("api_key must be non-empty")
    if not subgraph_id:
        raise ValueError("subgraph_id must be non-empty")
    return GRAPH_GATEWAY_URL_TEMPLATE.format(api_key=api_key.strip(), subgraph_id=subgraph_id.strip())


class SubgraphClient:
    """Issues read-only queries against one subgraph endpoint.

    Any non-empty `errors` list in the response is a hard failure for the request, as is
    any transport error. Safe to share across threads for concurrent queries.
    """

    def __init__(self, url: str, *, timeout_s: int = 30, session: requests.Session | None = None):
        self.url = url
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    def query(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a query and return its `data` payload."""
        try:
            resp = self._session.post(
                self.url,
                json={"query": document, "variables": variables or {}},
                headers=DEFAULT_HEADERS,
                timeout=self.timeout_s,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as ex:
            raise SubgraphError(f"Subgraph request failed: {ex}") from ex

        if not isinstance(payload, dict):
            raise SubgraphError("Unexpected subgraph response (expected JSON object)")

        errors = payload.get("errors")
        if errors:
            first = errors[0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise SubgraphError(f"Subgraph query error: {message}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise SubgraphError("Subgraph response has no data payload")
        return data

    def close(self) -> None:
        self._session.close()
