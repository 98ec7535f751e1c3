"""ENS name resolution through the ENS subgraph."""

from collections.abc import Iterable
from typing import Any

from livepeer_delegator.constants import ENS_RESOLVE_QUERY, ENS_REVERSE_QUERY
from livepeer_delegator.errors import NameResolutionError
from livepeer_delegator.formatters import entity_id


class ENSResolver:
    """Forward (name -> address) and best-effort reverse (address -> name) lookups."""

    def __init__(self, client: Any):
        self.client = client

    def resolve_name(self, name: str) -> str:
        """Resolve a .eth name to a lowercase address. Raises NameResolutionError on no match."""
        data = self.client.query(ENS_RESOLVE_QUERY, {"name": name.lower()})
        for domain in data.get("domains") or []:
            address = entity_id(domain.get("resolvedAddress"))
            if address:
                return address.lower()
        raise NameResolutionError(name)

    def reverse_lookup(self, addresses: Iterable[str]) -> dict[str, str]:
        """Map addresses to a name pointing at them. Partial; addresses without names are omitted.

        This is a forward-record search (names whose resolver targets the address), not a
        verified primary name.
        """
        wanted = sorted({a.lower() for a in addresses if a})
        if not wanted:
            return {}
        data = self.client.query(ENS_REVERSE_QUERY, {"addresses": wanted})
        out: dict[str, str] = {}
        for domain in data.get("domains") or []:
            address = entity_id(domain.get("resolvedAddress"))
            name = domain.get("name")
            if not address or not name:
                continue
            # Oldest registration wins.
            out.setdefault(address.lower(), str(name))
        return out
