"""Lookup error taxonomy.

Every primary-path error aborts the whole lookup. Background enrichment never raises
these to the caller.
"""

GENERIC_SERVICE_MESSAGE = "Failed to load data from the Livepeer subgraph. Please try again later."


class DashboardError(Exception):
    """Base class for errors surfaced to the user."""

    @property
    def user_message(self) -> str:
        return str(self)


class InputValidationError(DashboardError, ValueError):
    """Malformed address or name; detected before any network call."""


class NameResolutionError(DashboardError, LookupError):
    """An ENS name resolved to no address."""

    def __init__(self, name: str):
        super().__init__(f'Could not resolve ENS name "{name}". Make sure it\'s a valid .eth name.')
        self.name = name


class DelegatorNotFoundError(DashboardError, LookupError):
    """A well-formed address has no delegator entity in the index."""

    def __init__(self, address: str):
        super().__init__(
            f"No delegator found at {address}. "
            "Make sure the wallet has delegated LPT on Livepeer (Arbitrum)."
        )
        self.address = address


class SubgraphError(DashboardError, RuntimeError):
    """The gateway returned an error list or could not be reached.

    Service-side and network-side failures are not distinguished in `user_message`.
    """

    @property
    def user_message(self) -> str:
        return GENERIC_SERVICE_MESSAGE
