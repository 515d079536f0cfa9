class SyncError(Exception):
    """Base class for every terminal failure of a sync run."""


class ConfigurationError(SyncError):
    """Missing or invalid setup (credentials, redirect URI). Not retriable."""


class AuthExchangeError(SyncError):
    """Token exchange with the provider failed or was rejected."""


class NotReadyError(SyncError):
    """Catalog operation attempted before the session was authenticated."""

    def __init__(self, message: str = "client is not ready, make sure user has authenticated the app") -> None:
        super().__init__(message)


class HandshakeTimeoutError(NotReadyError):
    """Interactive authorization did not complete within the allowed wait."""


class NetworkError(SyncError):
    """Transport failure while talking to the forum feed."""


class DecodeError(SyncError):
    """Forum feed returned a payload that could not be decoded."""


class ProviderError(SyncError):
    """Catalog provider call failed. Wrapped by the stage that observed it."""


class SearchError(SyncError):
    """Catalog search failed while resolving titles."""


class FetchError(SyncError):
    """Reading the target playlist failed."""


class AddError(SyncError):
    """Submitting a batch of tracks to the playlist failed."""
