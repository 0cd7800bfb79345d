# core/exceptions.py
"""Error taxonomy shared by every outbound call (ad platform, generation
provider, object storage, source downloads) and by the credit ledger."""


class RemoteServiceError(Exception):
    """A remote collaborator failed or rejected a request.

    ``status_code`` is ``None`` for transport level failures (DNS, reset,
    timeout), which are always worth another attempt.
    """

    def __init__(self, message, status_code=None, code=None, transient=False, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.transient = transient
        self.payload = payload or {}

    @property
    def retriable(self):
        if self.transient or self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500

    def __str__(self):
        return self.message


class PlatformAPIError(RemoteServiceError):
    """Advertising platform (Graph API) error."""


class ProviderError(RemoteServiceError):
    """Content generation provider error."""


class StorageError(RemoteServiceError):
    """Owned object storage rejected or failed an upload."""


class AssetFetchError(RemoteServiceError):
    """Externally hosted media could not be downloaded."""


class LedgerUnavailableError(RemoteServiceError):
    """Credit storage could not be read or written."""

    @property
    def retriable(self):
        return True
