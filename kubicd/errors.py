"""Exceptions raised by kubicd."""
from typing import Optional


class KubicdError(Exception):
    """Base class for all kubicd errors."""
    pass


class ConfigurationError(KubicdError):
    """Required cluster configuration is missing or unreadable."""
    pass


class TokenError(KubicdError):
    """Creating the join token or uploading certificates failed."""
    pass


class ResolutionError(KubicdError):
    """The connectivity probe itself could not be executed."""
    pass


class SinkClosed(KubicdError):
    """Raised by a status sink when its consumer went away."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "status sink closed")


class CertificateError(KubicdError):
    """certstrap failed to create or sign a certificate."""
    pass
