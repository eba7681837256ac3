"""
Error Types

Exception hierarchy shared by providers, the analyzer and the batch executor.
Callers can tell failure causes apart by type without string matching.
"""

from typing import Optional


class VisionAuditError(Exception):
    """Base class for all vision-audit errors"""


class InvalidInputError(VisionAuditError):
    """
    Raised when a screenshot or analysis context is unusable.

    Never retried: the same input fails the same way every time.
    """


class ConfigurationError(VisionAuditError):
    """Raised when a provider cannot be built from the given configuration"""


class ProviderError(VisionAuditError):
    """
    Raised when a provider call fails at the transport or HTTP level.

    Attributes:
        status: HTTP status code, or None for transport failures
        body: Response body text (truncated), if any
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status {self.status}): {self.body[:500]}"


class ParseContractError(VisionAuditError):
    """Raised when a provider response lacks the envelope fields we rely on"""


class CaptureError(VisionAuditError):
    """Raised when a target page cannot be loaded or captured"""
