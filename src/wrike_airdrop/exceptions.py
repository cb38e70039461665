"""
Custom exceptions for the Wrike Airdrop snap-in.
"""

from typing import Any, Dict, Optional


class AirdropError(Exception):
    """Base exception for all application-specific errors."""
    pass


class ConfigurationError(AirdropError, ValueError):
    """Error related to environment or packaged configuration."""
    pass


class EventValidationError(AirdropError):
    """An inbound lifecycle event failed validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class DocumentError(AirdropError):
    """Error related to a packaged mapping or metadata document."""
    pass


class DocumentLoadError(DocumentError):
    """Document is missing or could not be parsed."""
    pass


class DocumentValidationError(DocumentError):
    """Document parsed but violates structural rules."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class WorkerError(AirdropError):
    """Error during worker execution."""
    pass


class WorkerContractError(WorkerError):
    """A worker finished without honouring the terminal event contract."""
    pass


class TerminalEventViolation(WorkerError):
    """A second terminal event was emitted on a one-shot channel."""
    pass


# Source API errors
class WrikeAPIError(AirdropError):
    """Exception raised for Wrike API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class WrikeUnauthorizedError(WrikeAPIError):
    pass


class WrikeForbiddenError(WrikeAPIError):
    pass


class WrikeNotFoundError(WrikeAPIError):
    pass


class WrikeClientError(WrikeAPIError):
    pass


class WrikeServerError(WrikeAPIError):
    pass


class WrikeNetworkError(WrikeAPIError):
    pass
