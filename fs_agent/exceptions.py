"""Custom exceptions for fs-agent."""


class AgentError(Exception):
    """Base exception for all fs-agent operations."""


class ValidationError(AgentError):
    """Raised when the run configuration is malformed."""


class ServiceError(AgentError):
    """Raised when a call to the remote service fails (network, auth or protocol)."""


class ReportGenerationError(AgentError):
    """Raised when a report or offline artifact cannot be written."""


class ScanError(AgentError):
    """Raised when dependency scanning cannot proceed."""


class ScmError(AgentError):
    """Raised when a source-control checkout fails."""
