"""Custom exception hierarchy for txmediator."""


class TxMediatorError(Exception):
    """Base exception for all txmediator errors."""


class ConfigurationError(TxMediatorError):
    """Raised at setup time when configuration is invalid or missing."""


class ExpressionError(TxMediatorError):
    """Raised when an expression cannot be compiled or evaluated."""

    def __init__(self, message: str, expression: str | None = None) -> None:
        super().__init__(message)
        self.expression = expression


class ParseError(TxMediatorError, ValueError):
    """Raised when a literal does not name a member of a closed enumeration."""


class AgentDisabledError(TxMediatorError):
    """Raised when a transaction is requested from a disabled agent."""


class SinkError(TxMediatorError):
    """Raised when a sink operation fails."""
