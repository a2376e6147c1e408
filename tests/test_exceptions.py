"""Tests for custom exception hierarchy."""

from txmediator.exceptions import (
    AgentDisabledError,
    ConfigurationError,
    ExpressionError,
    ParseError,
    SinkError,
    TxMediatorError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_txmediator_error_is_exception(self) -> None:
        assert isinstance(TxMediatorError("test"), Exception)

    def test_configuration_error_is_txmediator_error(self) -> None:
        assert isinstance(ConfigurationError("test"), TxMediatorError)

    def test_parse_error_is_value_error(self) -> None:
        err = ParseError("test")
        assert isinstance(err, ValueError)
        assert isinstance(err, TxMediatorError)

    def test_agent_disabled_is_txmediator_error(self) -> None:
        assert isinstance(AgentDisabledError("test"), TxMediatorError)

    def test_sink_error_is_txmediator_error(self) -> None:
        assert isinstance(SinkError("test"), TxMediatorError)

    def test_expression_error_keeps_expression(self) -> None:
        err = ExpressionError("Invalid expression", "//ord:orderId[")
        assert str(err) == "Invalid expression"
        assert err.expression == "//ord:orderId["

    def test_expression_error_without_expression(self) -> None:
        assert ExpressionError("failed").expression is None
