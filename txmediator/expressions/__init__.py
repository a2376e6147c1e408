"""Message abstraction and expression evaluation."""

from txmediator.expressions.evaluator import (
    Expression,
    ExpressionEvaluator,
    HostEvaluator,
    XPathEvaluator,
    coerce_result,
    select_evaluator,
)
from txmediator.expressions.message import InboundMessage, MessageContext

__all__ = [
    "Expression",
    "ExpressionEvaluator",
    "HostEvaluator",
    "InboundMessage",
    "MessageContext",
    "XPathEvaluator",
    "coerce_result",
    "select_evaluator",
]
