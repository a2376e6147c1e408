"""Expression evaluation against in-flight messages.

Expressions are XPath 1.0, compiled once at setup with the namespaces in
scope where they were declared. Whatever an expression returns is coerced
into an ordered list of strings:

- atomic results (string, number, boolean) become a one-element list,
  converted the way XPath ``string()`` converts them;
- node-sets become the string value of each node (element text content,
  attribute value, text node value), dropping nodes whose value is empty.

Two evaluator adapters exist. ``XPathEvaluator`` runs the compiled XPath
against the message envelope with lxml; ``HostEvaluator`` hands the
expression to a host message type that evaluates expressions itself.
``select_evaluator`` picks one once, at startup.
"""

import math
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Any

from lxml import etree

from txmediator.exceptions import ExpressionError
from txmediator.expressions.message import InboundMessage, MessageContext

_current_message: ContextVar[InboundMessage | None] = ContextVar("_current_message", default=None)


def _argument_text(value: Any) -> str:
    if isinstance(value, list):
        values = coerce_result(value)
        return values[0] if values else ""
    return _atomic_text(value)


def _get_property(context: Any, *args: Any) -> str:
    """XPath ``get-property(name)`` / ``get-property(scope, name)``."""
    if len(args) == 1:
        scope, name = "default", _argument_text(args[0])
    elif len(args) == 2:
        scope, name = _argument_text(args[0]), _argument_text(args[1])
    else:
        raise TypeError(f"get-property takes 1 or 2 arguments, got {len(args)}")

    message = _current_message.get()
    if message is None:
        return ""

    if scope == "transport":
        value = message.get_header(name)
    else:
        value = message.get_property(name)
    return "" if value is None else str(value)


EXTENSIONS = {(None, "get-property"): _get_property}


class Expression:
    """A compiled XPath expression with its source text and namespaces."""

    def __init__(self, text: str, namespaces: dict[str | None, str] | None = None) -> None:
        self.text = text
        # The default namespace cannot be bound to a prefix in XPath 1.0
        self.namespaces = {prefix: uri for prefix, uri in (namespaces or {}).items() if prefix}
        try:
            self._xpath = etree.XPath(text, namespaces=self.namespaces, extensions=EXTENSIONS)
        except etree.XPathError as e:
            raise ExpressionError(f"Invalid expression {text!r}: {e}", text) from e

    def evaluate_raw(self, node: Any, message: InboundMessage | None = None) -> Any:
        """Run the XPath against ``node`` with ``message`` visible to extensions."""
        token = _current_message.set(message)
        try:
            return self._xpath(node)
        finally:
            _current_message.reset(token)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Expression({self.text!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Expression) and (self.text, self.namespaces) == (other.text, other.namespaces)

    def __hash__(self) -> int:
        return hash(self.text)


def _atomic_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def _node_text(node: Any) -> str:
    if isinstance(node, etree._Element):
        return etree.tostring(node, method="text", encoding="unicode", with_tail=False)
    # Attribute values and text nodes come back as strings
    if isinstance(node, str):
        return str(node)
    return _atomic_text(node)


def coerce_result(result: Any) -> list[str]:
    """Normalise a raw evaluation result into an ordered list of strings."""
    if isinstance(result, list):
        return [text for text in (_node_text(node) for node in result) if text]
    return [_atomic_text(result)]


class ExpressionEvaluator(ABC):
    """Capability to evaluate an expression against a message."""

    @abstractmethod
    def evaluate(self, expression: Expression, message: InboundMessage) -> list[str]:
        """Evaluate ``expression`` and coerce the result.

        Raises
        ------
        ExpressionError
            If evaluation fails for any reason.
        """

    def first_value(self, expression: Expression, message: InboundMessage) -> str | None:
        """Return the first coerced value, or None when there is none."""
        values = self.evaluate(expression, message)
        return values[0] if values else None


class XPathEvaluator(ExpressionEvaluator):
    """Evaluates expressions with lxml against ``message.envelope``."""

    def evaluate(self, expression: Expression, message: InboundMessage) -> list[str]:
        envelope = getattr(message, "envelope", None)
        if envelope is None:
            raise ExpressionError("Message has no envelope to evaluate against", expression.text)
        try:
            raw = expression.evaluate_raw(envelope, message)
        except Exception as e:
            raise ExpressionError(f"Evaluation of {expression.text!r} failed: {e}", expression.text) from e
        return coerce_result(raw)


class HostEvaluator(ExpressionEvaluator):
    """Delegates to ``message.evaluate(text, namespaces)`` provided by the host."""

    def evaluate(self, expression: Expression, message: InboundMessage) -> list[str]:
        try:
            raw = message.evaluate(expression.text, expression.namespaces)  # type: ignore[attr-defined]
        except Exception as e:
            raise ExpressionError(f"Evaluation of {expression.text!r} failed: {e}", expression.text) from e
        return coerce_result(raw)


def select_evaluator(message_type: type = MessageContext) -> ExpressionEvaluator:
    """Pick the evaluator adapter for the host's message type."""
    if callable(getattr(message_type, "evaluate", None)):
        return HostEvaluator()
    return XPathEvaluator()
