"""Per-field value resolution.

Each transaction field is configured with an optional static value and an
optional expression. When an expression is configured its value wins for
the pass; if it fails, yields nothing, or yields a key that the registry
does not know, the field falls back to its static value, or, for registry
backed fields without one, to the field's "unknown" key, which is
registered on first use so later passes treat it as known.
"""

import logging
from dataclasses import dataclass

from txmediator.exceptions import ConfigurationError, ExpressionError
from txmediator.expressions.evaluator import Expression, ExpressionEvaluator
from txmediator.expressions.message import InboundMessage
from txmediator.models.enums import RegistryCategory, Status
from txmediator.registry import ValueRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldConfig:
    """Static value and/or expression for one field, fixed at setup."""

    static_value: str | None = None
    expression: Expression | None = None

    @property
    def configured(self) -> bool:
        return self.static_value is not None or self.expression is not None


@dataclass(frozen=True)
class Fallback:
    """Registry key used when a dynamic value cannot be used."""

    key: str
    display_entry: str


class FieldResolver:
    """Resolves a free-text field such as the message."""

    def __init__(self, field_name: str, config: FieldConfig, evaluator: ExpressionEvaluator) -> None:
        self.field_name = field_name
        self.config = config
        self.evaluator = evaluator

    @property
    def static_value(self) -> str | None:
        return self.config.static_value

    @property
    def expression(self) -> Expression | None:
        return self.config.expression

    def evaluate(self, message: InboundMessage) -> str | None:
        """Evaluate the expression, returning None if it fails or yields nothing."""
        if self.config.expression is None:
            return None
        try:
            value = self.evaluator.first_value(self.config.expression, message)
        except ExpressionError as e:
            logger.warning(
                "Error while resolving the %s expression %s: %s",
                self.field_name,
                self.config.expression,
                e,
            )
            return None
        return value or None

    def resolve(self, message: InboundMessage) -> str | None:
        value = self.evaluate(message)
        return value if value is not None else self.config.static_value


class RegistryFieldResolver(FieldResolver):
    """Resolves a field whose value must be a key of a registry category.

    Parameters
    ----------
    field_name : str
        Field name used in log messages.
    config : FieldConfig
        Static key and/or expression.
    evaluator : ExpressionEvaluator
        Evaluator adapter.
    registry : ValueRegistry
        Registry the key is validated against.
    category : RegistryCategory
        Category of ``registry`` holding valid keys.
    fallback : Fallback
        Key registered and used when a dynamic value is unusable.
    validate_static : bool
        Reject a static key absent from the registry. Disabled for keys the
        mediator fills in itself.
    """

    def __init__(
        self,
        field_name: str,
        config: FieldConfig,
        evaluator: ExpressionEvaluator,
        registry: ValueRegistry,
        category: RegistryCategory,
        fallback: Fallback,
        validate_static: bool = True,
    ) -> None:
        super().__init__(field_name, config, evaluator)
        self.registry = registry
        self.category = category
        self.unknown = fallback

        if validate_static and config.static_value is not None and not registry.exists(category, config.static_value):
            raise ConfigurationError(
                f"Invalid {field_name} key {config.static_value!r}: "
                f"valid values are specified in the {category.value} section of the agent configuration"
            )

    def fallback(self) -> str:
        """Return the static key, or register and return the unknown key."""
        if self.config.static_value is not None:
            return self.config.static_value
        self.registry.ensure(self.category, self.unknown.key, self.unknown.display_entry)
        return self.unknown.key

    def resolve_dynamic(self, message: InboundMessage) -> str | None:
        """Resolve only the expression branch.

        Returns the evaluated key when registered, the fallback when the
        expression produced an unregistered key, and None when it produced
        nothing.
        """
        candidate = self.evaluate(message)
        if candidate is None:
            return None
        if self.registry.exists(self.category, candidate):
            return candidate

        fallback = self.fallback()
        logger.warning(
            "%s %r resolved from expression %s does not exist in %s, using %r instead",
            self.field_name,
            candidate,
            self.config.expression,
            self.category.value,
            fallback,
        )
        return fallback

    def resolve(self, message: InboundMessage) -> str | None:
        if self.config.expression is None:
            return self.config.static_value
        value = self.resolve_dynamic(message)
        return value if value is not None else self.fallback()


class StatusResolver(FieldResolver):
    """Resolves the three-valued status.

    A static status is parsed at setup and rejected if it is not one of the
    status literals; an evaluated status that is not a literal becomes
    ``unknown``.
    """

    def __init__(self, config: FieldConfig, evaluator: ExpressionEvaluator) -> None:
        super().__init__("status", config, evaluator)
        self.status: Status | None = None
        if config.static_value is not None:
            try:
                self.status = Status.parse(config.static_value)
            except ValueError as e:
                raise ConfigurationError(f"Mediator status must be one of: {[s.value for s in Status]}") from e

    def resolve(self, message: InboundMessage) -> Status:  # type: ignore[override]
        value = self.evaluate(message)
        if value is not None:
            status = Status.parse_or_unknown(value)
            if status is Status.UNKNOWN and value != Status.UNKNOWN.value:
                logger.warning(
                    "Status %r resolved from expression %s is not a valid status, using %r instead",
                    value,
                    self.config.expression,
                    Status.UNKNOWN.value,
                )
            return status
        return self.status if self.status is not None else Status.UNKNOWN


class IdResolver:
    """Evaluates one id type's expression into every matching value."""

    def __init__(self, type_key: str, expression: Expression, evaluator: ExpressionEvaluator) -> None:
        self.type_key = type_key
        self.expression = expression
        self.evaluator = evaluator

    def resolve(self, message: InboundMessage) -> list[str]:
        try:
            return self.evaluator.evaluate(self.expression, message)
        except ExpressionError as e:
            logger.warning("Error while resolving the ID expression %s: %s", self.expression, e)
            return []
