"""Mediator that turns an in-flight message into a logged transaction."""

import logging
from dataclasses import dataclass
from typing import Any

from txmediator.agent.agent import Agent
from txmediator.constants import DATA_FIELDS, DEFAULT_SEPARATOR, ERROR_PROPERTIES
from txmediator.correlation import CorrelationPropagator
from txmediator.exceptions import ExpressionError
from txmediator.expressions.evaluator import Expression, ExpressionEvaluator
from txmediator.expressions.message import InboundMessage
from txmediator.models.enums import ApplicationDirection, RegistryCategory, Status
from txmediator.models.location import MediatorLocation
from txmediator.models.transaction import Transaction
from txmediator.multi_ids import MultiIdResolver
from txmediator.resolvers import FieldResolver, IdResolver, RegistryFieldResolver, StatusResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomProperty:
    """Pass-through property attached to the transaction as metadata."""

    name: str
    value: str | None = None
    expression: Expression | None = None


class TransactionMediator:
    """Resolves every transaction field for a message and hands the result to the agent.

    All configuration is fixed at construction; ``mediate`` keeps nothing
    between passes, so one instance can serve concurrent messages.
    """

    def __init__(
        self,
        agent: Agent,
        evaluator: ExpressionEvaluator,
        location: MediatorLocation,
        server_name: str | None,
        status: StatusResolver,
        operation: RegistryFieldResolver,
        message: FieldResolver,
        from_application: RegistryFieldResolver,
        to_application: RegistryFieldResolver,
        payload_type: RegistryFieldResolver,
        multi_ids: MultiIdResolver,
        ids: list[IdResolver] | None = None,
        properties: list[CustomProperty] | None = None,
        separator: str | None = None,
        implicit_direction: ApplicationDirection | None = None,
    ) -> None:
        self.agent = agent
        self.evaluator = evaluator
        self.location = location
        self.server_name = server_name
        self.status = status
        self.operation = operation
        self.message = message
        self.from_application = from_application
        self.to_application = to_application
        self.payload_type = payload_type
        self.multi_ids = multi_ids
        self.ids = ids or []
        self.properties = properties or []
        self.separator = separator or DEFAULT_SEPARATOR
        self.implicit_direction = implicit_direction
        self.correlation = CorrelationPropagator(operation)

    def application(self, direction: ApplicationDirection) -> RegistryFieldResolver:
        if direction is ApplicationDirection.FROM:
            return self.from_application
        return self.to_application

    def mediate(self, message: InboundMessage) -> bool:
        """Run one mediation pass. Always returns True so the pipeline continues."""
        try:
            transaction, property_values = self._resolve(message)
            self._log_summary(property_values, transaction)
            if transaction is not None:
                self.agent.add_transaction(transaction)
        except Exception:
            logger.exception("Error occurred while logging transaction at %s", self.location)
        return True

    def resolve(self, message: InboundMessage) -> Transaction | None:
        """Build the transaction for ``message``, or None when the agent is disabled.

        Flow id and operation are propagated to the message headers even
        when nothing is logged, so later hops stay consistent.
        """
        return self._resolve(message)[0]

    def _resolve(self, message: InboundMessage) -> tuple[Transaction | None, list[tuple[str, str | None]]]:
        correlation = self.correlation.propagate(message)
        property_values = self._custom_property_values(message)
        if not self.agent.enabled:
            return None, property_values

        transaction = self.agent.new_transaction()
        transaction.flow_id = correlation.flow_id
        transaction.operation_key = correlation.operation_key
        transaction.status = self.status.resolve(message)
        transaction.from_key = self.from_application.resolve(message)
        transaction.to_key = self.to_application.resolve(message)
        transaction.payload_type_key = self.payload_type.resolve(message)
        transaction.message = self.message.resolve(message)

        for id_resolver in self.ids:
            values = id_resolver.resolve(message)
            if values:
                transaction.add_ids_by_type_key(id_resolver.type_key, values)
        for type_key, values in self.multi_ids.resolve_ids(message).items():
            transaction.add_ids_by_type_key(type_key, values)

        self._add_location_metadata(transaction)
        if transaction.status is Status.FAILURE:
            self._add_error_metadata(message, transaction)

        for name, value in property_values:
            if name not in DATA_FIELDS and value is not None:
                transaction.add_metadata(name, value)

        return transaction, property_values

    def _add_location_metadata(self, transaction: Transaction) -> None:
        fields = {
            "artifactType": self.location.artifact_type,
            "artifactName": self.location.artifact_name,
            "lineNumber": self.location.line_number,
            "esbServerName": self.server_name,
        }
        for key, value in fields.items():
            if value is not None:
                transaction.add_metadata(key, value)

    def _add_error_metadata(self, message: InboundMessage, transaction: Transaction) -> None:
        for property_name, metadata_key in ERROR_PROPERTIES:
            try:
                value = message.get_property(property_name)
            except (TypeError, AttributeError, KeyError):
                continue
            if value is not None:
                transaction.add_metadata(metadata_key, value)

    def _custom_property_values(self, message: InboundMessage) -> list[tuple[str, str | None]]:
        values: list[tuple[str, str | None]] = []
        for prop in self.properties:
            value = prop.value
            if value is None and prop.expression is not None:
                try:
                    value = self.evaluator.first_value(prop.expression, message)
                except ExpressionError as e:
                    logger.warning("Error while resolving property %s expression %s: %s", prop.name, prop.expression, e)
            values.append((prop.name, value))
        return values

    def _log_summary(self, property_values: list[tuple[str, str | None]], transaction: Transaction | None) -> None:
        parts = [f"{name} = {value}" for name, value in property_values]

        if transaction is not None:
            registry = self.agent.registry
            fields: list[tuple[str, Any]] = [
                ("operation", registry.entry(RegistryCategory.OPERATIONS, transaction.operation_key)),
                ("flowId", transaction.flow_id),
                ("message", transaction.message),
                ("status", transaction.status.value),
                ("payloadType", registry.entry(RegistryCategory.PAYLOAD_TYPES, transaction.payload_type_key)),
                ("from", registry.entry(RegistryCategory.APPLICATIONS, transaction.from_key)),
                ("to", registry.entry(RegistryCategory.APPLICATIONS, transaction.to_key)),
            ]
            parts.extend(f"{name} = {value}" for name, value in fields)
            ids = "".join(f"{type_key}: [{','.join(values)}]," for type_key, values in transaction.ids.items())
            parts.append(f"ids = [{ids}]")

        logger.info(self.separator.join(parts))
