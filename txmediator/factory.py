"""Build mediators from ``<ainoLog>`` configuration elements."""

import logging
import os
import socket

from lxml import etree

from txmediator import constants as c
from txmediator.agent.agent import DEFAULT_TOPIC, Agent, AgentHolder, Sink, build_agent
from txmediator.agent.config_loader import XmlSource, parse_document
from txmediator.exceptions import ConfigurationError, ExpressionError
from txmediator.expressions.evaluator import Expression, select_evaluator
from txmediator.expressions.message import MessageContext
from txmediator.mediator import CustomProperty, TransactionMediator
from txmediator.models.enums import ApplicationDirection, RegistryCategory
from txmediator.models.location import MediatorLocation
from txmediator.multi_ids import MultiIdResolver
from txmediator.registry import ValueRegistry
from txmediator.resolvers import Fallback, FieldConfig, FieldResolver, IdResolver, RegistryFieldResolver, StatusResolver

logger = logging.getLogger(__name__)

UNKNOWN_APPLICATION = Fallback(c.UNKNOWN_APPLICATION_KEY, c.UNKNOWN_APPLICATION_NAME)
UNKNOWN_OPERATION = Fallback(c.UNKNOWN_OPERATION_KEY, c.UNKNOWN_OPERATION_NAME)
UNKNOWN_PAYLOAD_TYPE = Fallback(c.UNKNOWN_PAYLOAD_TYPE_KEY, c.UNKNOWN_PAYLOAD_TYPE_NAME)

# Shared across factories in one process, like the ESB's single agent
default_holder = AgentHolder()


def _server_name_from_axis2(source: XmlSource) -> str | None:
    try:
        root = parse_document(source)
    except ConfigurationError as e:
        logger.warning("Could not read server name from axis2 configuration: %s", e)
        return None
    names = [name.strip() for name in root.getroottree().xpath(c.SERVER_NAME_XPATH) if name.strip()]
    return names[0] if names else None


def resolve_server_name(axis2_source: XmlSource | None = None) -> str:
    """Name of the host the mediators run on.

    ``COMPUTERNAME``, then ``HOSTNAME``, then the ``SynapseConfig.ServerName``
    parameter of the axis2 configuration, then the socket host name.
    """
    for variable in ("COMPUTERNAME", "HOSTNAME"):
        name = os.getenv(variable)
        if name:
            return name

    if axis2_source is not None:
        name = _server_name_from_axis2(axis2_source)
        if name:
            return name

    try:
        return socket.gethostname() or "localhost"
    except OSError:
        return "localhost"


class MediatorFactory:
    """Creates ``TransactionMediator`` instances sharing one agent.

    The agent is built once through ``holder``; every later factory using
    the same holder reuses it. The expression evaluator is chosen once,
    from the message type the host will pass to ``mediate``.

    Parameters
    ----------
    agent_config : XmlSource
        Agent configuration document.
    axis2_config : XmlSource | None
        Axis2 configuration document, used for the server name.
    sinks : list[Sink] | None
        Sinks for a newly built agent.
    topic : str
        Topic for a newly built agent.
    holder : AgentHolder | None
        Holder of the shared agent; the process-wide one by default.
    message_type : type
        Type of the messages the host passes to the mediators.
    """

    def __init__(
        self,
        agent_config: XmlSource,
        axis2_config: XmlSource | None = None,
        sinks: list[Sink] | None = None,
        topic: str = DEFAULT_TOPIC,
        holder: AgentHolder | None = None,
        message_type: type = MessageContext,
    ) -> None:
        self.holder = holder if holder is not None else default_holder
        self.server_name = resolve_server_name(axis2_config)
        self.agent: Agent = self.holder.get_or_build(lambda: build_agent(agent_config, sinks, topic))
        self.evaluator = select_evaluator(message_type)
        logger.debug("Mediator factory ready: server=%s, evaluator=%s", self.server_name, type(self.evaluator).__name__)

    @property
    def registry(self) -> ValueRegistry:
        return self.agent.registry

    def _expression(self, element: etree._Element, attribute: str) -> Expression | None:
        text = element.get(attribute)
        if text is None:
            return None
        try:
            return Expression(text, element.nsmap)
        except ExpressionError as e:
            raise ConfigurationError(
                f"An invalid expression has been given to the {etree.QName(element).localname} element: {e}"
            ) from e

    def _child(self, element: etree._Element, tag_name: str) -> etree._Element | None:
        return element.find(c.qname(tag_name))

    def _field_config(self, element: etree._Element | None, value_attribute: str) -> FieldConfig:
        if element is None:
            return FieldConfig()
        return FieldConfig(element.get(value_attribute), self._expression(element, c.EXPRESSION_ATT))

    def _registry_field(
        self,
        field_name: str,
        config: FieldConfig,
        category: RegistryCategory,
        fallback: Fallback,
        validate_static: bool = True,
    ) -> RegistryFieldResolver:
        return RegistryFieldResolver(
            field_name, config, self.evaluator, self.registry, category, fallback, validate_static
        )

    def _applications(
        self, element: etree._Element
    ) -> tuple[RegistryFieldResolver, RegistryFieldResolver, ApplicationDirection | None]:
        configs = {
            direction: self._child(element, direction.value)
            for direction in (ApplicationDirection.FROM, ApplicationDirection.TO)
        }
        present = [direction for direction, child in configs.items() if child is not None]
        if not present:
            raise ConfigurationError("From or To must be defined for the ainoLog element")

        implicit = present[0].opposite() if len(present) == 1 else None
        resolvers = {}
        for direction, child in configs.items():
            if direction is implicit:
                config = FieldConfig(static_value=c.ESB_APPLICATION_KEY)
            else:
                config = self._field_config(child, c.APPLICATION_KEY_ATT)
            resolvers[direction] = self._registry_field(
                f"{direction.value} application",
                config,
                RegistryCategory.APPLICATIONS,
                UNKNOWN_APPLICATION,
                validate_static=direction is not implicit,
            )
        return resolvers[ApplicationDirection.FROM], resolvers[ApplicationDirection.TO], implicit

    def _ids(self, element: etree._Element) -> list[IdResolver]:
        ids = []
        for ids_element in element.iterfind(c.qname(c.IDS_TAG_NAME)):
            type_key = ids_element.get(c.TYPE_KEY_ATT)
            if not self.registry.exists(RegistryCategory.ID_TYPES, type_key):
                raise ConfigurationError(f"An invalid id type {type_key!r} has been given to the ids element")
            expression = self._expression(ids_element, c.EXPRESSION_ATT)
            if expression is None:
                raise ConfigurationError(f"The ids element for {type_key!r} has no expression")
            ids.append(IdResolver(type_key, expression, self.evaluator))
        return ids

    def _properties(self, element: etree._Element) -> list[CustomProperty]:
        properties = []
        for property_element in element.iterfind(c.qname(c.PROPERTY_TAG_NAME)):
            name = property_element.get(c.NAME_ATT)
            if not name:
                raise ConfigurationError("A property element of the ainoLog element has no name")
            value = property_element.get(c.VALUE_ATT)
            expression = self._expression(property_element, c.EXPRESSION_ATT)
            if value is None and expression is None:
                raise ConfigurationError(f"Property {name!r} needs a value or an expression")
            if name in c.DATA_FIELDS:
                logger.warning("Property %r shadows a transaction field and will not be attached as metadata", name)
            properties.append(CustomProperty(name, value, expression))
        return properties

    def create_mediator(self, element: etree._Element) -> TransactionMediator:
        """Build a mediator from an ``<ainoLog>`` element.

        Raises
        ------
        ConfigurationError
            If the element is not an ``ainoLog`` element, references keys
            missing from the registry, has an invalid status or expression,
            or configures neither a from nor a to application.
        """
        if element.tag != c.qname(c.ROOT_TAG_NAME):
            raise ConfigurationError(f"Expected an {c.qname(c.ROOT_TAG_NAME)} element, got {element.tag}")

        status = StatusResolver(
            FieldConfig(element.get(c.STATUS_ATT), self._expression(element, c.STATUS_EXPRESSION_ATT)),
            self.evaluator,
        )
        from_application, to_application, implicit = self._applications(element)
        operation = self._registry_field(
            "operation",
            self._field_config(self._child(element, c.OPERATION_TAG_NAME), c.KEY_ATT),
            RegistryCategory.OPERATIONS,
            UNKNOWN_OPERATION,
        )
        payload_type = self._registry_field(
            "payload type",
            self._field_config(self._child(element, c.PAYLOAD_TYPE_TAG_NAME), c.KEY_ATT),
            RegistryCategory.PAYLOAD_TYPES,
            UNKNOWN_PAYLOAD_TYPE,
        )
        message = FieldResolver(
            "message",
            self._field_config(self._child(element, c.MESSAGE_TAG_NAME), c.VALUE_ATT),
            self.evaluator,
        )
        multi_ids = MultiIdResolver(
            self._field_config(self._child(element, c.MULTI_IDS_TAG_NAME), c.VALUE_ATT),
            self.evaluator,
            self.registry,
        )

        mediator = TransactionMediator(
            agent=self.agent,
            evaluator=self.evaluator,
            location=MediatorLocation.from_element(element),
            server_name=self.server_name,
            status=status,
            operation=operation,
            message=message,
            from_application=from_application,
            to_application=to_application,
            payload_type=payload_type,
            multi_ids=multi_ids,
            ids=self._ids(element),
            properties=self._properties(element),
            separator=element.get(c.SEPARATOR_ATT),
            implicit_direction=implicit,
        )
        logger.debug("Created mediator at %s", mediator.location)
        return mediator

    def create_mediators(self, document: etree._Element) -> list[TransactionMediator]:
        """Build a mediator for every ``<ainoLog>`` element in ``document``, in document order."""
        return [self.create_mediator(element) for element in document.iter(c.qname(c.ROOT_TAG_NAME))]
