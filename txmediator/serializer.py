"""Serialize a mediator back into its ``<ainoLog>`` configuration element."""

from lxml import etree

from txmediator import constants as c
from txmediator.mediator import TransactionMediator
from txmediator.models.enums import ApplicationDirection
from txmediator.resolvers import FieldResolver


def _set(element: etree._Element, attribute: str, value: object | None) -> None:
    if value is not None:
        element.set(attribute, str(value))


def _add_field(parent: etree._Element, tag_name: str, value_attribute: str, resolver: FieldResolver) -> None:
    if not resolver.config.configured:
        return
    child = etree.SubElement(parent, c.qname(tag_name))
    _set(child, value_attribute, resolver.static_value)
    _set(child, c.EXPRESSION_ATT, resolver.expression)


def serialize(mediator: TransactionMediator) -> etree._Element:
    """Build the ``<ainoLog>`` element that would recreate ``mediator``.

    The implicitly added ``esb`` direction, the default separator and
    unconfigured fields are left out. Expression namespaces are declared
    on the root element.
    """
    namespaces: dict[str | None, str] = {None: c.SYNAPSE_NAMESPACE}
    resolvers = [
        mediator.status,
        mediator.operation,
        mediator.message,
        mediator.from_application,
        mediator.to_application,
        mediator.payload_type,
        mediator.multi_ids,
    ]
    expressions = [r.expression for r in resolvers] + [i.expression for i in mediator.ids]
    expressions += [p.expression for p in mediator.properties]
    for expression in expressions:
        if expression is not None:
            for prefix, uri in expression.namespaces.items():
                namespaces.setdefault(prefix, uri)

    root = etree.Element(c.qname(c.ROOT_TAG_NAME), nsmap=namespaces)
    _set(root, c.STATUS_ATT, mediator.status.static_value)
    _set(root, c.STATUS_EXPRESSION_ATT, mediator.status.expression)
    if mediator.separator != c.DEFAULT_SEPARATOR:
        root.set(c.SEPARATOR_ATT, mediator.separator)

    _add_field(root, c.OPERATION_TAG_NAME, c.KEY_ATT, mediator.operation)
    _add_field(root, c.MESSAGE_TAG_NAME, c.VALUE_ATT, mediator.message)

    for id_resolver in mediator.ids:
        ids = etree.SubElement(root, c.qname(c.IDS_TAG_NAME))
        ids.set(c.TYPE_KEY_ATT, id_resolver.type_key)
        ids.set(c.EXPRESSION_ATT, str(id_resolver.expression))

    _add_field(root, c.MULTI_IDS_TAG_NAME, c.VALUE_ATT, mediator.multi_ids)

    for direction in (ApplicationDirection.FROM, ApplicationDirection.TO):
        if direction is not mediator.implicit_direction:
            _add_field(root, direction.value, c.APPLICATION_KEY_ATT, mediator.application(direction))

    _add_field(root, c.PAYLOAD_TYPE_TAG_NAME, c.KEY_ATT, mediator.payload_type)

    for prop in mediator.properties:
        child = etree.SubElement(root, c.qname(c.PROPERTY_TAG_NAME))
        child.set(c.NAME_ATT, prop.name)
        _set(child, c.VALUE_ATT, prop.value)
        _set(child, c.EXPRESSION_ATT, prop.expression)

    return root


def serialize_to_string(mediator: TransactionMediator, pretty: bool = True) -> str:
    return etree.tostring(serialize(mediator), encoding="unicode", pretty_print=pretty)
