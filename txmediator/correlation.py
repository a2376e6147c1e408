"""Flow id and operation propagation across mediation passes.

The first pass over a message settles its flow id and operation name and
writes both into the carrier header store, so every later pass over the
same message, at this hop or a later one, reads the same values back.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from txmediator.constants import FLOW_ID_KEY, OPERATION_KEY
from txmediator.expressions.message import InboundMessage
from txmediator.resolvers import RegistryFieldResolver

logger = logging.getLogger(__name__)


def _read_text(read: Callable[[str], Any], key: str) -> str | None:
    """Read a string value; anything else counts as absent."""
    try:
        value = read(key)
    except (TypeError, AttributeError, KeyError) as e:
        logger.debug("Could not read %s: %s", key, e)
        return None
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class Correlation:
    flow_id: str | None
    operation_key: str | None


class CorrelationPropagator:
    """Computes and persists flow id and operation name for a message.

    Parameters
    ----------
    operation : RegistryFieldResolver
        Operation resolver of the mediator. A static operation key always
        wins; otherwise a name already carried by the message is kept and
        a configured expression is only tried when there is none.
    """

    def __init__(self, operation: RegistryFieldResolver) -> None:
        self.operation = operation

    def flow_id(self, message: InboundMessage) -> str | None:
        """Header store, then message property, then the message id."""
        flow_id = _read_text(message.get_header, FLOW_ID_KEY)
        if flow_id is None:
            flow_id = _read_text(message.get_property, FLOW_ID_KEY)
        if flow_id is None:
            flow_id = message.message_id

        message.set_header(FLOW_ID_KEY, flow_id)
        return flow_id

    def operation_key(self, message: InboundMessage) -> str | None:
        """Static key, header store, message property, then expression."""
        if self.operation.static_value is not None:
            operation = self.operation.static_value
        else:
            operation = _read_text(message.get_header, OPERATION_KEY)
            if operation is None:
                operation = _read_text(message.get_property, OPERATION_KEY)
            if operation is None and self.operation.expression is not None:
                operation = self.operation.resolve_dynamic(message)
                if operation is None:
                    operation = self.operation.fallback()

        message.set_header(OPERATION_KEY, operation)
        return operation

    def propagate(self, message: InboundMessage) -> Correlation:
        return Correlation(self.flow_id(message), self.operation_key(message))
