"""Compound id strings: ``type=v1,v2||other=v3``."""

import logging

from txmediator.constants import (
    MULTI_ID_GROUP_DELIMITER,
    MULTI_ID_TYPE_DELIMITER,
    MULTI_ID_VALUE_DELIMITER,
    UNKNOWN_ID_TYPE_KEY,
    UNKNOWN_ID_TYPE_NAME,
)
from txmediator.expressions.evaluator import ExpressionEvaluator
from txmediator.expressions.message import InboundMessage
from txmediator.models.enums import RegistryCategory
from txmediator.registry import ValueRegistry
from txmediator.resolvers import FieldConfig, FieldResolver

logger = logging.getLogger(__name__)


def parse_multi_ids(text: str, registry: ValueRegistry) -> dict[str, list[str]]:
    """Parse a compound id string into id type -> values.

    Groups are separated by ``||``; a group is ``type=values`` and groups
    that do not split into exactly two parts on ``=`` are skipped. Values
    are split on ``,`` as-is, keeping empty tokens. Unknown id types are
    replaced by the unknown id type, which is registered on first use.

    Parameters
    ----------
    text : str
        Compound id string.
    registry : ValueRegistry
        Registry holding the known id types.

    Returns
    -------
    dict[str, list[str]]
        Values per id type, in the order they appear.
    """
    ids: dict[str, list[str]] = {}
    for group in text.split(MULTI_ID_GROUP_DELIMITER):
        parts = group.split(MULTI_ID_TYPE_DELIMITER)
        if len(parts) != 2:
            continue

        type_key, values = parts
        if not registry.exists(RegistryCategory.ID_TYPES, type_key):
            logger.warning(
                "Id type %r does not exist in %s, using %r instead",
                type_key,
                RegistryCategory.ID_TYPES.value,
                UNKNOWN_ID_TYPE_KEY,
            )
            registry.ensure(RegistryCategory.ID_TYPES, UNKNOWN_ID_TYPE_KEY, UNKNOWN_ID_TYPE_NAME)
            type_key = UNKNOWN_ID_TYPE_KEY

        ids.setdefault(type_key, []).extend(values.split(MULTI_ID_VALUE_DELIMITER))
    return ids


class MultiIdResolver(FieldResolver):
    """Resolves the compound id string, expression first, then the static value."""

    def __init__(self, config: FieldConfig, evaluator: ExpressionEvaluator, registry: ValueRegistry) -> None:
        super().__init__("multiids", config, evaluator)
        self.registry = registry

    def resolve_ids(self, message: InboundMessage) -> dict[str, list[str]]:
        text = self.resolve(message)
        if not text:
            return {}
        return parse_multi_ids(text, self.registry)
