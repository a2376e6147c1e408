"""Agent configuration document: service settings plus the value registry."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Union

from lxml import etree

from txmediator.exceptions import ConfigurationError
from txmediator.expressions.message import SAFE_PARSER
from txmediator.models.enums import RegistryCategory
from txmediator.registry import ValueRegistry

logger = logging.getLogger(__name__)

XmlSource = Union[str, Path, bytes, IO[bytes]]

DEFAULT_SEND_INTERVAL_MS = 5000
DEFAULT_SIZE_THRESHOLD = 100

# Registry section -> entry tag
REGISTRY_SECTIONS = {
    RegistryCategory.OPERATIONS: "operation",
    RegistryCategory.APPLICATIONS: "application",
    RegistryCategory.ID_TYPES: "idType",
    RegistryCategory.PAYLOAD_TYPES: "payloadType",
}


@dataclass
class AgentConfig:
    """Logging service settings read from the agent configuration document."""

    enabled: bool = False
    uri: str | None = None
    api_key: str | None = None
    send_interval_ms: int = DEFAULT_SEND_INTERVAL_MS
    size_threshold: int = DEFAULT_SIZE_THRESHOLD

    @property
    def send_interval(self) -> float:
        """Send interval in seconds."""
        return self.send_interval_ms / 1000


def parse_document(source: XmlSource) -> etree._Element:
    """Parse an XML document from a path, raw bytes or a binary file object.

    Raises
    ------
    ConfigurationError
        If the document cannot be read or is not well-formed.
    """
    try:
        if isinstance(source, bytes):
            return etree.fromstring(source, SAFE_PARSER)
        if isinstance(source, Path):
            source = str(source)
        return etree.parse(source, SAFE_PARSER).getroot()
    except etree.XMLSyntaxError as e:
        raise ConfigurationError(
            f"Malformed XML configuration: {e}. "
            "Check that '&' and '<' in attribute values are escaped as '&amp;' and '&lt;'"
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Could not read XML configuration {source!r}: {e}") from e


def _int_attribute(element: etree._Element | None, name: str, default: int) -> int:
    if element is None or element.get(name) is None:
        return default
    value = element.get(name)
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"Attribute {name!r} must be an integer, got {value!r}") from e


def _bool_attribute(element: etree._Element, name: str) -> bool:
    value = (element.get(name) or "false").strip().lower()
    if value not in ("true", "false"):
        raise ConfigurationError(f"Attribute {name!r} must be 'true' or 'false', got {value!r}")
    return value == "true"


def parse_agent_config(root: etree._Element) -> AgentConfig:
    service = root.find("ainoLoggerService")
    if service is None:
        raise ConfigurationError("Agent configuration is missing the ainoLoggerService element")

    address = service.find("address")
    send = service.find("send")
    return AgentConfig(
        enabled=_bool_attribute(service, "enabled"),
        uri=address.get("uri") if address is not None else None,
        api_key=address.get("apiKey") if address is not None else None,
        send_interval_ms=_int_attribute(send, "interval", DEFAULT_SEND_INTERVAL_MS),
        size_threshold=_int_attribute(send, "sizeThreshold", DEFAULT_SIZE_THRESHOLD),
    )


def parse_registry(root: etree._Element) -> ValueRegistry:
    """Read the four registry sections; missing sections are empty."""
    registry = ValueRegistry()
    for category, entry_tag in REGISTRY_SECTIONS.items():
        section = root.find(category.value)
        if section is None:
            continue
        for entry in section.iterfind(entry_tag):
            key = entry.get("key")
            if not key:
                raise ConfigurationError(f"{entry_tag} entry in {category.value} has no key")
            registry.ensure(category, key, entry.get("name") or key)

    logger.debug("Loaded registry: %s", registry.summary())
    return registry


def load_agent_config(source: XmlSource) -> tuple[AgentConfig, ValueRegistry]:
    """Load the agent configuration document.

    Parameters
    ----------
    source : XmlSource
        File path, raw XML bytes or a binary file object.

    Returns
    -------
    tuple[AgentConfig, ValueRegistry]
        Service settings and the registry of known keys.
    """
    root = parse_document(source)
    return parse_agent_config(root), parse_registry(root)
