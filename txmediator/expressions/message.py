"""Inbound message abstraction consumed from the hosting pipeline."""

import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from lxml import etree

SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


class InboundMessage(Protocol):
    """What the mediator needs from an in-flight message.

    ``get_header`` / ``get_property`` may return values of any type; callers
    treat anything that is not a string as absent.
    """

    message_id: str

    def get_header(self, name: str) -> Any: ...

    def set_header(self, name: str, value: str | None) -> None: ...

    def get_property(self, name: str) -> Any: ...

    def set_property(self, name: str, value: Any) -> None: ...


@dataclass
class MessageContext:
    """In-memory message with a carrier header store, properties and an XML envelope.

    ``headers`` starts as None to model a carrier that has no header store
    yet; the first write creates it.
    """

    envelope: etree._Element | None = None
    message_id: str = field(default_factory=lambda: f"urn:uuid:{uuid.uuid4()}")
    headers: dict[str, Any] | None = None
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_xml(cls, payload: str | bytes, **kwargs: Any) -> "MessageContext":
        """Build a message whose envelope is parsed from ``payload``."""
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return cls(envelope=etree.fromstring(payload, SAFE_PARSER), **kwargs)

    def get_header(self, name: str) -> Any:
        if self.headers is None:
            return None
        return self.headers.get(name)

    def set_header(self, name: str, value: str | None) -> None:
        if self.headers is None:
            self.headers = {}
        self.headers[name] = value

    def get_property(self, name: str) -> Any:
        return self.properties.get(name)

    def set_property(self, name: str, value: Any) -> None:
        self.properties[name] = value
