"""Enumeration types for transactions and mediator configuration."""

from enum import Enum

from txmediator.exceptions import ParseError


class Status(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "Status":
        """Parse an exact, case-sensitive status literal.

        Raises
        ------
        ParseError
            If ``value`` is not one of ``success``, ``failure`` or ``unknown``.
        """
        for member in cls:
            if member.value == value:
                return member
        raise ParseError(f"Status must be one of: {[m.value for m in cls]}, got {value!r}")

    @classmethod
    def parse_or_unknown(cls, value: str | None) -> "Status":
        """Parse a status literal, mapping anything unrecognised to UNKNOWN."""
        try:
            return cls.parse(value)
        except ParseError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class ApplicationDirection(str, Enum):
    FROM = "from"
    TO = "to"

    def opposite(self) -> "ApplicationDirection":
        return ApplicationDirection.TO if self is ApplicationDirection.FROM else ApplicationDirection.FROM


class ArtifactType(str, Enum):
    """Enclosing artifact of a mediator; value is the reported type name."""

    API = "api"
    PROXY_SERVICE = "proxyService"
    SEQUENCE = "sequence"

    @classmethod
    def from_tag(cls, tag_name: str) -> "ArtifactType":
        """Map a configuration tag name (``api``, ``proxy``, ``sequence``) to a type."""
        if tag_name == "proxy":
            return cls.PROXY_SERVICE
        if tag_name in (cls.API.value, cls.SEQUENCE.value):
            return cls(tag_name)
        raise ParseError(f"Not an artifact tag: {tag_name!r}")

    def __str__(self) -> str:
        return self.value


class RegistryCategory(str, Enum):
    APPLICATIONS = "applications"
    OPERATIONS = "operations"
    PAYLOAD_TYPES = "payloadTypes"
    ID_TYPES = "idTypes"

    @classmethod
    def parse(cls, value: str) -> "RegistryCategory":
        try:
            return cls(value)
        except ValueError as e:
            raise ParseError(f"Unknown registry category: {value!r}") from e
