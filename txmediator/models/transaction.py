"""Transaction record handed to the logging agent."""

from dataclasses import dataclass, field

from txmediator.models.enums import Status


@dataclass
class Transaction:
    """One mediation pass worth of resolved fields.

    ``timestamp`` is assigned by the agent when the transaction is handed
    off, in epoch milliseconds.
    """

    flow_id: str | None = None
    operation_key: str | None = None
    status: Status = Status.UNKNOWN
    from_key: str | None = None
    to_key: str | None = None
    payload_type_key: str | None = None
    message: str | None = None
    ids: dict[str, list[str]] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    timestamp: int | None = None

    def add_metadata(self, key: str, value: object) -> None:
        """Set a metadata entry; last write wins."""
        self.metadata[key] = str(value)

    def add_ids_by_type_key(self, type_key: str, values: list[str]) -> None:
        """Append values under an id type, preserving extraction order."""
        self.ids.setdefault(type_key, []).extend(values)
