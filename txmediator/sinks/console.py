"""Console sink for debugging and development."""

from typing import Any

from txmediator.sinks.serialization import to_json


class ConsoleSink:
    """Output shipped transactions to stdout."""

    def __init__(self, pretty: bool = True, max_records: int | None = None) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        max_records : int | None
            Maximum records to print per batch (None for all).
        """
        self.pretty = pretty
        self.max_records = max_records
        self._counts: dict[str, int] = {}

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Write a batch of records to console."""
        print(f"\n{'='*60}")
        print(f"Topic: {topic} ({len(records)} records)")
        print("=" * 60)

        display_records = records[: self.max_records] if self.max_records else records
        for record in display_records:
            print(to_json(record, pretty=self.pretty))

        if self.max_records and len(records) > self.max_records:
            print(f"... and {len(records) - self.max_records} more records")

        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def close(self) -> None:
        """Print summary."""
        print(f"\n{'='*60}")
        print("Console Sink Summary")
        print("=" * 60)
        for topic, count in self._counts.items():
            print(f"  {topic}: {count} records")
