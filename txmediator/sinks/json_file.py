"""JSON Lines file sink."""

import logging
import threading
from pathlib import Path
from typing import Any

from txmediator.exceptions import SinkError
from txmediator.sinks.serialization import to_json

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Append shipped transactions to one JSON Lines file per topic."""

    def __init__(self, output_dir: str | Path) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write ``<topic>.jsonl`` files to.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def path_for(self, topic: str) -> Path:
        # esb.transactions -> esb_transactions.jsonl
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records, one JSON document per line."""
        file_path = self.path_for(topic)
        lines = "".join(to_json(record) + "\n" for record in records)

        with self._lock:
            try:
                with open(file_path, "a", encoding="utf-8") as f:
                    f.write(lines)
            except OSError as e:
                raise SinkError(f"Could not write to {file_path}: {e}") from e
            self._counts[topic] = self._counts.get(topic, 0) + len(records)

    @property
    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def close(self) -> None:
        """Log a summary of what was written."""
        for topic, count in self._counts.items():
            logger.info("Wrote %d records to %s", count, self.path_for(topic))
