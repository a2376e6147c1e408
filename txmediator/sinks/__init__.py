"""Output sinks for shipped transactions."""

from txmediator.sinks.console import ConsoleSink
from txmediator.sinks.json_file import JsonFileSink
from txmediator.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
