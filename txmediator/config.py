"""Configuration management for txmediator."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from txmediator.constants import DEFAULT_AGENT_CONFIG_PATH, DEFAULT_AXIS2_CONFIG_PATH
from txmediator.exceptions import ConfigurationError

SINK_KINDS = ("console", "json", "kafka")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class MediatorSettings:
    """Process-level settings for running mediators outside the ESB."""

    agent_config_path: Path = field(default_factory=lambda: Path(DEFAULT_AGENT_CONFIG_PATH))
    axis2_config_path: Path = field(default_factory=lambda: Path(DEFAULT_AXIS2_CONFIG_PATH))
    sink: str = "console"
    topic: str = "esb.transactions"
    log_level: str = "INFO"
    log_format: str = "standard"
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def __post_init__(self) -> None:
        if self.sink not in SINK_KINDS:
            raise ConfigurationError(f"Sink must be one of {list(SINK_KINDS)}, got {self.sink!r}")

    @classmethod
    def from_env(cls) -> "MediatorSettings":
        """Create settings from environment variables."""
        import os

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            agent_config_path=Path(os.getenv("AGENT_CONFIG_PATH", DEFAULT_AGENT_CONFIG_PATH)),
            axis2_config_path=Path(os.getenv("AXIS2_CONFIG_PATH", DEFAULT_AXIS2_CONFIG_PATH)),
            sink=os.getenv("TX_SINK", "console"),
            topic=os.getenv("TX_TOPIC", "esb.transactions"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            kafka=kafka,
            output=output,
        )

    def create_sinks(self) -> list[Any]:
        """Instantiate the configured sink."""
        from txmediator.sinks import ConsoleSink, JsonFileSink, KafkaSink

        if self.sink == "json":
            return [JsonFileSink(self.output.json_output_dir)]
        if self.sink == "kafka":
            return [KafkaSink(self.kafka)]
        return [ConsoleSink(pretty=self.output.pretty_json)]
