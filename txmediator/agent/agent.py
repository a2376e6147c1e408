"""Reference logging agent: non-blocking handoff and background shipping."""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from txmediator.agent.config_loader import AgentConfig, XmlSource, load_agent_config
from txmediator.constants import ESB_APPLICATION_KEY
from txmediator.exceptions import AgentDisabledError, ConfigurationError
from txmediator.models.enums import RegistryCategory
from txmediator.models.transaction import Transaction
from txmediator.registry import ValueRegistry

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "esb.transactions"
DEFAULT_QUEUE_SIZE = 10_000

_SENTINEL = object()


class Sink(Protocol):
    def write_batch(self, topic: str, records: list[Any]) -> None: ...

    def close(self) -> None: ...


@dataclass
class AgentStats:
    """Counts of transactions accepted, dropped and shipped by the agent."""

    accepted: int = 0
    dropped: int = 0
    shipped: int = 0
    failed: int = 0


class Agent:
    """Accepts transactions from mediation passes and ships them in batches.

    ``add_transaction`` never blocks: transactions go onto a bounded queue
    drained by a daemon shipper thread, which writes a batch to every sink
    once ``size_threshold`` transactions are waiting or the send interval
    has elapsed.

    Parameters
    ----------
    config : AgentConfig
        Service settings.
    registry : ValueRegistry
        Registry of known keys, shared with every mediator built for this agent.
    sinks : list[Sink] | None
        Destinations for shipped batches.
    topic : str
        Topic (or file stem) the batches are written to.
    max_queue_size : int
        Transactions held before new ones are dropped.
    """

    def __init__(
        self,
        config: AgentConfig,
        registry: ValueRegistry,
        sinks: list[Sink] | None = None,
        topic: str = DEFAULT_TOPIC,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.config = config
        self.registry = registry
        self.sinks = list(sinks or [])
        self.topic = topic
        self.stats = AgentStats()
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._thread: threading.Thread | None = None
        self._thread_lock = threading.Lock()
        self._stats_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def new_transaction(self) -> Transaction:
        if not self.enabled:
            raise AgentDisabledError("Agent is disabled; no transactions can be created")
        return Transaction()

    def add_transaction(self, transaction: Transaction) -> None:
        """Stamp and enqueue ``transaction``; drop it if the queue is full."""
        transaction.timestamp = int(time.time() * 1000)
        self._ensure_started()
        try:
            self._queue.put_nowait(transaction)
        except queue.Full:
            with self._stats_lock:
                self.stats.dropped += 1
            logger.warning("Transaction queue full, dropping transaction for flow %s", transaction.flow_id)
            return
        with self._stats_lock:
            self.stats.accepted += 1

    def application_exists(self, key: str | None) -> bool:
        return self.registry.exists(RegistryCategory.APPLICATIONS, key)

    def operation_exists(self, key: str | None) -> bool:
        return self.registry.exists(RegistryCategory.OPERATIONS, key)

    def payload_type_exists(self, key: str | None) -> bool:
        return self.registry.exists(RegistryCategory.PAYLOAD_TYPES, key)

    def id_type_exists(self, key: str | None) -> bool:
        return self.registry.exists(RegistryCategory.ID_TYPES, key)

    def add_id_type(self, key: str, name: str) -> bool:
        return self.registry.ensure(RegistryCategory.ID_TYPES, key, name)

    def _ensure_started(self) -> None:
        with self._thread_lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._ship_loop, name="txmediator-shipper", daemon=True)
                self._thread.start()

    def _ship_loop(self) -> None:
        """Shipper thread: batch transactions and write them to every sink."""
        batch: list[Any] = []
        deadline = time.monotonic() + self.config.send_interval

        while True:
            try:
                item = self._queue.get(timeout=max(0.0, deadline - time.monotonic()))
            except queue.Empty:
                item = None

            if item is _SENTINEL:
                self._ship(batch)
                return
            if isinstance(item, threading.Event):
                self._ship(batch)
                batch = []
                item.set()
                continue
            if item is not None:
                batch.append(item)

            if len(batch) >= self.config.size_threshold or time.monotonic() >= deadline:
                self._ship(batch)
                batch = []
                deadline = time.monotonic() + self.config.send_interval

    def _ship(self, batch: list[Any]) -> None:
        if not batch:
            return
        for sink in self.sinks:
            try:
                sink.write_batch(self.topic, batch)
            except Exception:
                with self._stats_lock:
                    self.stats.failed += len(batch)
                logger.error("Sink %s failed to ship %d transactions", type(sink).__name__, len(batch), exc_info=True)
            else:
                with self._stats_lock:
                    self.stats.shipped += len(batch)
        logger.debug("Shipped %d transactions to %s", len(batch), self.topic)

    def flush(self, timeout: float = 30.0) -> bool:
        """Ship everything queued so far; returns False on timeout."""
        with self._thread_lock:
            running = self._thread is not None and self._thread.is_alive()
        if not running:
            return True
        done = threading.Event()
        self._queue.put(done)
        return done.wait(timeout)

    def close(self, timeout: float = 30.0) -> None:
        """Ship what is queued, stop the shipper thread and close the sinks."""
        with self._thread_lock:
            thread, self._thread = self._thread, None
        if thread is not None and thread.is_alive():
            self._queue.put(_SENTINEL)
            thread.join(timeout)
        for sink in self.sinks:
            sink.close()
        logger.info(
            "Agent closed: accepted=%d, dropped=%d, shipped=%d, failed=%d",
            self.stats.accepted,
            self.stats.dropped,
            self.stats.shipped,
            self.stats.failed,
        )


class AgentHolder:
    """Shared slot for the agent, built at most once.

    The lock is held across the whole build: concurrent callers block until
    the first one finishes and then reuse its agent. A build that raises
    leaves the slot empty, so the next caller tries again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._agent: Agent | None = None

    @property
    def agent(self) -> Agent | None:
        return self._agent

    def get_or_build(self, builder: Callable[[], Agent]) -> Agent:
        with self._lock:
            if self._agent is None:
                self._agent = builder()
            return self._agent

    def clear(self) -> Agent | None:
        """Empty the slot and return the agent it held."""
        with self._lock:
            agent, self._agent = self._agent, None
        return agent


def build_agent(
    source: XmlSource,
    sinks: list[Sink] | None = None,
    topic: str = DEFAULT_TOPIC,
) -> Agent:
    """Build an agent from its configuration document.

    Raises
    ------
    ConfigurationError
        If the document is invalid, or the agent is enabled but the
        ``esb`` application is not registered.
    """
    config, registry = load_agent_config(source)
    if config.enabled and not registry.exists(RegistryCategory.APPLICATIONS, ESB_APPLICATION_KEY):
        raise ConfigurationError(
            f"Application {ESB_APPLICATION_KEY!r} must be defined in the applications section of the agent configuration"
        )

    logger.info("Agent built: enabled=%s, registry=%s", config.enabled, registry.summary())
    return Agent(config, registry, sinks, topic)
