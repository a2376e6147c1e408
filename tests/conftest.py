"""Pytest configuration and fixtures."""

from typing import Any, Callable

import pytest
from lxml import etree

from txmediator.agent.agent import Agent, AgentHolder
from txmediator.agent.config_loader import load_agent_config
from txmediator.expressions.evaluator import XPathEvaluator
from txmediator.expressions.message import SAFE_PARSER, MessageContext
from txmediator.factory import MediatorFactory
from txmediator.registry import ValueRegistry

SYNAPSE_NS = "http://ws.apache.org/ns/synapse"

AGENT_CONFIG_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<config>
    <ainoLoggerService enabled="{enabled}">
        <address uri="https://data.aino.io/rest/v2.0/transaction" apiKey="test-api-key"/>
        <send interval="100" sizeThreshold="2"/>
    </ainoLoggerService>
    <operations>
        <operation key="update" name="Update"/>
        <operation key="create" name="Create"/>
    </operations>
    <applications>
        <application key="esb" name="ESB"/>
        <application key="app01" name="TestApp 1"/>
        <application key="app02" name="TestApp 2"/>
    </applications>
    <idTypes>
        <idType key="orderId" name="Order Id"/>
        <idType key="customerId" name="Customer Id"/>
    </idTypes>
    <payloadTypes>
        <payloadType key="subscriber" name="Subscriber"/>
    </payloadTypes>
</config>
"""

ENVELOPE = """<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
                  xmlns:ord="http://example.com/orders">
    <soapenv:Body>
        <ord:order>
            <ord:orderId>1001</ord:orderId>
            <ord:orderId>1002</ord:orderId>
            <ord:customerId>c-42</ord:customerId>
            <ord:operation>create</ord:operation>
            <ord:target>app02</ord:target>
            <ord:status>success</ord:status>
            <ord:note>Order received</ord:note>
        </ord:order>
    </soapenv:Body>
</soapenv:Envelope>
"""


class RecordingSink:
    """Sink that keeps every batch it receives."""

    def __init__(self) -> None:
        self.batches: list[tuple[str, list[Any]]] = []
        self.closed = False

    def write_batch(self, topic: str, records: list[Any]) -> None:
        self.batches.append((topic, list(records)))

    def close(self) -> None:
        self.closed = True

    @property
    def records(self) -> list[Any]:
        return [record for _, batch in self.batches for record in batch]


def agent_config_xml(enabled: bool = True) -> bytes:
    """Agent configuration document as bytes."""
    return AGENT_CONFIG_TEMPLATE.format(enabled="true" if enabled else "false").encode("utf-8")


@pytest.fixture
def agent_config() -> bytes:
    """Enabled agent configuration."""
    return agent_config_xml(enabled=True)


@pytest.fixture
def disabled_agent_config() -> bytes:
    """Disabled agent configuration."""
    return agent_config_xml(enabled=False)


@pytest.fixture
def registry(agent_config: bytes) -> ValueRegistry:
    """Registry loaded from the enabled agent configuration."""
    _, registry = load_agent_config(agent_config)
    return registry


@pytest.fixture
def sink() -> RecordingSink:
    """Sink recording shipped batches."""
    return RecordingSink()


@pytest.fixture
def agent(agent_config: bytes, sink: RecordingSink) -> Agent:
    """Enabled agent shipping to the recording sink."""
    config, registry = load_agent_config(agent_config)
    agent = Agent(config, registry, sinks=[sink])
    yield agent
    agent.close(timeout=5.0)


@pytest.fixture
def evaluator() -> XPathEvaluator:
    """XPath evaluator."""
    return XPathEvaluator()


@pytest.fixture
def factory(agent_config: bytes, sink: RecordingSink, monkeypatch: pytest.MonkeyPatch) -> MediatorFactory:
    """Factory with its own agent holder and a fixed server name."""
    monkeypatch.setenv("HOSTNAME", "esb-test-01")
    monkeypatch.delenv("COMPUTERNAME", raising=False)
    factory = MediatorFactory(agent_config, sinks=[sink], holder=AgentHolder())
    yield factory
    factory.agent.close(timeout=5.0)


@pytest.fixture
def disabled_factory(disabled_agent_config: bytes, monkeypatch: pytest.MonkeyPatch) -> MediatorFactory:
    """Factory whose agent is disabled."""
    monkeypatch.setenv("HOSTNAME", "esb-test-01")
    return MediatorFactory(disabled_agent_config, holder=AgentHolder())


@pytest.fixture
def make_element() -> Callable[[str], etree._Element]:
    """Build an ainoLog element from its XML body, inside a named proxy."""

    def _make(body: str, attributes: str = 'status="success"') -> etree._Element:
        document = (
            f'<proxy xmlns="{SYNAPSE_NS}" xmlns:ord="http://example.com/orders" name="OrderProxy">\n'
            f"<target><inSequence>\n"
            f"<ainoLog {attributes}>{body}</ainoLog>\n"
            f"</inSequence></target></proxy>"
        )
        root = etree.fromstring(document.encode("utf-8"), SAFE_PARSER)
        return root.find(f".//{{{SYNAPSE_NS}}}ainoLog")

    return _make


@pytest.fixture
def message() -> MessageContext:
    """Message carrying the sample order envelope."""
    return MessageContext.from_xml(ENVELOPE, message_id="urn:uuid:test-message-1")

