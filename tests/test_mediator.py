"""Tests for TransactionMediator."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest
from lxml import etree

from txmediator.expressions import MessageContext
from txmediator.factory import MediatorFactory
from txmediator.models.enums import RegistryCategory, Status
from txmediator.models.transaction import Transaction

MakeElement = Callable[..., etree._Element]

FULL_BODY = """
    <operation key="create"/>
    <message value="Order received by ESB"/>
    <from applicationKey="app01"/>
    <to applicationKey="app02"/>
    <payloadType key="subscriber"/>
    <ids typeKey="orderId" expression="//ord:orderId"/>
    <multiids value="customerId=c-1"/>
    <property name="channel" value="web"/>
    <property name="status" value="shadowed"/>
"""


class TestResolve:
    """Tests for building a transaction from a message."""

    def test_full_transaction(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test every configured field lands on the transaction."""
        mediator = factory.create_mediator(make_element(FULL_BODY))

        tx = mediator.resolve(message)

        assert tx is not None
        assert tx.flow_id == "urn:uuid:test-message-1"
        assert tx.operation_key == "create"
        assert tx.status is Status.SUCCESS
        assert tx.from_key == "app01"
        assert tx.to_key == "app02"
        assert tx.payload_type_key == "subscriber"
        assert tx.message == "Order received by ESB"
        assert tx.ids == {"orderId": ["1001", "1002"], "customerId": ["c-1"]}
        assert tx.metadata == {
            "artifactType": "proxyService",
            "artifactName": "OrderProxy",
            "lineNumber": "3",
            "esbServerName": "esb-test-01",
            "channel": "web",
        }

    def test_from_defaults_to_esb(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test configuring only a to application fills from with esb."""
        mediator = factory.create_mediator(make_element('<to applicationKey="app02"/>'))

        tx = mediator.resolve(message)

        assert tx.from_key == "esb"
        assert tx.to_key == "app02"

    def test_to_defaults_to_esb(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test configuring only a from application fills to with esb."""
        tx = factory.create_mediator(make_element('<from applicationKey="app01"/>')).resolve(message)

        assert (tx.from_key, tx.to_key) == ("app01", "esb")

    def test_dynamic_application(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test an evaluated application key."""
        element = make_element('<from applicationKey="app01"/><to applicationKey="app01" expression="//ord:target"/>')

        assert factory.create_mediator(element).resolve(message).to_key == "app02"

    def test_unknown_dynamic_application(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext
    ) -> None:
        """Test an unregistered evaluated application falls back to the unknown application."""
        element = make_element('<from expression="//ord:note"/>')

        tx = factory.create_mediator(element).resolve(message)

        assert tx.from_key == "unknownApplication"
        assert factory.registry.exists(RegistryCategory.APPLICATIONS, "unknownApplication")

    def test_dynamic_status_non_literal(self, factory: MediatorFactory, make_element: MakeElement) -> None:
        """Test an evaluated status that is not a literal becomes unknown."""
        element = make_element('<to applicationKey="app02"/>', 'statusExpression="//status"')
        message = MessageContext.from_xml("<r><status>maybe</status></r>")

        assert factory.create_mediator(element).resolve(message).status is Status.UNKNOWN

    def test_failure_attaches_error_context(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext
    ) -> None:
        """Test a failed transaction carries the error properties that are present."""
        element = make_element('<to applicationKey="app02"/>', 'status="failure"')
        message.set_property("ERROR_CODE", 101503)
        message.set_property("ERROR_MESSAGE", "Connection refused")
        message.set_property("ERROR_EXCEPTION", "java.net.ConnectException")

        tx = factory.create_mediator(element).resolve(message)

        assert tx.status is Status.FAILURE
        assert tx.metadata["errorCode"] == "101503"
        assert tx.metadata["errorMessage"] == "Connection refused"
        assert tx.metadata["errorException"] == "java.net.ConnectException"
        assert "errorDetails" not in tx.metadata

    def test_success_ignores_error_context(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext
    ) -> None:
        """Test error properties are only attached on failure."""
        message.set_property("ERROR_CODE", 101503)

        tx = factory.create_mediator(make_element('<to applicationKey="app02"/>')).resolve(message)

        assert "errorCode" not in tx.metadata

    def test_empty_ids_skipped(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test id expressions without values add nothing."""
        element = make_element('<to applicationKey="app02"/><ids typeKey="orderId" expression="//ord:missing"/>')

        assert factory.create_mediator(element).resolve(message).ids == {}

    def test_property_expression(self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test custom properties can be evaluated."""
        element = make_element('<to applicationKey="app02"/><property name="customer" expression="//ord:customerId"/>')

        assert factory.create_mediator(element).resolve(message).metadata["customer"] == "c-42"

    def test_failed_property_skipped(
        self, factory: MediatorFactory, make_element: MakeElement, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a property whose expression fails is left out with a warning."""
        element = make_element('<to applicationKey="app02"/><property name="customer" expression="//ord:customerId"/>')

        with caplog.at_level(logging.WARNING, logger="txmediator"):
            tx = factory.create_mediator(element).resolve(MessageContext())

        assert "customer" not in tx.metadata
        assert "Error while resolving property customer" in caplog.text

    def test_disabled_agent(self, disabled_factory: MediatorFactory, make_element: MakeElement, message: MessageContext) -> None:
        """Test a disabled agent builds nothing but still propagates headers."""
        mediator = disabled_factory.create_mediator(make_element('<operation key="update"/><to applicationKey="app02"/>'))
        mediator.agent.add_transaction = MagicMock()

        assert mediator.resolve(message) is None
        assert mediator.mediate(message) is True
        mediator.agent.add_transaction.assert_not_called()
        assert message.get_header("ainoFlowId") == "urn:uuid:test-message-1"
        assert message.get_header("ainoOperationName") == "update"

    def test_pass_local_resolution(self, factory: MediatorFactory, make_element: MakeElement) -> None:
        """Test a fallback in one pass does not leak into the next."""
        element = make_element('<to applicationKey="app02"/><payloadType expression="//type"/>')
        mediator = factory.create_mediator(element)

        first = mediator.resolve(MessageContext.from_xml("<r><type>bogus</type></r>"))
        second = mediator.resolve(MessageContext.from_xml("<r><type>subscriber</type></r>"))

        assert first.payload_type_key == "unknownPayloadType"
        assert second.payload_type_key == "subscriber"
        assert mediator.payload_type.static_value is None


class TestMediate:
    """Tests for the mediation pass."""

    def test_hands_transaction_to_agent(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext, sink: Any
    ) -> None:
        """Test the transaction is shipped with a timestamp."""
        mediator = factory.create_mediator(make_element(FULL_BODY))

        assert mediator.mediate(message) is True
        assert factory.agent.flush(timeout=5.0)

        assert len(sink.records) == 1
        shipped = sink.records[0]
        assert isinstance(shipped, Transaction)
        assert shipped.operation_key == "create"
        assert shipped.timestamp is not None

    def test_errors_never_escape(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unexpected failure is logged and the pass still succeeds."""
        mediator = factory.create_mediator(make_element('<to applicationKey="app02"/>'))

        with patch.object(mediator, "resolve", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.ERROR, logger="txmediator"):
                assert mediator.mediate(message) is True

        assert "Error occurred while logging transaction at proxyService: OrderProxy:3" in caplog.text
        assert "boom" in caplog.text

    def test_summary_line(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test the summary line uses display entries and the separator."""
        element = make_element(FULL_BODY, 'status="success" separator="|"')
        mediator = factory.create_mediator(element)

        with caplog.at_level(logging.INFO, logger="txmediator"):
            mediator.mediate(message)

        assert (
            "channel = web|status = shadowed|operation = Create|flowId = urn:uuid:test-message-1"
            "|message = Order received by ESB|status = success|payloadType = Subscriber"
            "|from = TestApp 1|to = TestApp 2|ids = [orderId: [1001,1002],customerId: [c-1],]"
        ) in caplog.text

    def test_property_evaluated_once_per_pass(
        self, factory: MediatorFactory, make_element: MakeElement, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a failing property expression is evaluated and reported once per pass."""
        element = make_element('<to applicationKey="app02"/><property name="customer" expression="//ord:customerId"/>')
        mediator = factory.create_mediator(element)

        with caplog.at_level(logging.WARNING, logger="txmediator"):
            assert mediator.mediate(MessageContext()) is True

        warnings = [r for r in caplog.records if "Error while resolving property customer" in r.getMessage()]
        assert len(warnings) == 1

    def test_concurrent_passes(
        self, factory: MediatorFactory, make_element: MakeElement, message: MessageContext
    ) -> None:
        """Test concurrent passes each get their own transaction and one sentinel insert."""
        mediator = factory.create_mediator(make_element('<to applicationKey="app02"/><operation expression="//ord:note"/>'))
        envelope = etree.tostring(message.envelope)

        def run(i: int) -> Transaction:
            return mediator.resolve(MessageContext.from_xml(envelope, message_id=f"urn:uuid:{i}"))

        with ThreadPoolExecutor(max_workers=8) as executor:
            transactions = list(executor.map(run, range(50)))

        assert {tx.flow_id for tx in transactions} == {f"urn:uuid:{i}" for i in range(50)}
        assert {tx.operation_key for tx in transactions} == {"unknownOperation"}
        assert factory.registry.keys(RegistryCategory.OPERATIONS).count("unknownOperation") == 1
