#!/usr/bin/env python3
"""Run the ainoLog mediators of a proxy configuration against one message.

Builds a mediator factory from the agent and axis2 configuration files,
creates a mediator for every ainoLog element in the given proxy, api or
sequence document and mediates the message envelope once per mediator in
document order. All passes share the same message, so flow id and
operation propagate from one mediator to the next as they would between
hops. The agent is flushed and closed before exiting.
"""

import argparse
import logging
import sys
from pathlib import Path

from lxml import etree

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from txmediator.agent.config_loader import parse_document
from txmediator.config import SINK_KINDS, MediatorSettings
from txmediator.exceptions import TxMediatorError
from txmediator.expressions.message import MessageContext
from txmediator.factory import MediatorFactory
from txmediator.logging import setup_logging

logger = logging.getLogger(__name__)


def parse_pairs(pairs: list[str]) -> dict[str, str]:
    """Parse ``key=value`` arguments."""
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        result[key] = value
    return result


def main() -> int:
    """Main entry point."""
    settings = MediatorSettings.from_env()

    parser = argparse.ArgumentParser(description="Mediate a message through ainoLog mediators")
    parser.add_argument(
        "--agent-config",
        type=Path,
        default=settings.agent_config_path,
        help=f"Agent configuration file (default: {settings.agent_config_path})",
    )
    parser.add_argument(
        "--axis2-config",
        type=Path,
        default=None,
        help="axis2.xml used for the ESB server name",
    )
    parser.add_argument(
        "--proxy",
        type=Path,
        required=True,
        help="Proxy, api or sequence configuration containing ainoLog elements",
    )
    parser.add_argument(
        "--message",
        type=Path,
        required=True,
        help="XML message envelope to mediate",
    )
    parser.add_argument("--message-id", type=str, default=None, help="Message id (default: random urn:uuid)")
    parser.add_argument(
        "--property",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Message property, repeatable",
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Transport header, repeatable",
    )
    parser.add_argument("--sink", choices=SINK_KINDS, default=settings.sink, help="Where transactions are shipped")
    parser.add_argument("--topic", type=str, default=settings.topic, help="Topic or file stem for shipped transactions")
    parser.add_argument("--log-level", type=str, default=settings.log_level, help="Log level (default: INFO)")
    args = parser.parse_args()

    setup_logging(args.log_level, settings.log_format)
    settings.sink = args.sink

    try:
        properties = parse_pairs(args.property)
        headers = parse_pairs(args.header)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    try:
        factory = MediatorFactory(
            args.agent_config,
            args.axis2_config,
            sinks=settings.create_sinks(),
            topic=args.topic,
        )
        mediators = factory.create_mediators(parse_document(args.proxy))
        message = MessageContext.from_xml(args.message.read_bytes(), properties=properties, headers=headers or None)
    except (TxMediatorError, OSError, etree.XMLSyntaxError) as e:
        logger.error("Setup failed: %s", e)
        return 1

    if args.message_id:
        message.message_id = args.message_id

    logger.info("Mediating %s through %d mediators", args.message, len(mediators))
    for mediator in mediators:
        mediator.mediate(message)

    factory.agent.flush()
    factory.agent.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
