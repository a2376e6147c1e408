"""Logging agent that ships mediated transactions."""

from txmediator.agent.agent import DEFAULT_TOPIC, Agent, AgentHolder, AgentStats, build_agent
from txmediator.agent.config_loader import AgentConfig, load_agent_config, parse_document

__all__ = [
    "DEFAULT_TOPIC",
    "Agent",
    "AgentConfig",
    "AgentHolder",
    "AgentStats",
    "build_agent",
    "load_agent_config",
    "parse_document",
]
