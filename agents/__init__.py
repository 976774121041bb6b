"""Agents package: provider-backed generation steps."""

from agents.base_agent import BaseAgent
from agents.planner_agent import PlannerAgent, ConfigRecommendation
from agents.writer_agent import WriterAgent, is_empty_generation

__all__ = [
    "BaseAgent",
    "PlannerAgent",
    "ConfigRecommendation",
    "WriterAgent",
    "is_empty_generation",
]
