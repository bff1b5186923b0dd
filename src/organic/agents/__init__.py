"""Agent package exports."""

from .base import Agent
from .loader import load_agent, load_agent_file

__all__ = ["Agent", "load_agent", "load_agent_file"]
