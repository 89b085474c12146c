"""Skill entry points."""

from .guard_agent import GuardAgentSkill
from .market_analyzer import MarketAnalyzerSkill

__all__ = ["GuardAgentSkill", "MarketAnalyzerSkill"]
