"""
Agent Pools
═══════════

Shared agent model used by every pipeline tier:

  models.py  AgentDescriptor / AgentPerformance + fingerprint vectors
  arena.py   registration-ordered pool, reservation tokens, EMA updates
"""

from agent_pipeline.agents.arena import AgentArena, Reservation
from agent_pipeline.agents.models import (
    AgentDescriptor,
    AgentPerformance,
    AgentStatus,
    AgentTier,
    fingerprint_vector,
)

__all__ = [
    "AgentArena",
    "Reservation",
    "AgentDescriptor",
    "AgentPerformance",
    "AgentStatus",
    "AgentTier",
    "fingerprint_vector",
]
