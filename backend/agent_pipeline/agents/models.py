"""
Shared Agent Model
══════════════════

Both pipeline tiers (content_reading, task_creation) describe their workers
with the same AgentDescriptor:

  id / name / tier      : identity and owning pipeline stage
  specializations       : free-form capability tags
  vector                : unit-norm fingerprint (length 1024 by default)
  performance           : EMA-smoothed success rate, quality, latency
  status                : idle | busy, managed by AgentArena reservations
  processed_count       : units of work recorded through the EMA update

Fingerprint vectors
───────────────────
  hash(tags) → sin((h + i) × 0.01) × 0.5 + 0.5 → L2-normalise

The vector is a descriptive field only. Routing in both coordinators ranks
agents on performance.quality_score and never reads the fingerprint.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class AgentTier(str, Enum):
    """Pipeline stage that owns an agent pool."""
    CONTENT_READING = "content_reading"
    TASK_CREATION   = "task_creation"


class AgentStatus(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AgentPerformance:
    """
    Rolling performance statistics, mutated in place by AgentArena.

    success_rate           : EMA of 0/1 outcomes            (0–1)
    quality_score          : EMA of 0.9 / 0.3 quality marks (0–1)
    avg_processing_time_ms : EMA of elapsed wall time       (≥ 0)
    """
    success_rate:           float
    quality_score:          float
    avg_processing_time_ms: float
    last_updated:           datetime = field(default_factory=_utcnow)


@dataclass
class AgentDescriptor:
    id:              str
    name:            str
    tier:            AgentTier
    specializations: tuple[str, ...]
    vector:          list[float]
    performance:     AgentPerformance
    status:          AgentStatus = AgentStatus.IDLE
    processed_count: int         = 0

    @property
    def is_idle(self) -> bool:
        return self.status is AgentStatus.IDLE


# ---------------------------------------------------------------------------
# Fingerprint vectors
# ---------------------------------------------------------------------------

def stable_hash(text: str) -> int:
    """
    Process-independent 31-bit hash.
    Python's built-in hash() is salted per process, so sha256 is used instead.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") & 0x7FFFFFFF


def normalize_vector(vector: list[float]) -> list[float]:
    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        return list(vector)
    return [v / magnitude for v in vector]


def fingerprint_vector(tags: tuple[str, ...] | list[str], dimensions: int = 1024) -> list[float]:
    """
    Deterministic unit-norm descriptor for a set of specialization tags.

    Tag order matters: ("a", "b") and ("b", "a") produce different vectors.
    """
    if dimensions <= 0:
        raise ValueError("dimensions must be positive")
    h = stable_hash("|".join(tags))
    raw = [math.sin((h + i) * 0.01) * 0.5 + 0.5 for i in range(dimensions)]
    return normalize_vector(raw)
