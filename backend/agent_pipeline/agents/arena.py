"""
Agent Arena — registration-ordered agent pool with explicit reservations

One arena per tier. Agents are created once at coordinator initialisation
and live for the process lifetime; only their performance and status are
mutated afterwards.

Exclusivity:
  Agents are non-reentrant. acquire() hands out a Reservation token and
  flips the agent to BUSY; a second acquire() on the same agent raises
  AgentBusyError until release() is called with the matching token.
  The token is the only guard. It is not a lock: callers driving one
  pool concurrently must not issue overlapping work for one agent.

Routing:
  select_best() ranks idle candidates by performance.quality_score.
  Ties resolve to the agent registered first (dict insertion order is the
  registration order; max() keeps the first maximal element).

Performance (EMA, weight w — default 0.1):
  success_rate           ← success_rate × (1 − w) + (1 | 0) × w
  avg_processing_time_ms ← avg × (1 − w) + elapsed_ms × w
  quality_score          ← quality × (1 − w) + (0.9 | 0.3) × w
  processed_count        += 1   (on success and failure)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

from agent_pipeline.agents.models import (
    AgentDescriptor,
    AgentPerformance,
    AgentStatus,
    AgentTier,
    fingerprint_vector,
)
from agent_pipeline.core.config import Settings, settings as default_settings
from agent_pipeline.core.exceptions import (
    AgentBusyError,
    RegistryError,
    ReservationError,
    UnknownAgentError,
)

logger = logging.getLogger(__name__)

SUCCESS_QUALITY_MARK = 0.9
FAILURE_QUALITY_MARK = 0.3


@dataclass(frozen=True)
class Reservation:
    """Proof of exclusive use of one agent for one unit of work."""
    agent_id: str
    token:    str


class AgentArena:
    """
    Pool of AgentDescriptors for a single tier, indexed by id.

    Usage::

        arena = AgentArena(AgentTier.TASK_CREATION)
        arena.create_agent("task_creation_topic", "TopicTaskAgent", ("topic_modeling",))

        with arena.reserve("task_creation_topic") as agent:
            ...
        arena.update_performance("task_creation_topic", success=True, elapsed_ms=12.5)
    """

    def __init__(
        self,
        tier:       AgentTier,
        cfg:        Settings | None = None,
        ema_weight: float | None    = None,
    ) -> None:
        self.tier = tier
        self._cfg = cfg or default_settings
        self._ema_weight = self._cfg.agent_ema_weight if ema_weight is None else ema_weight
        self._agents:  dict[str, AgentDescriptor] = {}
        self._holders: dict[str, str]             = {}   # agent_id → reservation token

        if not 0.0 < self._ema_weight <= 1.0:
            raise RegistryError(f"ema_weight must be in (0, 1], got {self._ema_weight}")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def create_agent(
        self,
        agent_id:        str,
        name:            str,
        specializations: Iterable[str],
    ) -> AgentDescriptor:
        """Build an agent with the configured initial performance and register it."""
        tags = tuple(specializations)
        agent = AgentDescriptor(
            id=agent_id,
            name=name,
            tier=self.tier,
            specializations=tags,
            vector=fingerprint_vector(tags, self._cfg.agent_vector_dimensions),
            performance=AgentPerformance(
                success_rate=self._cfg.agent_initial_success_rate,
                quality_score=self._cfg.agent_initial_quality_score,
                avg_processing_time_ms=self._cfg.agent_initial_processing_time_ms,
            ),
        )
        self.register(agent)
        return agent

    def register(self, agent: AgentDescriptor) -> None:
        if agent.id in self._agents:
            raise RegistryError(f"duplicate agent_id: {agent.id}")
        if agent.tier is not self.tier:
            raise RegistryError(
                f"agent {agent.id} belongs to tier {agent.tier.value}, arena is {self.tier.value}"
            )
        self._agents[agent.id] = agent

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, agent_id: str) -> AgentDescriptor:
        try:
            return self._agents[agent_id]
        except KeyError as exc:
            raise UnknownAgentError(agent_id) from exc

    def all(self) -> list[AgentDescriptor]:
        """Agents in registration order."""
        return list(self._agents.values())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def select_best(
        self, predicate: Callable[[AgentDescriptor], bool] | None = None
    ) -> AgentDescriptor | None:
        """
        Highest quality_score among idle agents accepted by `predicate`.
        Ties go to the earliest registered agent. None if nobody qualifies.
        """
        candidates = [
            agent for agent in self._agents.values()
            if agent.is_idle and (predicate is None or predicate(agent))
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda a: a.performance.quality_score)

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def acquire(self, agent_id: str) -> Reservation:
        agent = self.get(agent_id)
        if agent_id in self._holders or not agent.is_idle:
            raise AgentBusyError(agent_id)
        token = uuid.uuid4().hex
        self._holders[agent_id] = token
        agent.status = AgentStatus.BUSY
        return Reservation(agent_id=agent_id, token=token)

    def release(self, reservation: Reservation) -> None:
        holder = self._holders.get(reservation.agent_id)
        if holder != reservation.token:
            raise ReservationError(
                f"reservation for {reservation.agent_id} is stale or was never issued"
            )
        del self._holders[reservation.agent_id]
        self.get(reservation.agent_id).status = AgentStatus.IDLE

    @contextmanager
    def reserve(self, agent_id: str) -> Iterator[AgentDescriptor]:
        """Hold `agent_id` for the duration of the block; released on every exit path."""
        reservation = self.acquire(agent_id)
        try:
            yield self.get(agent_id)
        finally:
            self.release(reservation)

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def update_performance(self, agent_id: str, success: bool, elapsed_ms: float) -> None:
        """Shared EMA update used by both coordinators. Unknown ids are ignored."""
        agent = self._agents.get(agent_id)
        if agent is None:
            logger.warning("AgentArena | tier=%s unknown agent=%s — performance not recorded",
                           self.tier.value, agent_id)
            return

        w    = self._ema_weight
        perf = agent.performance

        perf.success_rate = _clamp01(perf.success_rate * (1 - w) + (1.0 if success else 0.0) * w)
        perf.avg_processing_time_ms = max(
            0.0, perf.avg_processing_time_ms * (1 - w) + max(0.0, elapsed_ms) * w
        )
        mark = SUCCESS_QUALITY_MARK if success else FAILURE_QUALITY_MARK
        perf.quality_score = _clamp01(perf.quality_score * (1 - w) + mark * w)
        perf.last_updated  = datetime.now(timezone.utc)
        agent.processed_count += 1

        logger.debug(
            "AgentArena | agent=%s success=%s elapsed_ms=%.1f quality=%.3f success_rate=%.3f",
            agent_id, success, elapsed_ms, perf.quality_score, perf.success_rate,
        )


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))
