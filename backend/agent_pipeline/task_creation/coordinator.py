"""
Task Creation Coordinator
═════════════════════════

Routes each ContentAnalysis to the best idle task-creation agent and
collects the tasks its strategies emit into one priority-ordered queue.

  for analysis in analyses:
      agent ← idle agent owning a strategy for analysis.analysis_type,
              highest quality_score, earliest registered on ties
      reserve(agent)
          for strategy in agent's strategies supporting the type:
              tasks += strategy.create_tasks(...)      (timed)
              update_performance(agent, ok, elapsed)
      release(agent)

  queue ← sort(tasks, priority ↓, confidence ↓, created_at ↑)   stable

Error containment:
  A strategy that raises is recorded as a StrategyFailure in the report,
  logged with traceback, and scored as a failed unit of work for the
  agent. Its tasks are dropped; the remaining strategies and analyses
  still run. No qualifying agent simply yields no tasks for that analysis.

Built-in agents (one per strategy):
  SentimentTaskAgent  EntityTaskAgent  TopicTaskAgent
  KeywordTaskAgent    StructureTaskAgent
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from agent_pipeline.agents.arena import AgentArena
from agent_pipeline.agents.models import AgentDescriptor, AgentTier
from agent_pipeline.core.config import Settings, settings as default_settings
from agent_pipeline.core.exceptions import RegistryError
from agent_pipeline.observability.tracing import traced
from agent_pipeline.schemas.analysis import AnalysisType, ContentAnalysis, ContentClassification
from agent_pipeline.schemas.tasks import ProcessingTask
from agent_pipeline.task_creation.strategies import DEFAULT_STRATEGIES, TaskCreationStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskAgentDefinition:
    name:            str
    strategies:      tuple[str, ...]
    specializations: tuple[str, ...]

    @property
    def agent_id(self) -> str:
        return f"task_creation_{self.name.lower()}"


DEFAULT_TASK_AGENTS: tuple[TaskAgentDefinition, ...] = (
    TaskAgentDefinition("SentimentTaskAgent", ("sentiment_task_creation",), ("sentiment_analysis", "emotion_detection")),
    TaskAgentDefinition("EntityTaskAgent",    ("entity_task_creation",),    ("entity_extraction", "relationship_extraction")),
    TaskAgentDefinition("TopicTaskAgent",     ("topic_task_creation",),     ("topic_modeling", "summarization")),
    TaskAgentDefinition("KeywordTaskAgent",   ("keyword_task_creation",),   ("keyword_expansion", "semantic_analysis")),
    TaskAgentDefinition("StructureTaskAgent", ("structure_task_creation",), ("structure_validation", "summarization")),
)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StrategyFailure:
    analysis_id:   str
    analysis_type: AnalysisType
    strategy:      str
    agent_id:      str
    error:         str


@dataclass
class TaskCreationReport:
    tasks:  list[ProcessingTask]  = field(default_factory=list)
    errors: list[StrategyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def order_tasks(tasks: Iterable[ProcessingTask]) -> list[ProcessingTask]:
    """Priority desc, then confidence desc, then created_at asc. Stable."""
    return sorted(
        tasks,
        key=lambda t: (-t.priority, -t.metadata.confidence, t.created_at),
    )


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class TaskCreationCoordinator:
    """
    Task creation tier.

    Usage::

        coordinator = TaskCreationCoordinator()
        tasks = coordinator.create_tasks(analyses, classification, content_id="c-1")

        report = coordinator.create_tasks_with_report(analyses, classification, "c-1")
        for failure in report.errors:
            ...
    """

    def __init__(
        self,
        strategies: Iterable[TaskCreationStrategy] = DEFAULT_STRATEGIES,
        agents:     Iterable[TaskAgentDefinition]  = DEFAULT_TASK_AGENTS,
        cfg:        Settings | None                = None,
    ) -> None:
        cfg = cfg or default_settings

        self._strategies: dict[str, TaskCreationStrategy] = {}
        for strategy in strategies:
            if strategy.name in self._strategies:
                raise RegistryError(f"duplicate task-creation strategy: {strategy.name}")
            self._strategies[strategy.name] = strategy

        self._arena = AgentArena(AgentTier.TASK_CREATION, cfg)
        self._agent_strategies: dict[str, tuple[TaskCreationStrategy, ...]] = {}
        for definition in agents:
            missing = [s for s in definition.strategies if s not in self._strategies]
            if missing:
                raise RegistryError(f"agent {definition.name} references unknown strategies: {missing}")
            self._arena.create_agent(definition.agent_id, definition.name, definition.specializations)
            self._agent_strategies[definition.agent_id] = tuple(
                self._strategies[s] for s in definition.strategies
            )

        logger.info(
            "TaskCreationCoordinator | ready agents=%d strategies=%d",
            len(self._arena), len(self._strategies),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_tasks(
        self,
        analyses:       Iterable[ContentAnalysis | Mapping[str, Any]],
        classification: ContentClassification | Mapping[str, Any],
        content_id:     str,
    ) -> list[ProcessingTask]:
        return self.create_tasks_with_report(analyses, classification, content_id).tasks

    @traced("TaskCreationCoordinator.create_tasks")
    def create_tasks_with_report(
        self,
        analyses:       Iterable[ContentAnalysis | Mapping[str, Any]],
        classification: ContentClassification | Mapping[str, Any],
        content_id:     str,
    ) -> TaskCreationReport:
        if not isinstance(classification, ContentClassification):
            classification = ContentClassification.model_validate(classification)

        tasks:  list[ProcessingTask]  = []
        errors: list[StrategyFailure] = []

        for item in analyses:
            analysis = item if isinstance(item, ContentAnalysis) else ContentAnalysis.model_validate(item)
            agent = self.select_agent(analysis.analysis_type)
            if agent is None:
                logger.debug(
                    "TaskCreation | analysis=%s type=%s no idle agent — skipped",
                    analysis.id, analysis.analysis_type.value,
                )
                continue

            with self._arena.reserve(agent.id):
                for strategy in self._agent_strategies[agent.id]:
                    if not strategy.supports(analysis.analysis_type):
                        continue
                    created = self._run_strategy(
                        strategy, agent.id, analysis, classification, content_id, errors
                    )
                    tasks.extend(created)

        ordered = order_tasks(tasks)
        logger.info(
            "TaskCreation | content=%s tasks=%d failures=%d",
            content_id, len(ordered), len(errors),
        )
        return TaskCreationReport(tasks=ordered, errors=errors)

    def select_agent(self, analysis_type: AnalysisType) -> AgentDescriptor | None:
        """Best idle agent owning a strategy for `analysis_type`, or None."""
        return self._arena.select_best(
            lambda agent: any(s.supports(analysis_type) for s in self._agent_strategies[agent.id])
        )

    def update_agent_performance(self, agent_id: str, success: bool, elapsed_ms: float) -> None:
        self._arena.update_performance(agent_id, success, elapsed_ms)

    def get_agents(self) -> list[AgentDescriptor]:
        return self._arena.all()

    def get_agent_by_id(self, agent_id: str) -> AgentDescriptor | None:
        return self._arena.get(agent_id) if agent_id in self._arena else None

    def get_strategies(self) -> list[TaskCreationStrategy]:
        return list(self._strategies.values())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_strategy(
        self,
        strategy:       TaskCreationStrategy,
        agent_id:       str,
        analysis:       ContentAnalysis,
        classification: ContentClassification,
        content_id:     str,
        errors:         list[StrategyFailure],
    ) -> list[ProcessingTask]:
        t0 = time.perf_counter()
        try:
            created = strategy.create_tasks(analysis, classification, content_id)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - t0) * 1000
            logger.error(
                "TaskCreation | strategy=%s agent=%s analysis=%s failed: %s",
                strategy.name, agent_id, analysis.id, exc, exc_info=True,
            )
            errors.append(StrategyFailure(
                analysis_id=analysis.id,
                analysis_type=analysis.analysis_type,
                strategy=strategy.name,
                agent_id=agent_id,
                error=str(exc) or exc.__class__.__name__,
            ))
            self._arena.update_performance(agent_id, False, elapsed_ms)
            return []

        elapsed_ms = (time.perf_counter() - t0) * 1000
        self._arena.update_performance(agent_id, True, elapsed_ms)
        logger.debug(
            "TaskCreation | strategy=%s agent=%s analysis=%s tasks=%d elapsed_ms=%.2f",
            strategy.name, agent_id, analysis.id, len(created), elapsed_ms,
        )
        return created
