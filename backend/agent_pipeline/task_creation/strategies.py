"""
Task-Creation Strategy Set
══════════════════════════

Turns one ContentAnalysis into zero or more ProcessingTasks.

Two tables drive everything:

  TASK_TEMPLATES      static shape of every task kind (type, priority, options,
                      thresholds, timeout, multipliers, capabilities, tags)
  DEFAULT_STRATEGIES  {name, supported_analysis_types, create_tasks} records

Emission rules
──────────────
  sentiment   emotion_detection always
              deep_sentiment     if sentiment == "negative" or score < -0.3
              sentiment_trend    if analysis processing_time_ms > 1000
  entity      entity_extraction  per distinct entity type
              relationship       if more than one distinct entity type
  topic       topic_modeling     always
              topic_summary      per topic with relevance > 0.5
  keyword     keyword_expansion  always
              semantic_analysis  per keyword among the first five
  structure   structure_validation always
              structure_summary    if paragraph_count > 3

A strategy emits nothing when the analysis carries no result of its own
type. Only deep_sentiment uses the computed priority; every other kind
carries a fixed level.

Scoring helpers
───────────────
  calculate_priority  = floor(clamp(completeness·5 + confidence·2 − complexity·2, 1, 5))
  estimate_complexity = result_count·0.1 + complexity·0.7 + confidence·0.2
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agent_pipeline.schemas.analysis import AnalysisType, ContentAnalysis, ContentClassification
from agent_pipeline.schemas.tasks import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    ProcessingTask,
    TaskMetadata,
    TaskParameters,
    TaskSource,
    TaskType,
)

# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------

def calculate_priority(analysis: ContentAnalysis, classification: ContentClassification) -> int:
    scores = classification.classifications
    raw = (
        scores.quality.completeness * 5
        + analysis.confidence * 2
        - scores.complexity.overall * 2
    )
    return math.floor(max(MIN_PRIORITY, min(MAX_PRIORITY, raw)))


def estimate_complexity(analysis: ContentAnalysis, classification: ContentClassification) -> float:
    """Relative ordering heuristic; not bounded to [0, 1]."""
    return (
        len(analysis.results) * 0.1
        + classification.classifications.complexity.overall * 0.7
        + analysis.confidence * 0.2
    )


# ---------------------------------------------------------------------------
# Task templates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskTemplate:
    """
    Static part of a task kind. priority=None means "use calculate_priority".
    Dynamic values (entity type, topic, keyword) are appended by the strategy.
    """
    kind:                  str
    type:                  TaskType
    priority:              int | None
    expected_output:       dict[str, Any]
    options:               dict[str, Any]
    quality_threshold:     float
    timeout_ms:            int
    estimated_duration_ms: int
    required_capabilities: tuple[str, ...]
    tags:                  tuple[str, ...]
    confidence_factor:     float = 1.0
    complexity_factor:     float = 1.0


TASK_TEMPLATES: dict[str, TaskTemplate] = {t.kind: t for t in (
    # Sentiment
    TaskTemplate(
        kind="deep_sentiment", type=TaskType.ANALYSIS, priority=None,
        expected_output={"detailed_sentiment": True, "emotional_indicators": True},
        options={"deep_analysis": True, "granularity": "sentence"},
        quality_threshold=0.7, timeout_ms=30_000, estimated_duration_ms=5_000,
        required_capabilities=("sentiment_analysis", "emotion_detection"),
        tags=("sentiment", "emotion", "analysis"),
    ),
    TaskTemplate(
        kind="emotion_detection", type=TaskType.ANALYSIS, priority=2,
        expected_output={"emotions": ["joy", "sadness", "anger", "fear", "surprise"]},
        options={"emotion_granularity": "fine"},
        quality_threshold=0.6, timeout_ms=15_000, estimated_duration_ms=3_000,
        required_capabilities=("emotion_detection",),
        tags=("emotion", "detection"),
        confidence_factor=0.8, complexity_factor=0.8,
    ),
    TaskTemplate(
        kind="sentiment_trend", type=TaskType.ANALYSIS, priority=1,
        expected_output={"trend_analysis": True, "segments": 10},
        options={"window_size": 100, "overlap": 20},
        quality_threshold=0.5, timeout_ms=20_000, estimated_duration_ms=8_000,
        required_capabilities=("trend_analysis", "sentiment_analysis"),
        tags=("sentiment", "trend", "analysis"),
        confidence_factor=0.7, complexity_factor=1.2,
    ),
    # Entity
    TaskTemplate(
        kind="entity_extraction", type=TaskType.EXTRACTION, priority=2,
        expected_output={"entities": [], "attributes": []},
        options={"extraction_mode": "comprehensive"},
        quality_threshold=0.8, timeout_ms=25_000, estimated_duration_ms=4_000,
        required_capabilities=("entity_extraction",),
        tags=("entity", "extraction"),
    ),
    TaskTemplate(
        kind="relationship_extraction", type=TaskType.EXTRACTION, priority=3,
        expected_output={"relationships": [], "confidence": 0.7},
        options={"relationship_types": ["spatial", "temporal", "causal"]},
        quality_threshold=0.6, timeout_ms=30_000, estimated_duration_ms=6_000,
        required_capabilities=("relationship_extraction", "entity_linking"),
        tags=("entity", "relationship", "extraction"),
        confidence_factor=0.9, complexity_factor=1.5,
    ),
    # Topic
    TaskTemplate(
        kind="topic_modeling", type=TaskType.ANALYSIS, priority=3,
        expected_output={"topics": [], "distributions": []},
        options={"num_topics": 10, "algorithm": "lda"},
        quality_threshold=0.7, timeout_ms=45_000, estimated_duration_ms=12_000,
        required_capabilities=("topic_modeling", "text_analysis"),
        tags=("topic", "modeling", "analysis"),
        complexity_factor=1.3,
    ),
    TaskTemplate(
        kind="topic_summary", type=TaskType.SUMMARIZATION, priority=2,
        expected_output={"summary": "", "key_points": []},
        options={"max_length": 200},
        quality_threshold=0.6, timeout_ms=20_000, estimated_duration_ms=5_000,
        required_capabilities=("summarization", "topic_analysis"),
        tags=("topic", "summarization"),
        confidence_factor=0.8,
    ),
    # Keyword
    TaskTemplate(
        kind="keyword_expansion", type=TaskType.ENRICHMENT, priority=2,
        expected_output={"expanded_keywords": [], "semantic_clusters": []},
        options={"expansion_factor": 3, "clustering": True},
        quality_threshold=0.6, timeout_ms=25_000, estimated_duration_ms=6_000,
        required_capabilities=("keyword_expansion", "semantic_analysis"),
        tags=("keyword", "expansion", "enrichment"),
        complexity_factor=0.8,
    ),
    TaskTemplate(
        kind="semantic_analysis", type=TaskType.ANALYSIS, priority=1,
        expected_output={"semantic_context": [], "related_concepts": []},
        options={"context_window": 50, "depth": 3},
        quality_threshold=0.5, timeout_ms=15_000, estimated_duration_ms=3_000,
        required_capabilities=("semantic_analysis", "context_analysis"),
        tags=("keyword", "semantic"),
        confidence_factor=0.7, complexity_factor=0.6,
    ),
    # Structure
    TaskTemplate(
        kind="structure_validation", type=TaskType.VALIDATION, priority=2,
        expected_output={"validation_results": [], "suggestions": []},
        options={"validation_rules": ["grammar", "coherence", "flow"]},
        quality_threshold=0.7, timeout_ms=20_000, estimated_duration_ms=4_000,
        required_capabilities=("structure_validation", "grammar_check"),
        tags=("structure", "validation", "quality"),
        complexity_factor=0.9,
    ),
    TaskTemplate(
        kind="structure_summary", type=TaskType.SUMMARIZATION, priority=3,
        expected_output={"summary": "", "outline": []},
        options={"summarization_type": "extractive", "max_length": 300},
        quality_threshold=0.6, timeout_ms=25_000, estimated_duration_ms=8_000,
        required_capabilities=("summarization", "structure_analysis"),
        tags=("structure", "summarization"),
        confidence_factor=0.9,
    ),
)}


def build_task(
    kind:             str,
    analysis:         ContentAnalysis,
    classification:   ContentClassification,
    content_id:       str,
    *,
    extra_input:      dict[str, Any] | None = None,
    extra_options:    dict[str, Any] | None = None,
    extra_capability: str | None            = None,
    extra_tag:        str | None            = None,
) -> ProcessingTask:
    """Instantiate TASK_TEMPLATES[kind] for one analysis."""
    template = TASK_TEMPLATES[kind]
    priority = (
        template.priority if template.priority is not None
        else calculate_priority(analysis, classification)
    )
    capabilities = list(template.required_capabilities)
    tags         = list(template.tags)
    if extra_capability is not None:
        capabilities.append(extra_capability)
    if extra_tag is not None:
        tags.append(extra_tag)

    return ProcessingTask(
        type=template.type,
        priority=priority,
        content_id=content_id,
        parameters=TaskParameters(
            input={"analysis_id": analysis.id, **(extra_input or {})},
            expected_output=dict(template.expected_output),
            options={**template.options, **(extra_options or {})},
            quality_threshold=template.quality_threshold,
            timeout_ms=template.timeout_ms,
        ),
        metadata=TaskMetadata(
            source=TaskSource.ANALYSIS,
            confidence=min(1.0, analysis.confidence * template.confidence_factor),
            complexity=estimate_complexity(analysis, classification) * template.complexity_factor,
            estimated_duration_ms=template.estimated_duration_ms,
            required_capabilities=capabilities,
            tags=tags,
        ),
    )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

CreateTasksFn = Callable[[ContentAnalysis, ContentClassification, str], list[ProcessingTask]]


@dataclass(frozen=True)
class TaskCreationStrategy:
    name:                     str
    supported_analysis_types: frozenset[AnalysisType]
    create_tasks:             CreateTasksFn = field(repr=False)

    def supports(self, analysis_type: AnalysisType) -> bool:
        return analysis_type in self.supported_analysis_types


def _sentiment_tasks(
    analysis: ContentAnalysis, classification: ContentClassification, content_id: str
) -> list[ProcessingTask]:
    found = analysis.results_of("sentiment")
    if not found:
        return []
    result = found[0]
    value  = result.value
    tasks: list[ProcessingTask] = []

    score = value.get("score")
    negative_score = isinstance(score, (int, float)) and score < -0.3
    if value.get("sentiment") == "negative" or negative_score:
        tasks.append(build_task(
            "deep_sentiment", analysis, classification, content_id,
            extra_input={"sentiment_data": result.model_dump()},
        ))

    tasks.append(build_task("emotion_detection", analysis, classification, content_id))

    if analysis.metadata.processing_time_ms > 1000:
        tasks.append(build_task("sentiment_trend", analysis, classification, content_id))
    return tasks


def _entity_tasks(
    analysis: ContentAnalysis, classification: ContentClassification, content_id: str
) -> list[ProcessingTask]:
    found = analysis.results_of("entity")
    if not found:
        return []
    entities = found[0].value.get("entities") or []
    entity_types = list(dict.fromkeys(
        str(e["type"]) for e in entities if isinstance(e, dict) and e.get("type") is not None
    ))

    tasks = [
        build_task(
            "entity_extraction", analysis, classification, content_id,
            extra_input={"entity_type": entity_type},
            extra_capability=entity_type, extra_tag=entity_type,
        )
        for entity_type in entity_types
    ]
    if len(entity_types) > 1:
        tasks.append(build_task("relationship_extraction", analysis, classification, content_id))
    return tasks


def _topic_tasks(
    analysis: ContentAnalysis, classification: ContentClassification, content_id: str
) -> list[ProcessingTask]:
    found = analysis.results_of("topic")
    if not found:
        return []
    tasks = [build_task("topic_modeling", analysis, classification, content_id)]

    for topic in found[0].value.get("topics") or []:
        if not isinstance(topic, dict) or (topic.get("relevance") or 0) <= 0.5:
            continue
        name = str(topic.get("topic", ""))
        tasks.append(build_task(
            "topic_summary", analysis, classification, content_id,
            extra_input={"topic": name}, extra_options={"focus": name}, extra_tag=name,
        ))
    return tasks


def _keyword_tasks(
    analysis: ContentAnalysis, classification: ContentClassification, content_id: str
) -> list[ProcessingTask]:
    found = analysis.results_of("keyword")
    if not found:
        return []
    tasks = [build_task("keyword_expansion", analysis, classification, content_id)]

    for keyword in (found[0].value.get("keywords") or [])[:5]:
        word = str(keyword.get("word", "")) if isinstance(keyword, dict) else str(keyword)
        tasks.append(build_task(
            "semantic_analysis", analysis, classification, content_id,
            extra_input={"keyword": word}, extra_tag=word,
        ))
    return tasks


def _structure_tasks(
    analysis: ContentAnalysis, classification: ContentClassification, content_id: str
) -> list[ProcessingTask]:
    found = analysis.results_of("structure")
    if not found:
        return []
    tasks = [build_task("structure_validation", analysis, classification, content_id)]

    if (found[0].value.get("paragraph_count") or 0) > 3:
        tasks.append(build_task("structure_summary", analysis, classification, content_id))
    return tasks


DEFAULT_STRATEGIES: tuple[TaskCreationStrategy, ...] = (
    TaskCreationStrategy("sentiment_task_creation", frozenset({AnalysisType.SENTIMENT}), _sentiment_tasks),
    TaskCreationStrategy("entity_task_creation",    frozenset({AnalysisType.ENTITY}),    _entity_tasks),
    TaskCreationStrategy("topic_task_creation",     frozenset({AnalysisType.TOPIC}),     _topic_tasks),
    TaskCreationStrategy("keyword_task_creation",   frozenset({AnalysisType.KEYWORD}),   _keyword_tasks),
    TaskCreationStrategy("structure_task_creation", frozenset({AnalysisType.STRUCTURE}), _structure_tasks),
)
