"""
Analysis & Classification — Pydantic contracts with the upstream analysis tier

The task creation tier consumes two payloads produced elsewhere:

  ContentAnalysis        one per analysis type run over a content item
  ContentClassification  quality / complexity scores for the same item

Result value keys are snake_case and strategy-specific:

  sentiment   {"sentiment": "negative", "score": -0.6}
  entity      {"entities": [{"type": "person", ...}, ...]}
  topic       {"topics": [{"topic": "algebra", "relevance": 0.8}, ...]}
  keyword     {"keywords": [{"word": "photosynthesis", ...}, ...]}
  structure   {"paragraph_count": 5}

Unknown keys are preserved so upstream producers can add fields freely.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AnalysisType(str, Enum):
    SENTIMENT    = "sentiment"
    ENTITY       = "entity"
    TOPIC        = "topic"
    KEYWORD      = "keyword"
    SEMANTIC     = "semantic"
    STRUCTURE    = "structure"
    RELATIONSHIP = "relationship"
    QUALITY      = "quality"


# ---------------------------------------------------------------------------
# ContentAnalysis
# ---------------------------------------------------------------------------

class AnalysisResult(BaseModel):
    type:       str
    value:      dict[str, Any] = Field(default_factory=dict)
    confidence: float          = Field(0.0, ge=0.0, le=1.0)
    evidence:   list[str]      = Field(default_factory=list)
    context:    str            = ""


class AnalysisMetadata(BaseModel):
    processing_time_ms: float          = Field(0.0, ge=0.0)
    agent_id:           str            = ""
    model_version:      str            = ""
    parameters:         dict[str, Any] = Field(default_factory=dict)


class ContentAnalysis(BaseModel):
    id:            str
    content_id:    str
    analysis_type: AnalysisType
    results:       list[AnalysisResult] = Field(default_factory=list)
    confidence:    float                = Field(..., ge=0.0, le=1.0)
    metadata:      AnalysisMetadata     = Field(default_factory=AnalysisMetadata)

    def results_of(self, result_type: str) -> list[AnalysisResult]:
        """Results whose `type` matches, in their original order."""
        return [r for r in self.results if r.type == result_type]


# ---------------------------------------------------------------------------
# ContentClassification
# ---------------------------------------------------------------------------

class QualityScores(BaseModel):
    model_config = ConfigDict(extra="allow")

    completeness: float = Field(0.0, ge=0.0, le=1.0)
    accuracy:     float = Field(0.0, ge=0.0, le=1.0)
    readability:  float = Field(0.0, ge=0.0, le=1.0)
    relevance:    float = Field(0.0, ge=0.0, le=1.0)


class ComplexityScores(BaseModel):
    model_config = ConfigDict(extra="allow")

    overall:   float = Field(0.0, ge=0.0, le=1.0)
    lexical:   float = Field(0.0, ge=0.0, le=1.0)
    syntactic: float = Field(0.0, ge=0.0, le=1.0)
    semantic:  float = Field(0.0, ge=0.0, le=1.0)


class Classifications(BaseModel):
    model_config = ConfigDict(extra="allow")

    quality:    QualityScores    = Field(default_factory=QualityScores)
    complexity: ComplexityScores = Field(default_factory=ComplexityScores)


class ContentClassification(BaseModel):
    content_id:      str
    classifications: Classifications = Field(default_factory=Classifications)
    confidence:      float           = Field(0.0, ge=0.0, le=1.0)
