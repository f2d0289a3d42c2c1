"""
Root conftest.py — Shared fixtures for all unit tests

Fixture hierarchy:
  session-scoped  : test_settings
  function-scoped : write_file, make_analysis, classification

Environment strategy:
  - Files are written under pytest's tmp_path; nothing outside it is read.
  - Celery uses the in-memory broker and result backend, and tasks are
    called directly in-process — no RabbitMQ or Redis needed.

How to run:
  pytest                                   # all tests
  pytest -m unit                           # unit tests only
  pytest -m reading                        # content reading tier
  pytest backend/tests/unit/test_chunking.py
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

# ─────────────────────────────────────────────────────────────────────────────
# Patch environment BEFORE any package imports so modules read test config
# ─────────────────────────────────────────────────────────────────────────────

os.environ.setdefault("CELERY_BROKER_URL",     "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("APP_ENV",               "development")
os.environ.setdefault("DEBUG",                 "true")


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def test_settings():
    """Settings with small I/O blocks so block-boundary code paths are hit."""
    from agent_pipeline.core.config import Settings
    return Settings(streaming_block_size=16, archive_max_members=50)


# ─────────────────────────────────────────────────────────────────────────────
# Files
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def write_file(tmp_path: Path):
    """
    Factory: write `content` to tmp_path/name and return a FileDescriptor.

    `size` overrides the declared size (defaults to the real byte length).
    """
    from agent_pipeline.schemas.files import FileDescriptor

    def _write(
        name:    str,
        content: str | bytes = "",
        size:    int | None  = None,
        file_id: str | None  = None,
    ) -> FileDescriptor:
        path = tmp_path / name
        data = content.encode("utf-8") if isinstance(content, str) else content
        path.write_bytes(data)
        return FileDescriptor(
            id=file_id or Path(name).stem,
            path=str(path),
            size=len(data) if size is None else size,
        )

    return _write


# ─────────────────────────────────────────────────────────────────────────────
# Analyses and classification
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_analysis():
    """Factory: build a ContentAnalysis carrying a single result of `result_type`."""
    from agent_pipeline.schemas.analysis import ContentAnalysis

    def _build(
        analysis_type:      str,
        value:              dict[str, Any] | None = None,
        confidence:         float                 = 0.8,
        processing_time_ms: float                 = 200.0,
        result_type:        str | None            = None,
        analysis_id:        str                   = "analysis-1",
    ) -> ContentAnalysis:
        results = []
        if value is not None:
            results.append({
                "type":       result_type or analysis_type,
                "value":      value,
                "confidence": confidence,
            })
        return ContentAnalysis.model_validate({
            "id":            analysis_id,
            "content_id":    "content-1",
            "analysis_type": analysis_type,
            "results":       results,
            "confidence":    confidence,
            "metadata":      {"processing_time_ms": processing_time_ms, "agent_id": "analyzer-0"},
        })

    return _build


@pytest.fixture
def classification():
    """completeness 0.8, complexity 0.4 → computed priority 4 at confidence 0.8."""
    from agent_pipeline.schemas.analysis import ContentClassification
    return ContentClassification.model_validate({
        "content_id": "content-1",
        "classifications": {
            "quality":    {"completeness": 0.8, "accuracy": 0.9, "readability": 0.7},
            "complexity": {"overall": 0.4},
        },
        "confidence": 0.9,
    })
