"""
Celery Tasks — Agent Pipeline Entry Points

Task: read_content_batch
  1. Run the content reading tier over the batch; malformed descriptors
     come back as failure results keyed by their raw id
  2. Return one JSON ExtractionResult per file, in input order

Task: create_processing_tasks
  1. Validate analyses + classification for one content item
  2. Run the task creation tier
  3. Return the ordered task queue plus any contained strategy failures

Each worker process builds one coordinator per tier on first use and keeps
it for its lifetime, so agent performance accumulates across tasks.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from functools import lru_cache
from typing import Any

from celery import Task

from agent_pipeline.processing.reader import ContentReadingCoordinator
from agent_pipeline.schemas.analysis import ContentAnalysis, ContentClassification
from agent_pipeline.task_creation.coordinator import TaskCreationCoordinator
from agent_pipeline.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Async task helper
# Run async coroutines inside Celery's synchronous task context.
# ---------------------------------------------------------------------------

def run_async(coro):
    """Execute an async coroutine from a synchronous Celery task."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# Per-process coordinators
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_reader() -> ContentReadingCoordinator:
    return ContentReadingCoordinator()


@lru_cache(maxsize=1)
def get_task_coordinator() -> TaskCreationCoordinator:
    return TaskCreationCoordinator()


# ---------------------------------------------------------------------------
# Content reading
# ---------------------------------------------------------------------------

@celery_app.task(
    name="agent_pipeline.workers.tasks.read_content_batch",
    bind=True,
    acks_late=True,
    reject_on_worker_lost=True,
)
def read_content_batch(self: Task, *, files: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Read a file batch; per-file failures come back inside the results."""
    logger.info("Reading | task_id=%s files=%d", self.request.id, len(files))

    results = run_async(get_reader().read_content(files))
    return [r.to_dict() for r in results]


# ---------------------------------------------------------------------------
# Task creation
# ---------------------------------------------------------------------------

@celery_app.task(
    name="agent_pipeline.workers.tasks.create_processing_tasks",
    bind=True,
    acks_late=True,
)
def create_processing_tasks(
    self: Task,
    *,
    analyses:       list[dict[str, Any]],
    classification: dict[str, Any],
    content_id:     str,
) -> dict[str, Any]:
    report = get_task_coordinator().create_tasks_with_report(
        [ContentAnalysis.model_validate(a) for a in analyses],
        ContentClassification.model_validate(classification),
        content_id,
    )
    logger.info(
        "TaskCreation | task_id=%s content=%s tasks=%d failures=%d",
        self.request.id, content_id, len(report.tasks), len(report.errors),
    )
    return {
        "content_id": content_id,
        "tasks":      [t.model_dump(mode="json") for t in report.tasks],
        "errors": [
            {
                "analysis_id":   f.analysis_id,
                "analysis_type": f.analysis_type.value,
                "strategy":      f.strategy,
                "agent_id":      f.agent_id,
                "error":         f.error,
            }
            for f in report.errors
        ],
    }


# ---------------------------------------------------------------------------
# Health check task
# ---------------------------------------------------------------------------

@celery_app.task(name="agent_pipeline.workers.tasks.health_check")
def health_check() -> dict[str, str]:
    return {"status": "ok", "worker": "healthy"}
