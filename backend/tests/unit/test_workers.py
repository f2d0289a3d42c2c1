"""
Unit Tests — Celery Worker Tasks
═════════════════════════════════
Coverage:
  ✅ run_async works with and without a running event loop
  ✅ read_content_batch returns JSON-safe results in input order
  ✅ create_processing_tasks returns the ordered queue and contained failures
  ✅ Task routing sends each tier to its own queue
  ✅ health_check

Tasks are executed eagerly with `.apply()`; no broker is contacted.
"""

from __future__ import annotations

import asyncio
import json

import pytest


@pytest.mark.unit
@pytest.mark.workers
class TestRunAsync:

    def test_without_running_loop(self):
        from agent_pipeline.workers.tasks import run_async

        async def _answer():
            return 42

        assert run_async(_answer()) == 42

    async def test_inside_running_loop(self):
        from agent_pipeline.workers.tasks import run_async

        async def _answer():
            await asyncio.sleep(0)
            return "nested"

        assert run_async(_answer()) == "nested"


@pytest.mark.unit
@pytest.mark.workers
class TestReadContentBatch:

    def test_batch_results(self, write_file):
        from agent_pipeline.workers.tasks import read_content_batch

        files = [
            write_file("notes.txt", "hello world").model_dump(),
            {"id": "big", "path": "/data/archive.zip", "size": 2 * 1024 ** 3},
        ]
        results = read_content_batch.apply(kwargs={"files": files}).get()

        assert [r["file_id"] for r in results] == ["notes", "big"]
        assert results[0]["content"] == "hello world"
        assert results[0]["chunks"][0]["type"] == "text"
        assert results[1]["metadata"]["extraction_method"] == "failed"
        json.dumps(results)

    def test_invalid_descriptor_is_a_failure_result(self, write_file):
        from agent_pipeline.workers.tasks import read_content_batch

        files = [
            {"id": "neg", "path": "x.txt", "size": -1},
            write_file("notes.txt", "hello").model_dump(),
        ]
        results = read_content_batch.apply(kwargs={"files": files}).get()

        assert [r["file_id"] for r in results] == ["neg", "notes"]
        assert results[0]["metadata"]["extraction_method"] == "failed"
        assert results[0]["errors"][0].startswith("Invalid file descriptor")
        assert results[1]["content"] == "hello"


@pytest.mark.unit
@pytest.mark.workers
class TestCreateProcessingTasks:

    def test_ordered_queue(self, make_analysis, classification):
        from agent_pipeline.workers.tasks import create_processing_tasks

        analysis = make_analysis(
            "sentiment", value={"sentiment": "negative", "score": -0.5}, processing_time_ms=1500,
        )
        payload = create_processing_tasks.apply(kwargs={
            "analyses":       [analysis.model_dump(mode="json")],
            "classification": classification.model_dump(mode="json"),
            "content_id":     "content-1",
        }).get()

        assert payload["content_id"] == "content-1"
        assert payload["errors"] == []
        assert [t["priority"] for t in payload["tasks"]] == [4, 2, 1]
        assert all(t["status"] == "pending" for t in payload["tasks"])
        json.dumps(payload)


@pytest.mark.unit
@pytest.mark.workers
class TestCeleryApp:

    def test_routes(self):
        from agent_pipeline.workers.celery_app import (
            READING_QUEUE,
            TASK_CREATION_QUEUE,
            celery_app,
        )
        routes = celery_app.conf.task_routes
        assert routes["agent_pipeline.workers.tasks.read_content_batch"]["queue"] == READING_QUEUE
        assert routes["agent_pipeline.workers.tasks.create_processing_tasks"]["queue"] == TASK_CREATION_QUEUE

    def test_json_only(self):
        from agent_pipeline.workers.celery_app import celery_app
        assert celery_app.conf.accept_content == ["json"]
        assert celery_app.conf.task_serializer == "json"

    def test_health_check(self):
        from agent_pipeline.workers.tasks import health_check
        assert health_check.apply().get() == {"status": "ok", "worker": "healthy"}
