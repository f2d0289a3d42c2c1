"""
Unit Tests — ContentReadingCoordinator
═══════════════════════════════════════
Coverage:
  ✅ Small text file → one chunk, completeness 0.5, accuracy 1.0
  ✅ Oversized archive → failure result mentioning the size limit
  ✅ Unsupported extension → failure result, file_type "unknown"
  ✅ Routing rejections never touch agent performance
  ✅ Strategy exceptions become failure results and penalise the reader agent
  ✅ Selection and chunking errors are contained to the failing file
  ✅ Malformed descriptors become failure results keyed by their raw id
  ✅ Strategy warnings are carried on otherwise successful results
  ✅ Output order equals input order across batches and completion order
  ✅ Explicit zero chunk_size / max_concurrency is rejected
  ✅ Seven reading agents with stable ids and file-type attribution
  ✅ Results serialise to JSON for worker transport
"""

from __future__ import annotations

import asyncio
import json

import pytest

from agent_pipeline.processing.capabilities import GIB


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _coordinator(cfg, **kwargs):
    from agent_pipeline.processing.reader import ContentReadingCoordinator
    return ContentReadingCoordinator(cfg=cfg, **kwargs)


def _strategy(name, read):
    from agent_pipeline.processing.strategies import ReadingStrategy
    return ReadingStrategy(name=name, can_handle=lambda f: True, read=read)


# ─────────────────────────────────────────────────────────────────────────────
# Happy paths
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.reading
class TestReadContent:

    async def test_small_text_file(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        file = write_file("notes.txt", "hello world", size=50)

        [result] = await reader.read_content([file])

        assert result.file_id == "notes"
        assert result.content == "hello world"
        assert result.metadata.file_type == "text"
        assert result.metadata.extraction_method == "direct"
        assert result.metadata.encoding == "utf-8"
        assert result.metadata.file_size == 50
        assert len(result.chunks) == 1
        assert result.metadata.quality.completeness == 0.5
        assert result.metadata.quality.accuracy == 1.0
        assert result.metadata.agent_id == "content_reading_text_reader_0"
        assert result.errors == []
        assert result.succeeded

    async def test_multi_chunk_output(self, test_settings, write_file):
        reader = _coordinator(test_settings, chunk_size=4)
        [result] = await reader.read_content([write_file("a.txt", "abcdefghij")])

        assert [c.content for c in result.chunks] == ["abcd", "efgh", "ij"]
        assert all(c.confidence == 0.9 for c in result.chunks)

    async def test_source_file_language_on_chunks(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        [result] = await reader.read_content([write_file("main.py", "import os\n")])

        assert result.metadata.extraction_method == "syntax_parsing"
        assert result.metadata.agent_id == "content_reading_code_reader_5"
        assert result.chunks[0].language == "python"

    async def test_accepts_plain_dicts(self, test_settings, write_file):
        file = write_file("notes.md", "# Title\n\nbody")
        reader = _coordinator(test_settings)

        [result] = await reader.read_content([file.model_dump()])

        assert result.file_id == "notes"
        assert result.metadata.structure.has_headers

    async def test_empty_batch(self, test_settings):
        assert await _coordinator(test_settings).read_content([]) == []

    async def test_success_credits_reader_agent(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        await reader.read_content([write_file("a.txt", "x"), write_file("b.txt", "y")])

        agent = reader.get_agent_by_id("content_reading_text_reader_0")
        assert agent.processed_count == 2
        assert agent.performance.success_rate > 0.95


# ─────────────────────────────────────────────────────────────────────────────
# Failures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.reading
class TestReadFailures:

    async def test_oversized_archive(self, test_settings):
        from agent_pipeline.schemas.files import FileDescriptor
        reader = _coordinator(test_settings)
        file = FileDescriptor(id="big", path="/data/archive.zip", size=2 * GIB)

        [result] = await reader.read_content([file])

        assert result.metadata.extraction_method == "failed"
        assert result.metadata.file_type == "archive"
        assert result.content == ""
        assert result.chunks == []
        assert "size limit" in result.errors[0]
        assert not result.succeeded

    async def test_unsupported_extension(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        [result] = await reader.read_content([write_file("blob.xyz", "data")])

        assert result.metadata.file_type == "unknown"
        assert result.metadata.extraction_method == "failed"
        assert result.metadata.encoding == "unknown"
        assert result.errors == ["Unsupported file type: .xyz"]

    async def test_missing_extension(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        [result] = await reader.read_content([write_file("Makefile", "all:")])
        assert result.errors == ["Unsupported file type: <none>"]

    async def test_rejections_do_not_touch_agents(self, test_settings, write_file):
        from agent_pipeline.schemas.files import FileDescriptor
        reader = _coordinator(test_settings)

        await reader.read_content([
            write_file("blob.xyz", "data"),
            FileDescriptor(id="big", path="/data/archive.zip", size=2 * GIB),
        ])

        assert all(a.processed_count == 0 for a in reader.get_agents())

    async def test_strategy_exception_is_contained(self, test_settings, write_file):
        async def _boom(file):
            raise RuntimeError("disk on fire")

        reader = _coordinator(test_settings, strategies={"direct": _strategy("direct", _boom)})
        [bad, good_type] = await reader.read_content([
            write_file("a.txt", "x"),
            write_file("b.py", "y"),
        ])

        assert bad.metadata.extraction_method == "failed"
        assert bad.metadata.file_type == "text"
        assert bad.errors == ["disk on fire"]
        assert bad.metadata.agent_id == "content_reading_text_reader_0"
        # .py falls back to the same failing "direct" strategy
        assert good_type.metadata.file_type == "code"

        agent = reader.get_agent_by_id("content_reading_text_reader_0")
        assert agent.processed_count == 1
        assert agent.performance.success_rate == pytest.approx(0.95 * 0.9)

    async def test_missing_file_is_a_failure_result(self, test_settings, tmp_path):
        from agent_pipeline.schemas.files import FileDescriptor
        reader = _coordinator(test_settings)
        file = FileDescriptor(id="gone", path=str(tmp_path / "gone.txt"), size=10)

        [result] = await reader.read_content([file])

        assert result.metadata.extraction_method == "failed"
        assert result.metadata.file_type == "text"

    async def test_strategy_warnings_are_kept(self, test_settings, write_file):
        from agent_pipeline.processing.strategies import StrategyOutput

        async def _warn(file):
            return StrategyOutput(content="partial text", errors=["page 3 unreadable"])

        reader = _coordinator(test_settings, strategies={"direct": _strategy("direct", _warn)})
        [result] = await reader.read_content([write_file("a.txt", "ignored")])

        assert result.content == "partial text"
        assert result.metadata.extraction_method == "direct"
        assert result.errors == ["page 3 unreadable"]

    async def test_selection_error_is_contained(self, test_settings, write_file):
        from agent_pipeline.processing.capabilities import MIB
        from agent_pipeline.processing.strategies import ReadingStrategy, StrategyOutput

        def _stat(file):
            if file.id == "bad":
                raise OSError("stat failed")
            return True

        async def _ok(file):
            return StrategyOutput(content="fine")

        reader = _coordinator(test_settings, strategies={
            "direct": ReadingStrategy(name="direct", can_handle=_stat, read=_ok),
        })
        good, bad = await reader.read_content([
            write_file("good.txt", "x", size=20 * MIB),
            write_file("bad.txt", "x", size=20 * MIB),
        ])

        assert good.succeeded
        assert good.content == "fine"
        assert bad.metadata.extraction_method == "failed"
        assert bad.metadata.file_type == "text"
        assert bad.errors == ["stat failed"]
        assert bad.metadata.agent_id == "content_reading_text_reader_0"
        assert reader.get_agent_by_id("content_reading_text_reader_0").processed_count == 2

    async def test_invalid_strategy_output_is_contained(self, test_settings, write_file):
        from agent_pipeline.processing.strategies import StrategyOutput

        async def _read(file):
            return StrategyOutput(content=None if file.id == "broken" else "healthy")

        reader = _coordinator(test_settings, strategies={"direct": _strategy("direct", _read)})
        broken, healthy = await reader.read_content([
            write_file("broken.txt", "x"),
            write_file("healthy.txt", "x"),
        ])

        assert broken.metadata.extraction_method == "failed"
        assert broken.chunks == []
        assert broken.errors
        assert healthy.succeeded
        assert healthy.content == "healthy"

    async def test_invalid_descriptor_is_a_failure_result(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        results = await reader.read_content([
            {"id": "neg", "path": "x.txt", "size": -1},
            write_file("notes.txt", "hello"),
            {"path": "y.txt", "size": 3},
        ])

        assert [r.file_id for r in results] == ["neg", "notes", ""]
        neg, notes, anonymous = results
        assert neg.metadata.extraction_method == "failed"
        assert neg.metadata.file_type == "unknown"
        assert neg.metadata.file_size == 0
        assert neg.path == "x.txt"
        assert neg.errors[0].startswith("Invalid file descriptor: size")
        assert notes.succeeded
        assert "id" in anonymous.errors[0]
        assert sum(a.processed_count for a in reader.get_agents()) == 1


# ─────────────────────────────────────────────────────────────────────────────
# Ordering & batching
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.reading
class TestBatching:

    async def test_output_order_matches_input(self, test_settings, write_file):
        from agent_pipeline.processing.strategies import StrategyOutput

        async def _slow_first(file):
            # earlier files finish later
            await asyncio.sleep(0.01 * (5 - int(file.id[1:])))
            return StrategyOutput(content=file.id)

        reader = _coordinator(
            test_settings,
            max_concurrency=2,
            strategies={"direct": _strategy("direct", _slow_first)},
        )
        files = [write_file(f"f{i}.txt", "x", file_id=f"f{i}") for i in range(5)]

        results = await reader.read_content(files)

        assert [r.file_id for r in results] == ["f0", "f1", "f2", "f3", "f4"]
        assert [r.content for r in results] == ["f0", "f1", "f2", "f3", "f4"]

    async def test_batches_bounded_by_max_concurrency(self, test_settings, write_file):
        from agent_pipeline.processing.strategies import StrategyOutput
        in_flight = 0
        peak = 0

        async def _track(file):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1
            return StrategyOutput(content="ok")

        reader = _coordinator(
            test_settings,
            max_concurrency=3,
            strategies={"direct": _strategy("direct", _track)},
        )
        await reader.read_content([write_file(f"f{i}.txt", "x") for i in range(7)])

        assert peak == 3


# ─────────────────────────────────────────────────────────────────────────────
# Construction & agents
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.reading
class TestReaderSetup:

    def test_seven_reading_agents(self, test_settings):
        reader = _coordinator(test_settings)
        agents = reader.get_agents()

        assert [a.id for a in agents] == [
            "content_reading_text_reader_0",
            "content_reading_document_reader_1",
            "content_reading_media_reader_2",
            "content_reading_archive_reader_3",
            "content_reading_database_reader_4",
            "content_reading_code_reader_5",
            "content_reading_binary_reader_6",
        ]
        assert agents[0].name == "TEXT READER Agent 0"
        assert all(a.tier.value == "content_reading" for a in agents)

    @pytest.mark.parametrize("file_type,agent_id", [
        ("spreadsheet", "content_reading_document_reader_1"),
        ("video",       "content_reading_media_reader_2"),
        ("database",    "content_reading_database_reader_4"),
        ("mystery",     "content_reading_binary_reader_6"),
    ])
    def test_reader_for(self, test_settings, file_type, agent_id):
        assert _coordinator(test_settings).reader_for(file_type) == agent_id

    def test_unknown_agent_lookup(self, test_settings):
        assert _coordinator(test_settings).get_agent_by_id("ghost") is None

    def test_capabilities_exposed(self, test_settings):
        reader = _coordinator(test_settings)
        assert reader.get_capabilities().resolve(".pdf").file_type == "document"

    def test_strategy_table_requires_direct(self, test_settings):
        from agent_pipeline.core.exceptions import RegistryError
        from agent_pipeline.processing.strategies import build_strategies

        table = build_strategies(test_settings)
        del table["direct"]
        with pytest.raises(RegistryError):
            _coordinator(test_settings, strategies=table)

    def test_negative_concurrency_rejected(self, test_settings):
        with pytest.raises(ValueError):
            _coordinator(test_settings, max_concurrency=-1)

    @pytest.mark.parametrize("kwargs", [{"chunk_size": 0}, {"max_concurrency": 0}])
    def test_explicit_zero_rejected(self, test_settings, kwargs):
        with pytest.raises(ValueError):
            _coordinator(test_settings, **kwargs)

    def test_manual_performance_update(self, test_settings):
        reader = _coordinator(test_settings)
        reader.update_agent_performance("content_reading_media_reader_2", False, 10.0)
        assert reader.get_agent_by_id("content_reading_media_reader_2").processed_count == 1


@pytest.mark.unit
@pytest.mark.reading
class TestExtractionResultSerialisation:

    async def test_to_dict_is_json_safe(self, test_settings, write_file):
        reader = _coordinator(test_settings)
        [result] = await reader.read_content([write_file("data.json", '{"a": 1}')])

        data = json.loads(json.dumps(result.to_dict()))

        assert data["file_id"] == "data"
        assert data["chunks"][0]["type"] == "structured"
        assert data["metadata"]["quality"]["accuracy"] == 1.0
