"""
Unit Tests — @traced span decorator
════════════════════════════════════
Coverage:
  ✅ Sync and async callables return their value unchanged
  ✅ Exceptions are logged at ERROR and re-raised
  ✅ Span name defaults to the function's qualified name
"""

from __future__ import annotations

import logging

import pytest

LOGGER = "agent_pipeline.observability.tracing"


@pytest.mark.unit
class TestTraced:

    def test_sync_success(self, caplog):
        from agent_pipeline.observability import traced

        @traced("unit.add")
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger=LOGGER):
            assert add(2, 3) == 5
        assert "span=unit.add" in caplog.text
        assert "elapsed_ms=" in caplog.text

    def test_sync_error_reraised(self, caplog):
        from agent_pipeline.observability import traced

        @traced("unit.fail")
        def fail():
            raise ValueError("nope")

        with caplog.at_level(logging.ERROR, logger=LOGGER):
            with pytest.raises(ValueError, match="nope"):
                fail()
        assert "span=unit.fail" in caplog.text
        assert "error=nope" in caplog.text

    async def test_async_success(self, caplog):
        from agent_pipeline.observability import traced

        @traced()
        async def fetch():
            return "data"

        with caplog.at_level(logging.DEBUG, logger=LOGGER):
            assert await fetch() == "data"
        assert "fetch" in caplog.text

    async def test_async_error_reraised(self):
        from agent_pipeline.observability import traced

        @traced("unit.async_fail")
        async def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await fail()

    def test_wraps_preserves_metadata(self):
        from agent_pipeline.observability import traced

        @traced()
        def documented():
            """Docstring survives."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring survives."
