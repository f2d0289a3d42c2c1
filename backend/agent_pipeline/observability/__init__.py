"""
Observability Package

Provides:
  traced — decorator that times sync / async callables and logs failures

Usage::

    from agent_pipeline.observability import traced

    @traced("read_content")
    async def read_content(...): ...
"""

from agent_pipeline.observability.tracing import traced

__all__ = ["traced"]
