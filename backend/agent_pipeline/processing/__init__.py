"""
Content Reading Package
═══════════════════════

Turns a batch of files into ordered, scored ExtractionResults:

  Capability Lookup → Strategy Selection → Read → Chunk → Score

Modules
───────
  capabilities.py  extension → Capability (file type, size ceiling, methods)
  strategies.py    data-driven reading strategies (direct, pdf_parser, ocr, ...)
  chunking.py      fixed-window chunking, chunk typing, quality and structure
  reader.py        ContentReadingCoordinator — batching, routing, attribution
"""

from agent_pipeline.processing.capabilities import Capability, CapabilityRegistry
from agent_pipeline.processing.chunking import ChunkType, ContentChunk
from agent_pipeline.processing.reader import (
    ContentReadingCoordinator,
    ExtractionMetadata,
    ExtractionResult,
)
from agent_pipeline.processing.strategies import ReadingStrategy, StrategyOutput

__all__ = [
    "Capability",
    "CapabilityRegistry",
    "ChunkType",
    "ContentChunk",
    "ContentReadingCoordinator",
    "ExtractionMetadata",
    "ExtractionResult",
    "ReadingStrategy",
    "StrategyOutput",
]
