"""
Content Reading Coordinator
═══════════════════════════

Reads a batch of heterogeneous files and returns one ExtractionResult per
input file, in input order.

Per-file flow:
  0. Validate plain mappings into FileDescriptor
        invalid     → failure result keyed by the raw id, file_type "unknown"
  1. Resolve the Capability from the extension
        none        → failure result, file_type "unknown"
  2. Compare declared size with capability.max_size
        too large   → failure result, method "failed"
  3. Select a strategy (capability method order, "direct" fallback)
  4. Run it; an exception from selection, reading or chunking becomes a
     failure result, never a batch abort
  5. Chunk → classify → score quality → detect structure
  6. Attribute the outcome to the reading agent for the file type and
     record it through the shared EMA performance update

Batching:
  Files are processed in batches of at most `max_concurrency`; members of
  a batch run concurrently under asyncio.gather(), which preserves input
  order regardless of completion order.

Agent attribution:
  text → text_reader, document / spreadsheet → document_reader,
  image / audio / video → media_reader, archive → archive_reader,
  database → database_reader, code → code_reader, other → binary_reader.
  Several files of one type are in flight at once, so reading agents are
  credited after the fact rather than reserved. Invalid descriptors and
  routing rejections (steps 0–2) never touch agent performance.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import ValidationError

from agent_pipeline.agents.arena import AgentArena
from agent_pipeline.agents.models import AgentDescriptor, AgentTier
from agent_pipeline.core.config import Settings, settings as default_settings
from agent_pipeline.core.exceptions import (
    FileSizeExceededError,
    ReadingError,
    RegistryError,
    UnsupportedFileTypeError,
)
from agent_pipeline.observability.tracing import traced
from agent_pipeline.processing.capabilities import (
    Capability,
    CapabilityRegistry,
    extension_of,
)
from agent_pipeline.processing.chunking import (
    ContentChunk,
    QualityMetrics,
    StructureFlags,
    assess_quality,
    chunk_content,
    detect_structure,
)
from agent_pipeline.processing.strategies import (
    ReadingStrategy,
    StrategyOutput,
    build_strategies,
    select_strategy,
)
from agent_pipeline.schemas.files import FileDescriptor

logger = logging.getLogger(__name__)

FAILED_METHOD = "failed"

# Reader kinds, in registration order → agent ids content_reading_<kind>_<index>
READER_SPECIALIZATIONS: dict[str, tuple[str, ...]] = {
    "text_reader":     ("text_files", "encoding_detection", "streaming"),
    "document_reader": ("pdf_parsing", "office_documents", "ocr_processing"),
    "media_reader":    ("image_processing", "audio_transcription", "video_analysis"),
    "archive_reader":  ("archive_extraction", "recursive_parsing", "compression_handling"),
    "database_reader": ("database_querying", "schema_analysis", "data_extraction"),
    "code_reader":     ("syntax_parsing", "comment_extraction", "structure_analysis"),
    "binary_reader":   ("binary_analysis", "hex_parsing", "structure_detection"),
}

FILE_TYPE_READERS: dict[str, str] = {
    "text":        "text_reader",
    "document":    "document_reader",
    "spreadsheet": "document_reader",
    "image":       "media_reader",
    "audio":       "media_reader",
    "video":       "media_reader",
    "archive":     "archive_reader",
    "database":    "database_reader",
    "code":        "code_reader",
}
FALLBACK_READER = "binary_reader"


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ExtractionMetadata:
    file_size:          int
    file_type:          str
    encoding:           str
    extraction_method:  str
    extraction_time_ms: float
    quality:            QualityMetrics = field(default_factory=QualityMetrics)
    structure:          StructureFlags = field(default_factory=StructureFlags)
    agent_id:           str | None     = None


@dataclass
class ExtractionResult:
    """
    Output of reading one file.

    content : full extracted text ("" on failure)
    chunks  : ordered windows partitioning `content` (empty on failure)
    errors  : failure reason, or non-fatal strategy warnings on success
    """
    file_id:  str
    path:     str
    content:  str
    metadata: ExtractionMetadata
    chunks:   list[ContentChunk] = field(default_factory=list)
    errors:   list[str]          = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.metadata.extraction_method != FAILED_METHOD

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation for worker results."""
        data = asdict(self)
        for chunk in data["chunks"]:
            chunk["type"] = chunk["type"].value
        return data


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class ContentReadingCoordinator:
    """
    Content reading tier: capability routing, strategy execution, chunking.

    Usage::

        reader  = ContentReadingCoordinator()
        results = await reader.read_content([
            FileDescriptor(id="f1", path="/data/notes.txt", size=42),
        ])
    """

    def __init__(
        self,
        chunk_size:      int | None                           = None,
        max_concurrency: int | None                           = None,
        registry:        CapabilityRegistry | None            = None,
        strategies:      Mapping[str, ReadingStrategy] | None = None,
        cfg:             Settings | None                      = None,
    ) -> None:
        cfg = cfg or default_settings
        self.chunk_size      = cfg.reading_chunk_size if chunk_size is None else chunk_size
        self.max_concurrency = (
            cfg.reading_max_concurrency if max_concurrency is None else max_concurrency
        )
        if self.chunk_size <= 0 or self.max_concurrency <= 0:
            raise ValueError("chunk_size and max_concurrency must be positive")

        self._registry   = registry or CapabilityRegistry()
        self._strategies = dict(strategies) if strategies is not None else build_strategies(cfg)
        if "direct" not in self._strategies:
            raise RegistryError("strategy table must include the 'direct' fallback")

        self._arena = AgentArena(AgentTier.CONTENT_READING, cfg)
        self._reader_ids: dict[str, str] = {}
        for index, (kind, specs) in enumerate(READER_SPECIALIZATIONS.items()):
            agent_id = f"content_reading_{kind}_{index}"
            self._arena.create_agent(agent_id, f"{kind.replace('_', ' ').upper()} Agent {index}", specs)
            self._reader_ids[kind] = agent_id

        logger.info(
            "ContentReadingCoordinator | ready agents=%d strategies=%d chunk_size=%d max_concurrency=%d",
            len(self._arena), len(self._strategies), self.chunk_size, self.max_concurrency,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced("ContentReadingCoordinator.read_content")
    async def read_content(
        self, files: Iterable[FileDescriptor | Mapping[str, Any]]
    ) -> list[ExtractionResult]:
        entries = [self._validate(f) for f in files]
        results: list[ExtractionResult] = []

        for start in range(0, len(entries), self.max_concurrency):
            batch   = entries[start:start + self.max_concurrency]
            pending = [e for e in batch if isinstance(e, FileDescriptor)]
            done    = iter(await asyncio.gather(*(self._process_file(f) for f in pending)))
            results.extend(next(done) if isinstance(e, FileDescriptor) else e for e in batch)

        failed = sum(1 for r in results if r.metadata.extraction_method == FAILED_METHOD)
        logger.info("ContentReader | files=%d failed=%d", len(results), failed)
        return results

    def update_agent_performance(self, agent_id: str, success: bool, elapsed_ms: float) -> None:
        self._arena.update_performance(agent_id, success, elapsed_ms)

    def get_agents(self) -> list[AgentDescriptor]:
        return self._arena.all()

    def get_agent_by_id(self, agent_id: str) -> AgentDescriptor | None:
        return self._arena.get(agent_id) if agent_id in self._arena else None

    def get_capabilities(self) -> CapabilityRegistry:
        return self._registry

    def reader_for(self, file_type: str) -> str:
        """Agent id credited for files of `file_type`."""
        return self._reader_ids[FILE_TYPE_READERS.get(file_type, FALLBACK_READER)]

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    async def _process_file(self, file: FileDescriptor) -> ExtractionResult:
        t0 = time.perf_counter()

        try:
            capability = self._route(file)
        except ReadingError as exc:
            logger.info("ContentReader | file=%s rejected: %s", file.id, exc)
            return self._failure(file, exc.file_type, str(exc), t0)

        agent_id = self.reader_for(capability.file_type)
        method   = "-"

        try:
            strategy = select_strategy(capability, file, self._strategies)
            method   = strategy.name
            output   = await strategy.read(file)
            result   = self._build_result(file, capability, method, output, t0)
        except Exception as exc:
            logger.warning("ContentReader | file=%s method=%s failed: %s", file.id, method, exc)
            result = self._failure(
                file, capability.file_type, str(exc) or exc.__class__.__name__, t0
            )
            result.metadata.agent_id = agent_id
            self.update_agent_performance(agent_id, False, result.metadata.extraction_time_ms)
            return result

        result.metadata.agent_id = agent_id
        self.update_agent_performance(agent_id, True, result.metadata.extraction_time_ms)

        logger.debug(
            "ContentReader | file=%s type=%s method=%s chars=%d chunks=%d elapsed_ms=%.1f",
            file.id, capability.file_type, method, len(result.content),
            len(result.chunks), result.metadata.extraction_time_ms,
        )
        return result

    @staticmethod
    def _validate(item: FileDescriptor | Mapping[str, Any]) -> FileDescriptor | ExtractionResult:
        """Descriptor for `item`, or a failure result keyed by its raw id."""
        if isinstance(item, FileDescriptor):
            return item
        t0 = time.perf_counter()
        try:
            return FileDescriptor.model_validate(item)
        except ValidationError as exc:
            raw     = item if isinstance(item, Mapping) else {}
            size    = raw.get("size")
            if not isinstance(size, int) or isinstance(size, bool) or size < 0:
                size = 0
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'descriptor'}: {err['msg']}"
                for err in exc.errors()
            )
            logger.info("ContentReader | file=%s invalid descriptor: %s", raw.get("id"), reasons)
            return ExtractionResult(
                file_id=str(raw.get("id") or ""),
                path=str(raw.get("path") or ""),
                content="",
                metadata=ExtractionMetadata(
                    file_size=size,
                    file_type="unknown",
                    encoding="unknown",
                    extraction_method=FAILED_METHOD,
                    extraction_time_ms=(time.perf_counter() - t0) * 1000,
                ),
                errors=[f"Invalid file descriptor: {reasons}"],
            )

    def _route(self, file: FileDescriptor) -> Capability:
        capability = self._registry.resolve_path(file.path)
        if capability is None:
            raise UnsupportedFileTypeError(extension_of(file.path))
        if file.size > capability.max_size:
            raise FileSizeExceededError(file.size, capability.max_size, capability.file_type)
        return capability

    def _build_result(
        self,
        file:        FileDescriptor,
        capability:  Capability,
        method:      str,
        output:      StrategyOutput,
        t0:          float,
    ) -> ExtractionResult:
        content = output.content
        chunks  = chunk_content(
            content, file.id, self.chunk_size,
            encoding=output.encoding, language=output.language,
        )
        return ExtractionResult(
            file_id=file.id,
            path=file.path,
            content=content,
            metadata=ExtractionMetadata(
                file_size=file.size,
                file_type=capability.file_type,
                encoding=output.encoding or "utf-8",
                extraction_method=method,
                extraction_time_ms=(time.perf_counter() - t0) * 1000,
                quality=assess_quality(content, capability.file_type),
                structure=detect_structure(content),
            ),
            chunks=chunks,
            errors=list(output.errors),
        )

    @staticmethod
    def _failure(file: FileDescriptor, file_type: str, message: str, t0: float) -> ExtractionResult:
        return ExtractionResult(
            file_id=file.id,
            path=file.path,
            content="",
            metadata=ExtractionMetadata(
                file_size=file.size,
                file_type=file_type,
                encoding="unknown",
                extraction_method=FAILED_METHOD,
                extraction_time_ms=(time.perf_counter() - t0) * 1000,
            ),
            errors=[message],
        )
