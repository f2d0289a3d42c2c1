"""
Reading Strategy Set
════════════════════

Each strategy is a plain record (name, predicate, async reader) held in a
dict keyed by the method names a Capability lists. Adding a reader means
adding one entry to build_strategies(); nothing else changes.

  name                 predicate                          backend
  ───────────────────  ─────────────────────────────────  ──────────────────────────
  direct               declared size < 10 MiB             bytes → utf-8 / chardet / latin-1
  streaming            10 MiB ≤ size < 50 MiB             line-by-line text read
  chunked              size ≥ 50 MiB                      fixed blocks + incremental decoder
  pdf_parser           .pdf                               PyMuPDF (fitz)
  office_parser        .docx .xlsx .xlsm                  python-docx / openpyxl
  ocr, ocr_fallback    raster images, unstructured found  unstructured partition_image
  metadata_extraction  any file                           os.stat + mimetypes
  archive_extraction   .zip .tar .gz .tgz .bz2            zipfile / tarfile / gzip / bz2
  database_query       .db .sqlite .sqlite3               sqlite3 (read-only URI)
  syntax_parsing       source-code extensions             bytes → text + language tag

Every reader does its blocking work in the default thread executor so the
coordinator's asyncio.gather() fan-out is not serialised on disk I/O.
Readers raise on I/O problems; the coordinator turns exceptions into
failure results. Non-fatal issues go into StrategyOutput.errors.

Selection (select_strategy):
  first method of the capability whose strategy exists and accepts the
  file; otherwise "direct" regardless of its predicate.
"""

from __future__ import annotations

import asyncio
import bz2
import codecs
import contextlib
import gzip
import importlib.util
import logging
import mimetypes
import os
import sqlite3
import tarfile
import zipfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache, partial
from pathlib import Path
from typing import Any

import chardet

from agent_pipeline.core.config import Settings, settings as default_settings
from agent_pipeline.core.exceptions import ReadingError, RegistryError
from agent_pipeline.processing.capabilities import MIB, Capability, extension_of
from agent_pipeline.schemas.files import FileDescriptor

logger = logging.getLogger(__name__)

DIRECT_MAX_BYTES    = 10 * MIB
STREAMING_MAX_BYTES = 50 * MIB

# bytes handed to chardet
_DETECTION_SAMPLE_BYTES = 256 * 1024

OCR_EXTENSIONS      = frozenset({".jpg", ".jpeg", ".png", ".tiff", ".bmp"})
OFFICE_EXTENSIONS   = frozenset({".docx", ".xlsx", ".xlsm"})
ARCHIVE_EXTENSIONS  = frozenset({".zip", ".tar", ".gz", ".tgz", ".bz2"})
DATABASE_EXTENSIONS = frozenset({".db", ".sqlite", ".sqlite3"})

CODE_LANGUAGES: dict[str, str] = {
    ".js":   "javascript",
    ".ts":   "typescript",
    ".py":   "python",
    ".java": "java",
    ".cpp":  "cpp",
    ".c":    "c",
    ".cs":   "csharp",
    ".php":  "php",
    ".rb":   "ruby",
    ".go":   "go",
    ".rs":   "rust",
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class StrategyOutput:
    """
    What a reader hands back to the coordinator.

    content  : decoded text (may be empty)
    encoding : codec actually used, or "binary"/"utf-8" for parsed formats
    errors   : non-fatal warnings; the file still counts as read
    language : programming language for source files, else None
    """
    content:  str
    encoding: str            = "utf-8"
    errors:   list[str]      = field(default_factory=list)
    language: str | None     = None


@dataclass(frozen=True)
class ReadingStrategy:
    name:       str
    can_handle: Callable[[FileDescriptor], bool]
    read:       Callable[[FileDescriptor], Awaitable[StrategyOutput]]


async def _in_executor(fn: Callable[..., StrategyOutput], *args: Any) -> StrategyOutput:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(fn, *args))


# ---------------------------------------------------------------------------
# Encoding detection
# ---------------------------------------------------------------------------

def decode_bytes(raw: bytes) -> tuple[str, str, list[str]]:
    """
    Decode raw bytes as utf-8, then chardet's guess, then latin-1.

    Returns (text, encoding, warnings). latin-1 cannot fail, so a result is
    always produced; falling that far is reported as a warning.
    """
    try:
        return raw.decode("utf-8"), "utf-8", []
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw[:_DETECTION_SAMPLE_BYTES]).get("encoding")
    if detected:
        try:
            return raw.decode(detected), detected.lower(), []
        except (UnicodeDecodeError, LookupError):
            logger.debug("decode_bytes | chardet guess %s did not decode", detected)

    return raw.decode("latin-1"), "latin-1", [
        "Encoding could not be detected reliably; decoded as latin-1"
    ]


def sniff_encoding(sample: bytes) -> str:
    """Encoding guess from a leading sample that may end mid-character."""
    try:
        codecs.getincrementaldecoder("utf-8")().decode(sample, final=False)
        return "utf-8"
    except UnicodeDecodeError:
        pass
    detected = chardet.detect(sample).get("encoding")
    if detected:
        try:
            codecs.lookup(detected)
            return detected.lower()
        except LookupError:
            pass
    return "latin-1"


# ---------------------------------------------------------------------------
# Text readers — direct / streaming / chunked
# ---------------------------------------------------------------------------

def _read_direct_sync(path: str) -> StrategyOutput:
    raw = Path(path).read_bytes()
    text, encoding, warnings = decode_bytes(raw)
    return StrategyOutput(content=text, encoding=encoding, errors=warnings)


def _read_streaming_sync(path: str, block_size: int) -> StrategyOutput:
    with open(path, "rb") as fh:
        encoding = sniff_encoding(fh.read(block_size))

    lines: list[str] = []
    with open(path, "r", encoding=encoding, errors="replace", newline="") as fh:
        for line in fh:
            lines.append(line)
    return StrategyOutput(content="".join(lines), encoding=encoding)


def _read_chunked_sync(path: str, block_size: int) -> StrategyOutput:
    with open(path, "rb") as fh:
        first = fh.read(block_size)
        encoding = sniff_encoding(first)
        decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

        parts = [decoder.decode(first)]
        while block := fh.read(block_size):
            parts.append(decoder.decode(block))
        parts.append(decoder.decode(b"", final=True))

    return StrategyOutput(content="".join(parts), encoding=encoding)


# ---------------------------------------------------------------------------
# Document readers — PDF / Office
# ---------------------------------------------------------------------------

def _read_pdf_sync(path: str) -> StrategyOutput:
    import fitz  # PyMuPDF

    pages: list[str] = []
    with fitz.open(path) as doc:
        for page in doc:
            text = (page.get_text("text") or "").strip()
            if text:
                pages.append(text)

    warnings = [] if pages else ["PDF has no extractable text layer"]
    return StrategyOutput(content="\n\n".join(pages), encoding="utf-8", errors=warnings)


def _read_docx_sync(path: str) -> StrategyOutput:
    from docx import Document

    doc = Document(path)
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                parts.append(" | ".join(cells))
    return StrategyOutput(content="\n\n".join(parts), encoding="utf-8")


def _read_workbook_sync(path: str) -> StrategyOutput:
    import openpyxl

    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sections: list[str] = []
        for sheet in workbook.worksheets:
            rows = [f"Sheet: {sheet.title}"]
            for row in sheet.iter_rows(values_only=True):
                values = ["" if v is None else str(v) for v in row]
                if any(values):
                    rows.append(" | ".join(values))
            sections.append("\n".join(rows))
    finally:
        workbook.close()
    return StrategyOutput(content="\n\n".join(sections), encoding="utf-8")


def _read_office_sync(path: str) -> StrategyOutput:
    if extension_of(path) == ".docx":
        return _read_docx_sync(path)
    return _read_workbook_sync(path)


# ---------------------------------------------------------------------------
# OCR — unstructured (optional extra)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def ocr_available() -> bool:
    """True when the `unstructured` package is installed (pip install .[ocr])."""
    return importlib.util.find_spec("unstructured") is not None


def _read_image_ocr_sync(path: str) -> StrategyOutput:
    from unstructured.partition.image import partition_image

    elements = partition_image(filename=path)
    lines = [str(el).strip() for el in elements if str(el).strip()]
    warnings = [] if lines else ["OCR found no text in image"]
    return StrategyOutput(content="\n".join(lines), encoding="utf-8", errors=warnings)


async def _read_ocr(file: FileDescriptor, timeout_seconds: int) -> StrategyOutput:
    try:
        return await asyncio.wait_for(
            _in_executor(_read_image_ocr_sync, file.path),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        logger.error("OCR | file=%s timed out after %ds", file.id, timeout_seconds)
        raise ReadingError(f"OCR timed out after {timeout_seconds}s", file_type="image") from exc


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

def _read_metadata_sync(path: str) -> StrategyOutput:
    stat = os.stat(path)
    mime_type, _ = mimetypes.guess_type(path)
    modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
    lines = [
        f"name: {os.path.basename(path)}",
        f"extension: {extension_of(path) or '<none>'}",
        f"size: {stat.st_size}",
        f"mime_type: {mime_type or 'application/octet-stream'}",
        f"modified: {modified.isoformat()}",
    ]
    return StrategyOutput(content="\n".join(lines), encoding="utf-8")


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------

def _decompressed_size(opener: Callable[..., Any], path: str, block_size: int) -> int:
    total = 0
    with opener(path, "rb") as fh:
        while block := fh.read(block_size):
            total += len(block)
    return total


def _read_archive_sync(path: str, max_members: int, block_size: int) -> StrategyOutput:
    members: list[tuple[str, int]] = []
    truncated = False

    if zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if len(members) >= max_members:
                    truncated = True
                    break
                members.append((info.filename, info.file_size))
    elif tarfile.is_tarfile(path):
        with tarfile.open(path, "r:*") as archive:
            for info in archive:
                if not info.isfile():
                    continue
                if len(members) >= max_members:
                    truncated = True
                    break
                members.append((info.name, info.size))
    else:
        ext = extension_of(path)
        opener = {".gz": gzip.open, ".bz2": bz2.open}.get(ext)
        if opener is None:
            raise ReadingError(f"Unrecognised archive format: {ext}", file_type="archive")
        inner = os.path.basename(path)[: -len(ext)] or "data"
        members.append((inner, _decompressed_size(opener, path, block_size)))

    lines = [f"{name}\t{size}" for name, size in members]
    warnings = [f"Archive listing truncated at {max_members} members"] if truncated else []
    return StrategyOutput(content="\n".join(lines), encoding="utf-8", errors=warnings)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _read_sqlite_sync(path: str) -> StrategyOutput:
    uri = Path(path).resolve().as_uri() + "?mode=ro"
    sections: list[str] = []
    with contextlib.closing(sqlite3.connect(uri, uri=True)) as conn:
        tables = conn.execute(
            "SELECT name, sql FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
        for name, ddl in tables:
            (count,) = conn.execute(f"SELECT COUNT(*) FROM {_quote_identifier(name)}").fetchone()
            sections.append(f"table: {name}\nrows: {count}\n{ddl or ''}".rstrip())

    warnings = [] if sections else ["Database contains no tables"]
    return StrategyOutput(content="\n\n".join(sections), encoding="utf-8", errors=warnings)


# ---------------------------------------------------------------------------
# Source code
# ---------------------------------------------------------------------------

def _read_source_sync(path: str) -> StrategyOutput:
    output = _read_direct_sync(path)
    output.language = CODE_LANGUAGES.get(extension_of(path))
    return output


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def _has_extension(extensions: frozenset[str]) -> Callable[[FileDescriptor], bool]:
    return lambda file: extension_of(file.path) in extensions


def build_strategies(cfg: Settings | None = None) -> dict[str, ReadingStrategy]:
    """The built-in strategy table, keyed by reading-method name."""
    cfg = cfg or default_settings
    block = cfg.streaming_block_size

    def ocr_predicate(file: FileDescriptor) -> bool:
        return extension_of(file.path) in OCR_EXTENSIONS and ocr_available()

    ocr_read = partial(_read_ocr, timeout_seconds=cfg.ocr_timeout_seconds)

    records = [
        ReadingStrategy(
            name="direct",
            can_handle=lambda f: f.size < DIRECT_MAX_BYTES,
            read=lambda f: _in_executor(_read_direct_sync, f.path),
        ),
        ReadingStrategy(
            name="streaming",
            can_handle=lambda f: DIRECT_MAX_BYTES <= f.size < STREAMING_MAX_BYTES,
            read=lambda f: _in_executor(_read_streaming_sync, f.path, block),
        ),
        ReadingStrategy(
            name="chunked",
            can_handle=lambda f: f.size >= STREAMING_MAX_BYTES,
            read=lambda f: _in_executor(_read_chunked_sync, f.path, block),
        ),
        ReadingStrategy(
            name="pdf_parser",
            can_handle=_has_extension(frozenset({".pdf"})),
            read=lambda f: _in_executor(_read_pdf_sync, f.path),
        ),
        ReadingStrategy(
            name="office_parser",
            can_handle=_has_extension(OFFICE_EXTENSIONS),
            read=lambda f: _in_executor(_read_office_sync, f.path),
        ),
        ReadingStrategy(name="ocr",          can_handle=ocr_predicate, read=ocr_read),
        ReadingStrategy(name="ocr_fallback", can_handle=ocr_predicate, read=ocr_read),
        ReadingStrategy(
            name="metadata_extraction",
            can_handle=lambda f: True,
            read=lambda f: _in_executor(_read_metadata_sync, f.path),
        ),
        ReadingStrategy(
            name="archive_extraction",
            can_handle=_has_extension(ARCHIVE_EXTENSIONS),
            read=lambda f: _in_executor(
                _read_archive_sync, f.path, cfg.archive_max_members, block
            ),
        ),
        ReadingStrategy(
            name="database_query",
            can_handle=_has_extension(DATABASE_EXTENSIONS),
            read=lambda f: _in_executor(_read_sqlite_sync, f.path),
        ),
        ReadingStrategy(
            name="syntax_parsing",
            can_handle=_has_extension(frozenset(CODE_LANGUAGES)),
            read=lambda f: _in_executor(_read_source_sync, f.path),
        ),
    ]
    return {record.name: record for record in records}


def select_strategy(
    capability: Capability,
    file:       FileDescriptor,
    strategies: dict[str, ReadingStrategy],
) -> ReadingStrategy:
    """First declared method whose strategy accepts the file, else "direct"."""
    for method in capability.reading_methods:
        strategy = strategies.get(method)
        if strategy is not None and strategy.can_handle(file):
            return strategy
    try:
        return strategies["direct"]
    except KeyError as exc:
        raise RegistryError("strategy table has no 'direct' fallback") from exc
