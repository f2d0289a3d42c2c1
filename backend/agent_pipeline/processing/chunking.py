"""
Content Chunking, Classification & Quality Scoring
═══════════════════════════════════════════════════

Fixed-window segmentation
─────────────────────────
  Reading-tier chunks are transport units, not semantic units: downstream
  analysis re-segments as it likes. Windows are therefore plain character
  ranges that partition the content exactly:

    len ≤ chunk_size      →  one chunk [0, len)            confidence 1.0
    len >  chunk_size     →  ceil(len / chunk_size) chunks  confidence 0.9
    len == 0              →  one empty chunk [0, 0)

  Chunk ids are `{file_id}_chunk_{sequence}`; sequences are 0-based and
  contiguous.

Chunk type (first match wins)
─────────────────────────────
  binary      NUL characters make up more than 10 % of the chunk
  structured  whole-string JSON object or XML/HTML envelope, a YAML
              `key:` line, a CSV `key,` line, or a markdown pipe row
  image       PNG / JPEG / GIF / BMP / TIFF / RIFF-WAVE magic prefix
  mixed       an alphabetic run of 3+ next to any NUL / control byte or
              an inline markup / JSON fragment
  text        everything else

Quality and structure are computed over the whole extracted content, not
per chunk.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum


class ChunkType(str, Enum):
    TEXT       = "text"
    BINARY     = "binary"
    IMAGE      = "image"
    STRUCTURED = "structured"
    MIXED      = "mixed"


SINGLE_CHUNK_CONFIDENCE = 1.0
MULTI_CHUNK_CONFIDENCE  = 0.9

BINARY_NUL_RATIO = 0.1

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

_JSON_ENVELOPE = re.compile(r"\s*\{[\s\S]*\}\s*")
_XML_ENVELOPE  = re.compile(r"\s*<[\s\S]*>\s*")
_STRUCTURED_LINES = (
    re.compile(r"^\s*[\w-]+:", re.MULTILINE),          # YAML key
    re.compile(r"^\s*[\w-]+,", re.MULTILINE),          # CSV row
    re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE),       # markdown table row
)

_IMAGE_MAGIC = re.compile(
    r"^(?:"
    r"\x89PNG\r\n\x1a\n"
    r"|\xff\xd8\xff"
    r"|GIF8[79]a"
    r"|BM[\s\S]{4}\x00\x00\x00\x00"
    r"|II\*\x00|MM\x00\*"
    r"|RIFF[\s\S]{4}WAVE"
    r")"
)

_ALPHA_RUN       = re.compile(r"[A-Za-z]{3,}")
_INLINE_FRAGMENT = re.compile(r"<[A-Za-z][^<>]*>|\{\s*\"[^\"]*\"\s*:")

_HEADERS  = (re.compile(r"^#{1,6}\s", re.MULTILINE), re.compile(r"^={3,}\s*$", re.MULTILINE))
_TABLES   = re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE)
_IMAGES   = (re.compile(r"!\[.*?\]\(.*?\)"), re.compile(r"<img[^>]*>", re.IGNORECASE))
_EMBEDDED = (re.compile(r"<iframe|<embed|<object", re.IGNORECASE), re.compile(r"\[\[.*?\]\]"))


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ContentChunk:
    """One contiguous [start, end) window of an ExtractionResult's content."""
    id:         str
    sequence:   int
    content:    str
    size:       int
    type:       ChunkType
    start:      int
    end:        int
    encoding:   str
    confidence: float
    language:   str | None = None


@dataclass
class QualityMetrics:
    completeness: float = 0.0
    accuracy:     float = 0.0
    readability:  float = 0.0


@dataclass
class StructureFlags:
    has_headers:          bool = False
    has_tables:           bool = False
    has_images:           bool = False
    has_embedded_content: bool = False


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _is_binary(content: str) -> bool:
    return bool(content) and content.count("\x00") / len(content) > BINARY_NUL_RATIO


def _is_structured(content: str) -> bool:
    if _JSON_ENVELOPE.fullmatch(content) or _XML_ENVELOPE.fullmatch(content):
        return True
    return any(p.search(content) for p in _STRUCTURED_LINES)


def _is_mixed(content: str) -> bool:
    if not _ALPHA_RUN.search(content):
        return False
    return bool(_CONTROL_CHARS.search(content) or _INLINE_FRAGMENT.search(content))


def classify_chunk(content: str) -> ChunkType:
    """Pure function of `content`; identical input always yields the same type."""
    if _is_binary(content):
        return ChunkType.BINARY
    if _is_structured(content):
        return ChunkType.STRUCTURED
    if _IMAGE_MAGIC.match(content):
        return ChunkType.IMAGE
    if _is_mixed(content):
        return ChunkType.MIXED
    return ChunkType.TEXT


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------

def chunk_content(
    content:    str,
    file_id:    str,
    chunk_size: int,
    encoding:   str        = "utf-8",
    language:   str | None = None,
) -> list[ContentChunk]:
    """Split `content` into ordered windows that cover it with no gaps or overlaps."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    if len(content) <= chunk_size:
        return [ContentChunk(
            id=f"{file_id}_chunk_0",
            sequence=0,
            content=content,
            size=len(content),
            type=classify_chunk(content),
            start=0,
            end=len(content),
            encoding=encoding,
            confidence=SINGLE_CHUNK_CONFIDENCE,
            language=language,
        )]

    chunks: list[ContentChunk] = []
    for seq in range(math.ceil(len(content) / chunk_size)):
        start = seq * chunk_size
        end   = min(start + chunk_size, len(content))
        piece = content[start:end]
        chunks.append(ContentChunk(
            id=f"{file_id}_chunk_{seq}",
            sequence=seq,
            content=piece,
            size=len(piece),
            type=classify_chunk(piece),
            start=start,
            end=end,
            encoding=encoding,
            confidence=MULTI_CHUNK_CONFIDENCE,
            language=language,
        ))
    return chunks


# ---------------------------------------------------------------------------
# Quality & structure
# ---------------------------------------------------------------------------

def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def assess_quality(content: str, file_type: str) -> QualityMetrics:
    """
    completeness : 0 when empty, 0.5 under 100 chars, else 1.0
    accuracy     : share of characters that are not control characters
    readability  : closeness of words-per-sentence to 15 (text files only)
    """
    length = len(content)
    if length == 0:
        completeness = 0.0
    elif length < 100:
        completeness = 0.5
    else:
        completeness = 1.0

    accuracy = 0.0 if length == 0 else _clamp01(1 - len(_CONTROL_CHARS.findall(content)) / length)

    readability = 1.0
    if file_type == "text":
        words     = len(re.split(r"\s+", content))
        sentences = len(re.split(r"[.!?]+", content))
        readability = _clamp01(1 - abs(words / sentences - 15) / 15)

    return QualityMetrics(completeness=completeness, accuracy=accuracy, readability=readability)


def detect_structure(content: str) -> StructureFlags:
    return StructureFlags(
        has_headers=any(p.search(content) for p in _HEADERS),
        has_tables=bool(_TABLES.search(content)),
        has_images=any(p.search(content) for p in _IMAGES),
        has_embedded_content=any(p.search(content) for p in _EMBEDDED),
    )
