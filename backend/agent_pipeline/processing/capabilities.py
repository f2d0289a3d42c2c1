"""
Capability Registry
═══════════════════

Maps a file extension to the Capability that governs how the file may be
read: its file_type, the size ceiling, and the ordered list of reading
methods to try.

The built-in table is static data. A registry is built once, validated at
construction, and read-only afterwards:

  file_type     extensions                                max size   methods
  ───────────   ───────────────────────────────────────   ────────   ─────────────────────────────────
  text          .txt .md .csv .json .xml .yaml .log        100 MiB    direct → streaming → chunked
  document      .pdf .docx .doc .rtf .odt                  50 MiB     pdf_parser → office_parser → ocr_fallback
  spreadsheet   .xlsx .xlsm                                50 MiB     office_parser → direct
  image         .jpg .jpeg .png .gif .bmp .tiff .svg       20 MiB     ocr → metadata_extraction → image_analysis
  audio         .mp3 .wav .flac .aac .ogg .m4a             100 MiB    speech_to_text → metadata_extraction → …
  video         .mp4 .avi .mov .mkv .wmv .flv .webm        1 GiB      frame_extraction → …
  archive       .zip .rar .7z .tar .gz .tgz .bz2           1 GiB      archive_extraction → …
  database      .db .sqlite .sqlite3 .mdb .accdb           1 GiB      database_query → …
  code          .js .ts .py .java .cpp .c .cs .php .rb …   10 MiB     syntax_parsing → …

When two descriptors claim the same extension the later one wins.
Methods without a registered strategy are skipped at selection time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from agent_pipeline.core.exceptions import RegistryError

logger = logging.getLogger(__name__)

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB


@dataclass(frozen=True)
class Capability:
    file_type:       str
    extensions:      tuple[str, ...]
    max_size:        int
    reading_methods: tuple[str, ...]
    quality_metrics: tuple[str, ...] = ()


DEFAULT_CAPABILITIES: tuple[Capability, ...] = (
    Capability(
        file_type="text",
        extensions=(".txt", ".md", ".csv", ".json", ".xml", ".yaml", ".log"),
        max_size=100 * MIB,
        reading_methods=("direct", "streaming", "chunked"),
        quality_metrics=("encoding_accuracy", "completeness", "readability"),
    ),
    Capability(
        file_type="document",
        extensions=(".pdf", ".docx", ".doc", ".rtf", ".odt"),
        max_size=50 * MIB,
        reading_methods=("pdf_parser", "office_parser", "ocr_fallback"),
        quality_metrics=("text_extraction_accuracy", "structure_preservation", "completeness"),
    ),
    Capability(
        file_type="spreadsheet",
        extensions=(".xlsx", ".xlsm"),
        max_size=50 * MIB,
        reading_methods=("office_parser", "direct"),
        quality_metrics=("completeness", "structure_preservation"),
    ),
    Capability(
        file_type="image",
        extensions=(".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".svg"),
        max_size=20 * MIB,
        reading_methods=("ocr", "metadata_extraction", "image_analysis"),
        quality_metrics=("ocr_accuracy", "image_quality", "text_detection"),
    ),
    Capability(
        file_type="audio",
        extensions=(".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a"),
        max_size=100 * MIB,
        reading_methods=("speech_to_text", "metadata_extraction", "audio_analysis"),
        quality_metrics=("transcription_accuracy", "audio_quality", "completeness"),
    ),
    Capability(
        file_type="video",
        extensions=(".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm"),
        max_size=1 * GIB,
        reading_methods=("frame_extraction", "subtitle_extraction", "speech_transcription"),
        quality_metrics=("frame_quality", "subtitle_accuracy", "transcription_accuracy"),
    ),
    Capability(
        file_type="archive",
        extensions=(".zip", ".rar", ".7z", ".tar", ".gz", ".tgz", ".bz2"),
        max_size=1 * GIB,
        reading_methods=("archive_extraction", "content_indexing", "recursive_reading"),
        quality_metrics=("extraction_completeness", "file_integrity", "structure_preservation"),
    ),
    Capability(
        file_type="database",
        extensions=(".db", ".sqlite", ".sqlite3", ".mdb", ".accdb"),
        max_size=1 * GIB,
        reading_methods=("database_query", "table_extraction", "schema_analysis"),
        quality_metrics=("data_completeness", "schema_accuracy", "relationship_preservation"),
    ),
    Capability(
        file_type="code",
        extensions=(".js", ".ts", ".py", ".java", ".cpp", ".c", ".cs", ".php", ".rb", ".go", ".rs"),
        max_size=10 * MIB,
        reading_methods=("syntax_parsing", "comment_extraction", "structure_analysis"),
        quality_metrics=("syntax_accuracy", "comment_extraction", "structure_analysis"),
    ),
)


def extension_of(path: str) -> str:
    """Lower-cased suffix after the last '.' (including the dot), or '' if none."""
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return "." + name.rsplit(".", 1)[-1].lower()


class CapabilityRegistry:
    """
    Extension → Capability lookup.

    Raises RegistryError at construction for malformed descriptors so that a
    bad table is caught at worker start-up, never while reading a batch.
    """

    def __init__(self, capabilities: Iterable[Capability] = DEFAULT_CAPABILITIES) -> None:
        self._by_extension: dict[str, Capability] = {}
        self._capabilities: list[Capability] = []

        for capability in capabilities:
            self._validate(capability)
            self._capabilities.append(capability)
            for ext in capability.extensions:
                previous = self._by_extension.get(ext.lower())
                if previous is not None and previous.file_type != capability.file_type:
                    logger.debug(
                        "CapabilityRegistry | extension=%s reassigned %s → %s",
                        ext, previous.file_type, capability.file_type,
                    )
                self._by_extension[ext.lower()] = capability

    @staticmethod
    def _validate(capability: Capability) -> None:
        if not capability.extensions:
            raise RegistryError(f"capability {capability.file_type!r} declares no extensions")
        if not capability.reading_methods:
            raise RegistryError(f"capability {capability.file_type!r} declares no reading methods")
        if capability.max_size <= 0:
            raise RegistryError(
                f"capability {capability.file_type!r} has non-positive max_size {capability.max_size}"
            )
        for ext in capability.extensions:
            if not ext.startswith(".") or len(ext) < 2:
                raise RegistryError(
                    f"capability {capability.file_type!r}: extension {ext!r} must start with '.'"
                )

    def resolve(self, extension: str) -> Capability | None:
        return self._by_extension.get(extension.lower())

    def resolve_path(self, path: str) -> Capability | None:
        return self.resolve(extension_of(path))

    def extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def file_types(self) -> list[str]:
        seen: dict[str, None] = {}
        for capability in self._capabilities:
            seen.setdefault(capability.file_type, None)
        return list(seen)
