"""
Pipeline exception taxonomy.

Only registry and arena errors escape a coordinator; they signal programmer
or initialisation mistakes. Reading errors are raised inside the per-file
path and converted into failure ExtractionResults before they reach callers.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the content pipeline."""


# ---------------------------------------------------------------------------
# Initialisation errors
# ---------------------------------------------------------------------------

class RegistryError(PipelineError, ValueError):
    """A capability or strategy table is malformed."""


# ---------------------------------------------------------------------------
# Reading tier
# ---------------------------------------------------------------------------

class ReadingError(PipelineError):
    """A single file could not be routed to an extraction strategy."""

    def __init__(self, message: str, file_type: str = "unknown") -> None:
        super().__init__(message)
        self.file_type = file_type


class UnsupportedFileTypeError(ReadingError):
    def __init__(self, extension: str) -> None:
        super().__init__(f"Unsupported file type: {extension or '<none>'}")
        self.extension = extension


class FileSizeExceededError(ReadingError):
    def __init__(self, size: int, max_size: int, file_type: str) -> None:
        super().__init__(
            f"File too large: {size} bytes exceeds the size limit of {max_size} bytes",
            file_type=file_type,
        )
        self.size     = size
        self.max_size = max_size


# ---------------------------------------------------------------------------
# Agent arena misuse
# ---------------------------------------------------------------------------

class UnknownAgentError(PipelineError, KeyError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(f"unknown agent_id: {agent_id}")
        self.agent_id = agent_id

    def __str__(self) -> str:
        return self.args[0]


class AgentBusyError(PipelineError, RuntimeError):
    """The agent already holds a reservation; agents are not reentrant."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"agent {agent_id} is busy")
        self.agent_id = agent_id


class ReservationError(PipelineError, RuntimeError):
    """A release was attempted with a token that does not own the agent."""
