"""
File Supply — Pydantic input schema for the content reading tier.

The extension of `path` is the only type signal; `size` is the declared
size in bytes and drives both the capability size ceiling and the choice
between direct / streaming / chunked readers.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class FileDescriptor(BaseModel):
    """One file handed to ContentReadingCoordinator.read_content()."""
    id:   str = Field(..., min_length=1, description="Caller-assigned file identifier")
    path: str = Field(..., min_length=1, description="Local filesystem path")
    size: int = Field(..., ge=0, description="Declared size in bytes")

    model_config = {"frozen": True}
