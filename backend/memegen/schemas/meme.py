"""
Meme generation schemas.

This module contains the Pydantic models shared by the generation pipeline,
the generation store and the HTTP routes.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class GenerationStatus(str, Enum):
    """Lifecycle states of a generation record."""
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class CaptionPosition(str, Enum):
    """Valid positions for meme caption text."""
    TOP = "top"
    BOTTOM = "bottom"


# =============================================================================
# PIPELINE VALUE OBJECTS
# =============================================================================

class CaptionPair(BaseModel):
    """
    Top and bottom caption text.

    An empty pair means "no captions"; it is never used to signal a failed
    caption generation (that is an exception).
    """

    top: str = ""
    bottom: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.top and not self.bottom


class ProcessResult(BaseModel):
    """Captured output of a single external model invocation."""

    stdout: str
    stderr: str
    succeeded: bool


# =============================================================================
# STORAGE SCHEMAS
# =============================================================================

class GenerationRecord(BaseModel):
    """A persisted generation as returned by the store."""

    id: int
    prompt: str
    image_path: str = Field("", description="Bare filename under the output directory, or empty")
    top_text: str = ""
    bottom_text: str = ""
    status: GenerationStatus
    error_message: Optional[str] = None
    created_at: datetime


# =============================================================================
# FRONTEND REQUEST/RESPONSE SCHEMAS
# =============================================================================

class GenerationRequest(BaseModel):
    """
    Request schema for a meme generation.

    Setting generate_captions to false is an explicit request for an
    uncaptioned image.
    """

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural-language description of the meme image",
        examples=["A cat realizing it is Monday again"],
    )

    generate_captions: bool = Field(
        True,
        description="Ask the text model for top/bottom captions",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Validate and clean the prompt."""
        v = v.strip()
        if not v:
            raise ValueError("Prompt cannot be empty")
        return v


class GenerationResponse(GenerationRecord):
    """Generation record plus the URL the image is served from."""

    image_url: Optional[str] = None

    @classmethod
    def from_record(cls, record: GenerationRecord) -> "GenerationResponse":
        data = record.model_dump()
        if record.image_path:
            data["image_url"] = f"/images/{record.image_path}"
        return cls(**data)


class SystemPromptSettings(BaseModel):
    """The preamble prepended to every image prompt."""

    system_prompt: str = Field(
        "",
        max_length=4000,
        description="Text placed before the user prompt, separated by a blank line",
    )


# =============================================================================
# ERROR RESPONSE SCHEMA
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error details")
