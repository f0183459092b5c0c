# Schemas package - Pydantic models
from memegen.schemas.meme import (
    CaptionPair,
    CaptionPosition,
    ErrorResponse,
    GenerationRecord,
    GenerationRequest,
    GenerationResponse,
    GenerationStatus,
    ProcessResult,
    SystemPromptSettings,
)

__all__ = [
    "CaptionPair",
    "CaptionPosition",
    "ErrorResponse",
    "GenerationRecord",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationStatus",
    "ProcessResult",
    "SystemPromptSettings",
]
