"""
Meme generation API routes.

This module defines the REST API endpoints for meme generation, generation
history and the system prompt setting. Handlers that run the pipeline are
plain functions, so FastAPI runs them in its threadpool while the model
process blocks.
"""

import logging
import os
import shlex
import shutil
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from memegen.config import Settings, get_settings
from memegen.schemas.meme import (
    ErrorResponse,
    GenerationRequest,
    GenerationResponse,
    SystemPromptSettings,
)
from memegen.services.pipeline import MemePipeline, get_pipeline
from memegen.services.store import SYSTEM_PROMPT_KEY, GenerationStore, get_store

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags
router = APIRouter(
    prefix="/api/v1",
    tags=["meme"],
)


@router.post(
    "/generations",
    response_model=GenerationResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {
            "description": "Generation finished (check status for success or failure)",
            "model": GenerationResponse,
        },
        422: {
            "description": "Invalid request (validation error)",
        },
    },
    summary="Generate a meme",
    description="""
    Generate a captioned meme from a prompt.

    1. The image model generates the picture (system prompt prepended)
    2. The text model writes top/bottom captions (skipped when generate_captions is false)
    3. Captions are drawn onto the image

    A failed generation is still returned, with status "failed" and an error message.
    """,
)
def create_generation(
    request: GenerationRequest,
    pipeline: Annotated[MemePipeline, Depends(get_pipeline)],
) -> GenerationResponse:
    logger.info(
        f"Received generation request. "
        f"Prompt length: {len(request.prompt)} chars, captions: {request.generate_captions}"
    )
    record = pipeline.generate(request.prompt, request.generate_captions)
    return GenerationResponse.from_record(record)


@router.get(
    "/generations",
    response_model=List[GenerationResponse],
    summary="Generation history",
)
def list_generations(
    store: Annotated[GenerationStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[Optional[int], Query(ge=1, le=100)] = None,
) -> List[GenerationResponse]:
    records = store.list(limit or settings.HISTORY_LIMIT)
    return [GenerationResponse.from_record(record) for record in records]


@router.get(
    "/generations/{generation_id}",
    response_model=GenerationResponse,
    responses={
        404: {
            "description": "Generation not found",
            "model": ErrorResponse,
        },
    },
    summary="Get a generation",
)
def get_generation(
    generation_id: int,
    store: Annotated[GenerationStore, Depends(get_store)],
) -> GenerationResponse:
    record = store.get(generation_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "generation_not_found",
                "message": f"Generation {generation_id} not found",
                "details": {"id": generation_id},
            },
        )
    return GenerationResponse.from_record(record)


@router.get(
    "/settings/system-prompt",
    response_model=SystemPromptSettings,
    summary="Get the system prompt",
)
def get_system_prompt(
    store: Annotated[GenerationStore, Depends(get_store)],
) -> SystemPromptSettings:
    return SystemPromptSettings(system_prompt=store.get_setting(SYSTEM_PROMPT_KEY) or "")


@router.put(
    "/settings/system-prompt",
    response_model=SystemPromptSettings,
    summary="Update the system prompt",
    description="An empty system prompt sends user prompts to the image model verbatim.",
)
def update_system_prompt(
    body: SystemPromptSettings,
    store: Annotated[GenerationStore, Depends(get_store)],
) -> SystemPromptSettings:
    store.set_setting(SYSTEM_PROMPT_KEY, body.system_prompt)
    logger.info(f"System prompt updated ({len(body.system_prompt)} chars)")
    return body


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Check if the backend service is running.",
)
def health_check(settings: Annotated[Settings, Depends(get_settings)]):
    """
    Simple health check endpoint.

    Returns:
        dict: Health status
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Check that the model CLI can be found and the output directory is writable.",
)
def readiness_check(settings: Annotated[Settings, Depends(get_settings)]):
    """
    Readiness check that verifies the external collaborators are available.

    Returns:
        dict: Readiness status with configuration info
    """
    command = shlex.split(settings.OLLAMA_COMMAND)
    command_found = bool(command) and shutil.which(command[0]) is not None
    output_dir_writable = os.path.isdir(settings.OUTPUT_DIR) and os.access(settings.OUTPUT_DIR, os.W_OK)

    ready = command_found and output_dir_writable

    return {
        "status": "ready" if ready else "not_ready",
        "configuration": {
            "model_command_found": command_found,
            "output_dir_writable": output_dir_writable,
            "image_model": settings.IMAGE_MODEL,
            "text_model": settings.TEXT_MODEL,
        },
        "warnings": [
            msg for msg in [
                None if command_found else f"Model command not found on PATH: {settings.OLLAMA_COMMAND}",
                None if output_dir_writable else f"Output directory is not writable: {settings.OUTPUT_DIR}",
            ] if msg
        ],
    }
