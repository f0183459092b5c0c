"""
Generated image serving.

Images are looked up by base name inside the output directory only.
"""

import logging
import os
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from memegen.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


def resolve_image_path(output_dir: str, filename: str) -> Optional[str]:
    """Join the base name of filename with the output directory."""
    name = os.path.basename(filename)
    if name in ("", ".", ".."):
        return None
    return os.path.join(output_dir, name)


@router.get(
    "/images/{filename}",
    response_class=FileResponse,
    summary="Serve a generated image",
)
def serve_image(
    filename: str,
    settings: Annotated[Settings, Depends(get_settings)],
):
    image_path = resolve_image_path(settings.OUTPUT_DIR, filename)
    if image_path is None or not os.path.isfile(image_path):
        logger.debug(f"Image not found: {image_path}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "image_not_found",
                "message": f"Image {os.path.basename(filename)} not found",
            },
        )
    return FileResponse(image_path, media_type="image/png")
