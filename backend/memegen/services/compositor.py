"""
Caption compositing.

Draws classic meme captions (white, black outline, uppercase) onto a PNG
and writes the result back to the same path.
"""

import logging
import os
import tempfile
from typing import Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from memegen.config import Settings, get_settings
from memegen.schemas.meme import CaptionPair, CaptionPosition
from memegen.services.fontfit import FontFitter
from memegen.services.fonts import FontLoadError, FontResolver

# Configure logging
logger = logging.getLogger(__name__)

OUTLINE_RADIUS = 3
OUTLINE_OFFSETS = tuple(
    (dx, dy)
    for dx in range(-OUTLINE_RADIUS, OUTLINE_RADIUS + 1)
    for dy in range(-OUTLINE_RADIUS, OUTLINE_RADIUS + 1)
    if dx != 0 or dy != 0
)

OUTLINE_COLOR = "black"
FILL_COLOR = "white"

# Vertical anchor of each caption as a fraction of image height
CAPTION_HEIGHT_RATIOS = {
    CaptionPosition.TOP: 0.1,
    CaptionPosition.BOTTOM: 0.9,
}


class CompositorError(Exception):
    """Base exception for compositing errors."""
    pass


class ImageDecodeError(CompositorError):
    """Raised when the input image cannot be opened or decoded."""
    pass


class ImageEncodeError(CompositorError):
    """Raised when the captioned image cannot be written."""
    pass


def draw_text_with_outline(
    draw: ImageDraw.ImageDraw,
    text: str,
    x: float,
    y: float,
    font: ImageFont.FreeTypeFont,
) -> None:
    """Stamp the outline at every offset around (x, y), then the fill at (x, y)."""
    for dx, dy in OUTLINE_OFFSETS:
        draw.text((x + dx, y + dy), text, font=font, fill=OUTLINE_COLOR, anchor="mm")

    draw.text((x, y), text, font=font, fill=FILL_COLOR, anchor="mm")


class Compositor:
    """Overlays top/bottom captions on generated images."""

    def __init__(
        self,
        resolver: Optional[FontResolver] = None,
        fitter: Optional[FontFitter] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.resolver = resolver or FontResolver(settings=settings)
        self.fitter = fitter or FontFitter(measure=self.resolver.measure, settings=settings)

    def _draw_caption(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        position: CaptionPosition,
        width: int,
        height: int,
    ) -> None:
        text = text.upper()
        font_size = self.fitter.fit_size(text, width, height)
        try:
            font = self.resolver.resolve(font_size)
        except FontLoadError as e:
            raise CompositorError(f"failed to load font for {position.value} text: {e}") from e

        logger.debug(f"Drawing {position.value} caption at {font_size:.1f}pt: {text[:50]}")
        draw_text_with_outline(
            draw,
            text,
            width / 2,
            height * CAPTION_HEIGHT_RATIOS[position],
            font,
        )

    def _save_atomic(self, img: Image.Image, image_path: str) -> None:
        """Encode to a temp file beside the target, then replace the target."""
        directory = os.path.dirname(os.path.abspath(image_path))
        fd, tmp_path = tempfile.mkstemp(prefix=".overlay-", suffix=".png", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                img.save(f, format="PNG")
            os.replace(tmp_path, image_path)
        except (OSError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ImageEncodeError(f"failed to encode image: {e}") from e

    def overlay(self, image_path: str, captions: CaptionPair) -> None:
        """
        Draw the captions onto the image at image_path, in place.

        Empty captions are skipped; if both are empty the file is not touched.

        Raises:
            ImageDecodeError: If the image cannot be decoded
            ImageEncodeError: If the result cannot be written
            CompositorError: If no font can be loaded
        """
        if captions.is_empty:
            return

        try:
            with Image.open(image_path) as src:
                src.load()
                mode = "RGBA" if src.mode in ("RGBA", "LA", "PA") else "RGB"
                img = src.convert(mode)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            raise ImageDecodeError(f"failed to decode image: {e}") from e

        width, height = img.size
        draw = ImageDraw.Draw(img)

        if captions.top:
            self._draw_caption(draw, captions.top, CaptionPosition.TOP, width, height)
        if captions.bottom:
            self._draw_caption(draw, captions.bottom, CaptionPosition.BOTTOM, width, height)

        self._save_atomic(img, image_path)
        logger.info(f"Captions drawn on {os.path.basename(image_path)}")


# Convenience function for dependency injection
def get_compositor() -> Compositor:
    """Get a Compositor instance for dependency injection."""
    return Compositor()
