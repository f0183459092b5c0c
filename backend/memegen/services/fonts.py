"""
Font loading for caption rendering.

Prefers the configured on-disk face (Impact by default) and falls back to
the face embedded in Pillow, so captions can always be drawn.
"""

import logging
from typing import Optional

from PIL import ImageFont

from memegen.config import Settings, get_settings

logger = logging.getLogger(__name__)


class FontLoadError(Exception):
    """Raised when not even the embedded fallback face can be loaded."""
    pass


class FontResolver:
    """
    Loads font faces at a requested size.

    Nothing is cached, so repeated calls at one size give faces with identical
    metrics and the resolver can be shared between threads.
    """

    def __init__(self, font_path: Optional[str] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.font_path = font_path if font_path is not None else settings.FONT_PATH

    def resolve(self, size: float) -> ImageFont.FreeTypeFont:
        """
        Load a face at the given point size.

        Raises:
            FontLoadError: If the embedded fallback cannot be loaded
        """
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except (OSError, ValueError) as e:
                logger.debug(f"Could not load {self.font_path} at {size}pt: {e}")

        try:
            return ImageFont.load_default(size=size)
        except (OSError, ValueError) as e:
            raise FontLoadError(f"failed to load fallback font at {size}pt: {e}") from e

    def measure(self, text: str, size: float) -> float:
        """Rendered advance width of text at the given size, in pixels."""
        return self.resolve(size).getlength(text)


# Convenience function for dependency injection
def get_font_resolver() -> FontResolver:
    """Get a FontResolver instance for dependency injection."""
    return FontResolver()
