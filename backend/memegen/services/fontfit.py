"""
Caption font sizing.

Finds the largest font size at which a caption fits across the image, using
a bounded bisection over sizes. Measurement is injected so the search can be
exercised without rasterizing real fonts.
"""

import logging
from typing import Callable, Optional

from memegen.config import Settings, get_settings
from memegen.services.fonts import FontLoadError, FontResolver

logger = logging.getLogger(__name__)

# (text, size) -> rendered width in pixels
Measurer = Callable[[str, float], float]

SEARCH_FLOOR = 12.0
MIN_READABLE_SIZE = 16.0
MAX_ITERATIONS = 10
WIDTH_RATIO = 0.9


class FontFitter:
    """Computes per-caption font sizes."""

    def __init__(
        self,
        measure: Optional[Measurer] = None,
        min_bound: Optional[float] = None,
        max_bound: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.measure = measure or FontResolver(settings=settings).measure
        self.min_bound = settings.MIN_FONT_BOUND if min_bound is None else min_bound
        self.max_bound = settings.MAX_FONT_BOUND if max_bound is None else max_bound

    def upper_bound(self, height: float) -> float:
        return min(max(height / 10, self.min_bound), self.max_bound)

    def fit_size(self, text: str, width: float, height: float) -> float:
        """
        Largest size (within bounds) whose rendered text fits 90% of width.

        Text should already be uppercased. If measuring fails the search stops
        and the last candidate is used; the result is never below 16pt.
        """
        max_size = self.upper_bound(height)
        target_width = width * WIDTH_RATIO

        min_size = SEARCH_FLOOR
        font_size = max_size

        for _ in range(MAX_ITERATIONS):
            try:
                text_width = self.measure(text, font_size)
            except FontLoadError as e:
                logger.warning(f"Font fitting stopped at {font_size:.1f}pt: {e}")
                break

            if text_width <= target_width:
                if font_size >= max_size:
                    break
                min_size = font_size
                font_size = (font_size + max_size) / 2
            else:
                max_size = font_size
                font_size = (min_size + font_size) / 2

            if max_size - min_size < 1:
                break

        return max(font_size, MIN_READABLE_SIZE)
