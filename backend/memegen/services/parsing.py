"""
Model output parsing.

The model CLI prints free-form text. These helpers pull the two things the
pipeline needs out of it: the filename of a generated image and the caption
JSON produced by the text model.
"""

import json
import logging
import re

from memegen.schemas.meme import CaptionPair

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".png"

ARTIFACT_PATTERN = re.compile(r"Image saved to:\s+(.+\.png)")

# Key names seen in text model output, probed in order
TOP_TEXT_KEYS = ("topText", "top_text", "TopText", "top")
BOTTOM_TEXT_KEYS = ("bottomText", "bottom_text", "BottomText", "bottom")


class OutputParseError(ValueError):
    """Raised when model output does not contain the expected payload."""
    pass


def extract_artifact_name(output: str) -> str:
    """
    Find the image path announced by the image model.

    Only the "Image saved to: <path>.png" marker is accepted. There is no
    fallback heuristic, a wrong guess would move or serve the wrong file.

    Raises:
        OutputParseError: If the marker or a .png path is missing
    """
    match = ARTIFACT_PATTERN.search(output or "")
    if not match:
        raise OutputParseError("could not find 'Image saved to:' pattern in output")

    filename = match.group(1).strip()
    logger.debug(f"Extracted artifact name: {filename}")
    return filename


def _get_string_field(data: dict, keys: tuple[str, ...]) -> str:
    """Return the first value under keys that is a string, else an empty string."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value
    return ""


def extract_caption_pair(output: str) -> CaptionPair:
    """
    Extract top and bottom captions from text model output.

    The model may wrap the JSON object in commentary, so everything between
    the first "{" and the last "}" is parsed. Missing caption keys resolve to
    empty text; a missing or malformed object is an error.

    Raises:
        OutputParseError: If no JSON object can be parsed
    """
    text = output or ""
    json_start = text.find("{")
    json_end = text.rfind("}")

    if json_start == -1 or json_end == -1 or json_end <= json_start:
        raise OutputParseError("no JSON object found in output")

    try:
        data = json.loads(text[json_start:json_end + 1])
    except json.JSONDecodeError as e:
        raise OutputParseError(f"invalid JSON: {e}") from e

    return CaptionPair(
        top=_get_string_field(data, TOP_TEXT_KEYS),
        bottom=_get_string_field(data, BOTTOM_TEXT_KEYS),
    )
