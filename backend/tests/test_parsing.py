import pytest

from memegen.schemas.meme import CaptionPair
from memegen.services.parsing import (
    OutputParseError,
    extract_artifact_name,
    extract_caption_pair,
)


# Artifact name extraction

@pytest.mark.parametrize(
    "output",
    [
        "Image saved to: foo.png",
        "pulling manifest\nImage saved to: foo.png\n",
        "progress 100%\r\nImage saved to:   foo.png   \r\ndone",
        "loading... Image saved to: foo.png",
    ],
)
def test_extract_artifact_name_with_noise(output):
    assert extract_artifact_name(output) == "foo.png"


def test_extract_artifact_name_takes_first_marker():
    output = "Image saved to: first.png\nImage saved to: second.png"
    assert extract_artifact_name(output) == "first.png"


def test_extract_artifact_name_keeps_path_segments():
    # Stripping to a base name is the runner's job
    assert extract_artifact_name("Image saved to: /tmp/x/out.png") == "/tmp/x/out.png"


@pytest.mark.parametrize(
    "output",
    [
        "",
        "foo.png",
        "Image written to: foo.png",
        "Image saved to: foo.jpg",
        "Image saved to:",
        "Image saved to:foo.png",
    ],
)
def test_extract_artifact_name_fails_without_marker(output):
    with pytest.raises(OutputParseError):
        extract_artifact_name(output)


# Caption extraction

def test_extract_caption_pair_embedded_in_noise():
    output = 'Sure! Here you go:\n{"topText":"A","bottomText":"B"}\nHope that helps.'
    assert extract_caption_pair(output) == CaptionPair(top="A", bottom="B")


def test_extract_caption_pair_missing_bottom_is_empty():
    assert extract_caption_pair('{"top_text":"A"}') == CaptionPair(top="A", bottom="")


@pytest.mark.parametrize(
    "payload, expected",
    [
        ('{"TopText": "x", "BottomText": "y"}', CaptionPair(top="x", bottom="y")),
        ('{"top": "x", "bottom": "y"}', CaptionPair(top="x", bottom="y")),
        ('{"top_text": "x", "bottom_text": "y"}', CaptionPair(top="x", bottom="y")),
        ("{}", CaptionPair()),
        ('{"caption": "only this"}', CaptionPair()),
    ],
)
def test_extract_caption_pair_aliases(payload, expected):
    assert extract_caption_pair(payload) == expected


def test_extract_caption_pair_alias_priority():
    output = '{"top": "last", "topText": "first", "top_text": "second"}'
    assert extract_caption_pair(output).top == "first"


def test_extract_caption_pair_skips_non_string_values():
    output = '{"topText": 42, "top_text": "fallback", "bottomText": null, "bottom": ["x"]}'
    assert extract_caption_pair(output) == CaptionPair(top="fallback", bottom="")


@pytest.mark.parametrize(
    "output",
    [
        "",
        "no json here",
        "} backwards {",
        '{"topText": "A",}',
        '{"topText": "A" "bottomText": "B"}',
        "{not json}",
    ],
)
def test_extract_caption_pair_fails_on_bad_json(output):
    with pytest.raises(OutputParseError):
        extract_caption_pair(output)


def test_extract_caption_pair_rejects_multiple_objects():
    # First "{" .. last "}" spans two objects, which is not valid JSON
    with pytest.raises(OutputParseError):
        extract_caption_pair('[{"topText": "A"}, {"topText": "B"}]')
