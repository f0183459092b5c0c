import shlex
import sys
import textwrap

import pytest
from PIL import Image

from memegen.config import Settings


@pytest.fixture
def settings(tmp_path):
    """Settings with every path pointed into the test's temp directory."""
    return Settings(
        OUTPUT_DIR=str(tmp_path / "generated"),
        DB_PATH=str(tmp_path / "memes.db"),
        WORK_DIR=str(tmp_path / "work"),
        FONT_PATH=str(tmp_path / "fonts" / "missing.ttf"),
        MODEL_TIMEOUT=30,
    )


@pytest.fixture
def make_model(tmp_path, settings):
    """
    Write a stand-in for the model CLI and return settings that run it.

    The script is called as: <script> run <model> <prompt>
    """
    def _make(body: str, **overrides) -> Settings:
        script = tmp_path / "stub_model.py"
        script.write_text(textwrap.dedent(body))
        command = f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"
        return settings.model_copy(update={"OLLAMA_COMMAND": command, **overrides})

    return _make


@pytest.fixture
def png_path(tmp_path):
    """A plain gray 800x600 PNG."""
    path = tmp_path / "meme.png"
    Image.new("RGB", (800, 600), (128, 128, 128)).save(path, format="PNG")
    return path
