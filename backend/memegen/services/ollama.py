"""
Ollama CLI Service.

This module drives the external model CLI. It is responsible for:
1. Running the image model with the composed prompt
2. Locating the image the model wrote and moving it into the output directory
3. Running the text model and turning its JSON reply into captions

The CLI is run as a blocking subprocess; stdout is parsed, stderr is only
kept for error messages.
"""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from memegen.config import Settings, get_settings
from memegen.schemas.meme import CaptionPair, ProcessResult
from memegen.services.parsing import (
    OutputParseError,
    extract_artifact_name,
    extract_caption_pair,
)

# Configure logging
logger = logging.getLogger(__name__)

TEXT_PROMPT_TEMPLATE = (
    "Generate meme text for: {prompt}\n\n"
    "Respond ONLY with valid JSON in this exact format: "
    '{{"topText":"text here","bottomText":"text here"}}. '
    "Keep text SHORT and FUNNY."
)


class OllamaServiceError(Exception):
    """Base exception for model process errors."""
    pass


class ExternalProcessError(OllamaServiceError):
    """Raised when the model process cannot start, times out or exits non-zero."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class EmptyOutputError(OllamaServiceError):
    """Raised when the model process prints nothing."""
    pass


class UnparsableOutputError(OllamaServiceError):
    """Raised when the expected payload cannot be found in the output."""
    pass


class ArtifactMissingError(OllamaServiceError):
    """Raised when the announced image does not exist in the working directory."""
    pass


class RelocationError(OllamaServiceError):
    """Raised when the image cannot be moved into the output directory."""
    pass


def compose_prompt(prompt: str, system_prompt: Optional[str] = None) -> str:
    """Prefix the prompt with the system preamble, separated by a blank line."""
    if system_prompt:
        return f"{system_prompt}\n\n{prompt}"
    return prompt


class OllamaService:
    """
    Service for running models through the Ollama CLI.

    Every invocation is independent. The only shared resource is the output
    directory, which receives distinctly named files.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the Ollama service.

        Args:
            settings: Optional settings instance. If not provided, uses default settings.
        """
        self.settings = settings or get_settings()
        self.output_dir = self.settings.OUTPUT_DIR

    def _build_command(self, model: str, prompt: str) -> list[str]:
        return shlex.split(self.settings.OLLAMA_COMMAND) + ["run", model, prompt]

    @contextmanager
    def _working_directory(self) -> Iterator[str]:
        """
        Yield the directory the model process runs in.

        The CLI writes images into its current directory, so each invocation
        gets a fresh temporary directory unless isolation is turned off.
        """
        if not self.settings.ISOLATE_WORKDIR:
            yield os.getcwd()
            return

        if self.settings.WORK_DIR:
            os.makedirs(self.settings.WORK_DIR, exist_ok=True)
        workdir = tempfile.mkdtemp(prefix="memegen-", dir=self.settings.WORK_DIR)
        try:
            yield workdir
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    def _run(self, model: str, prompt: str, cwd: str) -> ProcessResult:
        """
        Run the CLI to completion and capture both streams.

        Raises:
            ExternalProcessError: If the process cannot start, times out or fails
        """
        command = self._build_command(model, prompt)
        timeout = self.settings.model_timeout_seconds

        logger.info(f"Running model {model} (prompt length: {len(prompt)} chars)")
        logger.debug(f"Command: {command[:-1]} <prompt>, cwd={cwd}")

        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
            logger.error(f"Model {model} timed out after {timeout} seconds")
            raise ExternalProcessError(
                f"ollama command timed out after {timeout} seconds, stderr: {stderr}",
                stderr=stderr,
            ) from e
        except OSError as e:
            logger.error(f"Failed to start model process: {e}")
            raise ExternalProcessError(f"ollama command failed to start: {e}") from e

        result = ProcessResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            succeeded=completed.returncode == 0,
        )

        if not result.succeeded:
            logger.error(
                f"Model {model} exited with status {completed.returncode}: "
                f"{result.stderr[:500]}"
            )
            raise ExternalProcessError(
                f"ollama command failed: exit status {completed.returncode}, "
                f"stderr: {result.stderr}",
                stderr=result.stderr,
            )

        logger.debug(f"Model {model} stdout: {result.stdout[:500]}")
        return result

    def _relocate(self, workdir: str, filename: str) -> None:
        """
        Move the generated image from the working directory into the output directory.

        Raises:
            ArtifactMissingError: If the image is not in the working directory
            RelocationError: If the move fails
        """
        source_path = os.path.join(workdir, filename)
        if not os.path.isfile(source_path):
            raise ArtifactMissingError(f"generated image not found at: {source_path}")

        dest_path = os.path.join(self.output_dir, filename)
        if os.path.exists(dest_path):
            logger.warning(f"Overwriting existing image in output directory: {dest_path}")

        try:
            os.makedirs(self.output_dir, exist_ok=True)
            # shutil.move falls back to copy+delete across filesystems
            shutil.move(source_path, dest_path)
        except OSError as e:
            logger.error(f"Failed to move image to {dest_path}: {e}")
            raise RelocationError(f"failed to move image to {dest_path}: {e}") from e

    def run_model(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate an image and move it into the output directory.

        Args:
            prompt: The user prompt
            system_prompt: Optional preamble placed before the prompt

        Returns:
            The bare filename of the image inside the output directory

        Raises:
            ExternalProcessError: If the process fails
            EmptyOutputError: If the process printed nothing
            UnparsableOutputError: If no "Image saved to:" line was printed
            ArtifactMissingError: If the announced file does not exist
            RelocationError: If the file cannot be moved
        """
        full_prompt = compose_prompt(prompt, system_prompt)

        with self._working_directory() as workdir:
            result = self._run(self.settings.IMAGE_MODEL, full_prompt, workdir)

            output = result.stdout.strip()
            if not output:
                raise EmptyOutputError("ollama produced no output")

            try:
                announced = extract_artifact_name(output)
            except OutputParseError as e:
                logger.error(f"Failed to extract filename from output: {output[:500]}")
                raise UnparsableOutputError(
                    f"failed to extract filename from output: {e}"
                ) from e

            # Only the base name is trusted; it is joined with our own directories
            filename = os.path.basename(announced)
            self._relocate(workdir, filename)

        logger.info(f"Generated image {filename}")
        return filename

    def run_text_model(self, prompt: str) -> CaptionPair:
        """
        Ask the text model for a top/bottom caption pair.

        Args:
            prompt: The user prompt the captions should fit

        Returns:
            CaptionPair: Captions, either of which may be empty

        Raises:
            ExternalProcessError: If the process fails
            EmptyOutputError: If the process printed nothing
            UnparsableOutputError: If no valid JSON object was printed
        """
        full_prompt = TEXT_PROMPT_TEMPLATE.format(prompt=prompt)

        with self._working_directory() as workdir:
            result = self._run(self.settings.TEXT_MODEL, full_prompt, workdir)

        output = result.stdout.strip()
        if not output:
            raise EmptyOutputError("ollama produced no text output")

        try:
            captions = extract_caption_pair(output)
        except OutputParseError as e:
            logger.error(f"Failed to parse caption JSON: {e}")
            raise UnparsableOutputError(
                f"failed to parse text JSON: {e} (output: {output[:500]})"
            ) from e

        logger.info(
            f"Generated captions: top='{captions.top[:50]}', "
            f"bottom='{captions.bottom[:50]}'"
        )
        return captions


# Convenience function for dependency injection
def get_ollama_service() -> OllamaService:
    """Get an OllamaService instance for dependency injection."""
    return OllamaService()
