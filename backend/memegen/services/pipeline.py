"""
Meme generation pipeline.

Runs one generation end to end:
1. Record the request as processing
2. Generate the image with the image model
3. Generate captions with the text model (unless captions were declined)
4. Draw the captions onto the image
5. Record the outcome

Every stage completes before the next one starts. A failed generation is
recorded with its error message and returned like a successful one.
"""

import logging
import os
import sqlite3
from typing import Optional

from memegen.schemas.meme import CaptionPair, GenerationRecord, GenerationStatus
from memegen.services.compositor import Compositor, CompositorError, get_compositor
from memegen.services.ollama import OllamaService, OllamaServiceError, get_ollama_service
from memegen.services.store import SYSTEM_PROMPT_KEY, GenerationStore, get_store

logger = logging.getLogger(__name__)


class MemePipeline:
    """Orchestrates the store, the model CLI and the compositor."""

    def __init__(
        self,
        store: GenerationStore,
        ollama_service: OllamaService,
        compositor: Compositor,
    ):
        self.store = store
        self.ollama_service = ollama_service
        self.compositor = compositor

    def _system_prompt(self) -> Optional[str]:
        try:
            return self.store.get_setting(SYSTEM_PROMPT_KEY)
        except sqlite3.Error as e:
            logger.error(f"Error fetching system prompt: {e}")
            return None

    def generate(self, prompt: str, generate_captions: bool = True) -> GenerationRecord:
        """
        Generate a captioned meme for prompt.

        Args:
            prompt: The user prompt
            generate_captions: False produces an uncaptioned image on purpose

        Returns:
            GenerationRecord: The stored record, status success or failed
        """
        generation_id = self.store.insert(prompt)
        logger.info(f"Generation {generation_id} started (prompt length: {len(prompt)} chars)")

        # Set once the image is in the output directory, so a later failure still points at it
        filename = ""
        try:
            filename = self.ollama_service.run_model(prompt, self._system_prompt())

            if generate_captions:
                captions = self.ollama_service.run_text_model(prompt)
            else:
                captions = CaptionPair()

            image_path = os.path.join(self.ollama_service.output_dir, filename)
            self.compositor.overlay(image_path, captions)

            self.store.update_captions(generation_id, captions)
            self.store.update_status(generation_id, GenerationStatus.SUCCESS, filename)
            logger.info(f"Generation {generation_id} succeeded: {filename}")

        except (OllamaServiceError, CompositorError) as e:
            logger.error(f"Generation {generation_id} failed: {e}")
            self.store.update_status(generation_id, GenerationStatus.FAILED, filename, str(e))

        except Exception as e:
            logger.exception(f"Unexpected error in generation {generation_id}: {e}")
            self.store.update_status(generation_id, GenerationStatus.FAILED, filename, str(e))

        return self.store.get(generation_id)


# Convenience function for dependency injection
def get_pipeline() -> MemePipeline:
    """Get a MemePipeline wired with the default services."""
    return MemePipeline(
        store=get_store(),
        ollama_service=get_ollama_service(),
        compositor=get_compositor(),
    )
