# Services package - model process, compositing and storage
from memegen.services.compositor import Compositor
from memegen.services.fontfit import FontFitter
from memegen.services.fonts import FontResolver
from memegen.services.ollama import OllamaService
from memegen.services.pipeline import MemePipeline
from memegen.services.store import GenerationStore

__all__ = [
    "Compositor",
    "FontFitter",
    "FontResolver",
    "GenerationStore",
    "MemePipeline",
    "OllamaService",
]
