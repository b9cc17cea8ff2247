"""Service layer exports.

Expose the pipeline services and the form workflows for easy importing.
"""

from .openai_client import OpenAIService
from .synthesizer import ProfileSynthesizer
from .embedding_store import EmbeddingStore
from .ranker import ConnectionRanker
from .processing import FormProcessingService, MatchingPipeline, build_pipeline
from .forms import FormService

__all__ = [
    "OpenAIService",
    "ProfileSynthesizer",
    "EmbeddingStore",
    "ConnectionRanker",
    "FormProcessingService",
    "MatchingPipeline",
    "build_pipeline",
    "FormService",
]
