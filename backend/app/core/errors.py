"""Error taxonomy for the response-matching pipeline.

Classes:
    PipelineError: Base class; every subclass reports the pipeline stage it belongs to.
    UpstreamUnavailable: A generative-text, embedding, or vector-index call failed.
    EmbeddingFailed: The embedding service could not produce a vector.
    VectorIndexUnavailable: The vector index rejected or failed a request.
    InconsistentRecord: A stored record cannot be used (missing vector or identity).
    DimensionMismatch: A vector does not have the expected dimensionality.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    stage: str = "pipeline"


class UpstreamUnavailable(PipelineError):
    stage = "upstream"

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service} unavailable: {message}")
        self.service = service
        self.message = message


class EmbeddingFailed(UpstreamUnavailable):
    stage = "embedding"

    def __init__(self, message: str) -> None:
        super().__init__("embedding", message)


class VectorIndexUnavailable(UpstreamUnavailable):
    stage = "vector_index"

    def __init__(self, message: str) -> None:
        super().__init__("vector_index", message)


class InconsistentRecord(PipelineError):
    stage = "ranking"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Inconsistent record {key}: {reason}")
        self.key = key
        self.reason = reason


class DimensionMismatch(PipelineError):
    stage = "embedding"

    def __init__(self, expected: Optional[int], actual: Optional[int]) -> None:
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual
