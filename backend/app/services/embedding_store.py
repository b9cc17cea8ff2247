"""Summary embeddings persisted in a Qdrant collection.

Classes:
    RespondentIdentity: Name/email mirrored into the vector payload.
    StoredEmbedding: One record read back from the index for a form.
    EmbeddingStore: Embeds summaries, upserts them atomically, scans them back per form, and deletes them with the form.

Functions:
    embedding_key(form_id, response_id): Logical key persisted on the Response row.
    point_id_for_key(key): Deterministic Qdrant point id (UUID) derived from the logical key.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID, uuid5

from qdrant_client import AsyncQdrantClient, models

from app.core.config import Settings, get_settings
from app.core.errors import (
    DimensionMismatch,
    EmbeddingFailed,
    InconsistentRecord,
    UpstreamUnavailable,
    VectorIndexUnavailable,
)
from app.services.openai_client import OpenAIService

_LOGGER = logging.getLogger(__name__)

KEY_SEPARATOR = "_"
FORM_ID_FIELD = "form_id"
_POINT_NAMESPACE = UUID("6f1c3f0e-5d8b-4e62-9a0e-5b8f3e7c2d41")


def embedding_key(form_id: UUID | str, response_id: UUID | str) -> str:
    return f"{form_id}{KEY_SEPARATOR}{response_id}"


def point_id_for_key(key: str) -> str:
    # Qdrant only accepts unsigned integers or UUIDs as point ids.
    return str(uuid5(_POINT_NAMESPACE, key))


@dataclass(slots=True)
class RespondentIdentity:
    name: str
    email: Optional[str] = None


@dataclass(slots=True)
class StoredEmbedding:
    point_id: str
    response_id: Optional[str]
    vector: Optional[list[float]]
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def respondent_name(self) -> Optional[str]:
        return self.payload.get("respondent_name")

    def require_vector(self) -> list[float]:
        if not self.response_id:
            raise InconsistentRecord(self.point_id, "payload has no response_id")
        if not self.vector:
            raise InconsistentRecord(self.point_id, "record has no retrievable vector")
        return self.vector


class EmbeddingStore:
    def __init__(
        self,
        openai_service: OpenAIService,
        client: AsyncQdrantClient,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._openai = openai_service
        self._client = client
        self._settings = settings or get_settings()
        self._collection_ready = False
        self._ready_lock = asyncio.Lock()

    @property
    def collection_name(self) -> str:
        return self._settings.qdrant_collection

    @property
    def dim(self) -> int:
        return self._settings.embedding_dim

    async def ensure_collection(self) -> bool:
        """Create the collection when missing; return True only if this call created it."""

        try:
            if await self._client.collection_exists(self.collection_name):
                await self._check_collection_dim()
                self._collection_ready = True
                return False
            try:
                await self._client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(size=self.dim, distance=models.Distance.COSINE),
                )
            except Exception:
                # Lost a creation race: fine as long as the collection now exists.
                if not await self._client.collection_exists(self.collection_name):
                    raise
                await self._check_collection_dim()
                self._collection_ready = True
                return False
            await self._client.create_payload_index(
                collection_name=self.collection_name,
                field_name=FORM_ID_FIELD,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        except DimensionMismatch:
            raise
        except Exception as exc:
            raise VectorIndexUnavailable(str(exc) or exc.__class__.__name__) from exc

        _LOGGER.info("Created vector collection %s (dim=%d, cosine)", self.collection_name, self.dim)
        self._collection_ready = True
        return True

    async def _ensure_ready(self) -> None:
        # Verified once per store instance; reset when a write fails.
        if self._collection_ready:
            return
        async with self._ready_lock:
            if not self._collection_ready:
                await self.ensure_collection()

    async def _check_collection_dim(self) -> None:
        info = await self._client.get_collection(self.collection_name)
        vectors = info.config.params.vectors
        size = vectors.size if isinstance(vectors, models.VectorParams) else None
        if size != self.dim:
            raise DimensionMismatch(self.dim, size)

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        try:
            batch = await self._openai.embed_texts(
                [text],
                model=self._settings.openai_embedding_model,
                dimensions=self.dim,
            )
        except UpstreamUnavailable as exc:
            raise EmbeddingFailed(exc.message) from exc
        if not batch.vectors:
            raise EmbeddingFailed("embedding service returned no vector")
        vector = [float(value) for value in batch.vectors[0]]
        if len(vector) != self.dim:
            raise DimensionMismatch(self.dim, len(vector))
        return vector

    async def store(
        self,
        form_id: UUID | str,
        response_id: UUID | str,
        identity: RespondentIdentity,
        summary: str,
    ) -> str:
        """Embed ``summary`` and upsert it with its payload; return the embedding key.

        The vector is computed before anything is written, and vector plus payload
        travel in a single upsert, so a failure leaves no partial record behind.
        """

        vector = await self.embed(summary)
        await self._ensure_ready()

        key = embedding_key(form_id, response_id)
        point = models.PointStruct(
            id=point_id_for_key(key),
            vector=vector,
            payload={
                FORM_ID_FIELD: str(form_id),
                "response_id": str(response_id),
                "respondent_name": identity.name,
                "respondent_email": identity.email,
                "summary": summary,
                "embedding_key": key,
            },
        )
        try:
            await self._client.upsert(collection_name=self.collection_name, points=[point], wait=True)
        except Exception as exc:
            self._collection_ready = False
            raise VectorIndexUnavailable(str(exc) or exc.__class__.__name__) from exc

        _LOGGER.info("Stored embedding %s", key, extra={"form_id": str(form_id), "response_id": str(response_id)})
        return key

    async def retrieve_all(self, form_id: UUID | str) -> list[StoredEmbedding]:
        """Return every record stored for ``form_id``, following scroll pages until exhausted."""

        try:
            if not await self._client.collection_exists(self.collection_name):
                return []
            records: list[StoredEmbedding] = []
            scroll_filter = _form_filter(form_id)
            offset = None
            while True:
                points, offset = await self._client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=scroll_filter,
                    limit=self._settings.qdrant_scroll_page_size,
                    offset=offset,
                    with_payload=True,
                    with_vectors=True,
                )
                records.extend(_to_stored(point) for point in points)
                if offset is None:
                    break
        except Exception as exc:
            raise VectorIndexUnavailable(str(exc) or exc.__class__.__name__) from exc
        return records

    async def delete_form(self, form_id: UUID | str) -> None:
        """Remove every record stored for ``form_id``. A missing collection is a no-op."""

        try:
            if not await self._client.collection_exists(self.collection_name):
                return
            await self._client.delete(
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(filter=_form_filter(form_id)),
                wait=True,
            )
        except Exception as exc:
            raise VectorIndexUnavailable(str(exc) or exc.__class__.__name__) from exc
        _LOGGER.info("Deleted vector records for form", extra={"form_id": str(form_id)})

    async def close(self) -> None:
        await self._client.close()


def _form_filter(form_id: UUID | str) -> models.Filter:
    return models.Filter(
        must=[models.FieldCondition(key=FORM_ID_FIELD, match=models.MatchValue(value=str(form_id)))]
    )


def _to_stored(point: models.Record) -> StoredEmbedding:
    payload = dict(point.payload or {})
    vector = point.vector
    if isinstance(vector, dict):
        vector = vector.get("")
    response_id = payload.get("response_id")
    return StoredEmbedding(
        point_id=str(point.id),
        response_id=str(response_id) if response_id else None,
        vector=[float(value) for value in vector] if vector else None,
        payload=payload,
    )
