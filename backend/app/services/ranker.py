"""All-pairs connection ranking for one form.

Classes:
    RankedConnection: A scored pairing of two respondents, with names denormalised for display.
    ConnectionRanker: Scans a form's stored embeddings and ranks every unique pair by cosine similarity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from app.core.errors import DimensionMismatch, InconsistentRecord
from app.services.embedding_store import EmbeddingStore, StoredEmbedding
from app.services.similarity import as_vector, cosine_similarity

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RankedConnection:
    response1_id: str
    response2_id: str
    response1_name: Optional[str]
    response2_name: Optional[str]
    similarity_score: float


class ConnectionRanker:
    """Rank respondent pairs by profile similarity.

    Comparisons are O(n^2 * d). That is fine for tens to low hundreds of
    respondents per form; beyond that a blocked matrix product or an ANN index
    would replace the pairwise loop.
    """

    def __init__(self, store: EmbeddingStore) -> None:
        self._store = store

    async def rank(self, form_id: UUID | str) -> list[RankedConnection]:
        records = await self._store.retrieve_all(form_id)
        usable = self._usable_records(records, form_id)
        if len(usable) < 2:
            return []

        vectors = [as_vector(record.vector or []) for record in usable]
        connections: list[RankedConnection] = []
        skipped_pairs = 0
        for i in range(len(usable)):
            for j in range(i + 1, len(usable)):
                try:
                    score = cosine_similarity(vectors[i], vectors[j], expected_dim=self._store.dim)
                except DimensionMismatch as exc:
                    skipped_pairs += 1
                    _LOGGER.warning(
                        "Skipping pair %s/%s: %s",
                        usable[i].response_id,
                        usable[j].response_id,
                        exc,
                        extra={"form_id": str(form_id), "stage": "ranking"},
                    )
                    continue
                connections.append(
                    RankedConnection(
                        response1_id=usable[i].response_id or "",
                        response2_id=usable[j].response_id or "",
                        response1_name=usable[i].respondent_name,
                        response2_name=usable[j].respondent_name,
                        similarity_score=score,
                    )
                )

        # list.sort is stable, so ties keep discovery order.
        connections.sort(key=lambda connection: connection.similarity_score, reverse=True)
        _LOGGER.info(
            "Ranked %d connections across %d respondents (%d pairs skipped)",
            len(connections),
            len(usable),
            skipped_pairs,
            extra={"form_id": str(form_id), "stage": "ranking"},
        )
        return connections

    def _usable_records(self, records: list[StoredEmbedding], form_id: UUID | str) -> list[StoredEmbedding]:
        usable: list[StoredEmbedding] = []
        seen: set[str] = set()
        for record in records:
            try:
                record.require_vector()
            except InconsistentRecord as exc:
                _LOGGER.warning("%s", exc, extra={"form_id": str(form_id), "stage": "ranking"})
                continue
            if record.response_id in seen:
                _LOGGER.warning(
                    "Duplicate record for response %s ignored",
                    record.response_id,
                    extra={"form_id": str(form_id), "stage": "ranking"},
                )
                continue
            seen.add(record.response_id or "")
            usable.append(record)
        return usable
