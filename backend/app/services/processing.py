"""Per-form orchestration of the response-matching pipeline.

Classes:
    MatchingPipeline: The three pipeline services, constructed once and injected where needed.
    ProcessingStageTimer: Captures stage-level timings for a processing pass.
    FormProcessingService: Stops intake, synthesizes and embeds responses, and persists ranked connections.

Functions:
    build_pipeline(settings, qdrant_client, openai_service): Wire the pipeline from configuration.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Iterable, Optional, Sequence, TypeVar
from uuid import UUID

from qdrant_client import AsyncQdrantClient
from sqlalchemy import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import PipelineError
from app.models import Answer, Connection, Form, Question, Response
from app.schemas import (
    ConnectedRespondent,
    ConnectionListResponse,
    ConnectionResource,
    ProcessingReport,
    ProcessingStage,
    RespondentOutcome,
    RespondentStatus,
)
from app.services.embedding_store import EmbeddingStore, RespondentIdentity
from app.services.openai_client import OpenAIService
from app.services.ranker import ConnectionRanker
from app.services.synthesizer import ProfileInput, ProfileSynthesizer, SummaryResult

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class MatchingPipeline:
    synthesizer: ProfileSynthesizer
    store: EmbeddingStore
    ranker: ConnectionRanker
    settings: Settings


def build_pipeline(
    settings: Settings | None = None,
    *,
    qdrant_client: AsyncQdrantClient | None = None,
    openai_service: OpenAIService | None = None,
) -> MatchingPipeline:
    settings = settings or get_settings()
    openai_service = openai_service or OpenAIService(settings)
    if qdrant_client is None:
        if settings.qdrant_url:
            qdrant_client = AsyncQdrantClient(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key.get_secret_value() if settings.qdrant_api_key else None,
                timeout=int(settings.upstream_timeout_seconds),
            )
        else:
            qdrant_client = AsyncQdrantClient(location=":memory:")
    store = EmbeddingStore(openai_service, qdrant_client, settings=settings)
    return MatchingPipeline(
        synthesizer=ProfileSynthesizer(openai_service, settings=settings),
        store=store,
        ranker=ConnectionRanker(store),
        settings=settings,
    )


class ProcessingStageTimer:
    """Utility to capture stage-level timings for a processing pass."""

    def __init__(self) -> None:
        self._origin = time.perf_counter()
        self._stages: list[dict[str, float | str]] = []

    @contextmanager
    def track(self, name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self._stages.append({"name": name, "duration_ms": round((time.perf_counter() - start) * 1000.0, 3)})

    def snapshot(self) -> dict[str, object]:
        return {
            "total_duration_ms": round((time.perf_counter() - self._origin) * 1000.0, 3),
            "stages": list(self._stages),
        }


class FormProcessingService:
    def __init__(self, session: AsyncSession, pipeline: MatchingPipeline) -> None:
        self._session = session
        self._pipeline = pipeline
        self._concurrency = pipeline.settings.processing_concurrency

    async def _require_form(self, form_id: UUID) -> Form:
        form = await self._session.get(Form, form_id)
        if form is None:
            raise ValueError(f"Form {form_id} not found")
        return form

    async def stop_accepting(self, form_id: UUID) -> Form:
        form = await self._require_form(form_id)
        if form.is_accepting_responses:
            form.is_accepting_responses = False
            self._session.add(form)
            await self._session.commit()
            await self._session.refresh(form)
            _LOGGER.info("Form stopped accepting responses", extra={"form_id": str(form_id)})
        return form

    async def process_responses(self, form_id: UUID) -> ProcessingReport:
        form = await self._require_form(form_id)
        timer = ProcessingStageTimer()

        questions_result = await self._session.exec(
            select(Question).where(Question.form_id == form_id).order_by(Question.position)
        )
        questions = [(str(question.id), question.text) for question in questions_result.scalars().all()]
        responses_result = await self._session.exec(
            select(Response).where(Response.form_id == form_id).order_by(Response.created_at, Response.id)
        )
        responses = list(responses_result.scalars().all())

        report = ProcessingReport(form_id=form_id, total=len(responses))
        outcomes: dict[UUID, RespondentOutcome] = {}

        to_summarize = [response for response in responses if response.summary is None]
        if to_summarize:
            answers = await self._load_answers([response.id for response in to_summarize])
            with timer.track("summarize"):
                results = await self._bounded(
                    [
                        self._summarize_one(form, questions, answers.get(response.id, {}), response)
                        for response in to_summarize
                    ]
                )
            for response, result in zip(to_summarize, results):
                if result.ok:
                    response.summary = result.summary
                    response.processing_stage = None
                    response.processing_error = None
                    report.summarized += 1
                else:
                    self._mark_failed(response, ProcessingStage.SUMMARY, result.error or "summary unavailable")
                    outcomes[response.id] = self._failed_outcome(response, ProcessingStage.SUMMARY, result.error)
                self._session.add(response)
            await self._session.commit()

        to_embed = self.unembedded_responses(responses)
        if to_embed:
            with timer.track("embed"):
                keys = await self._bounded([self._embed_one(form_id, response) for response in to_embed])
            for response, outcome in zip(to_embed, keys):
                if isinstance(outcome, PipelineError):
                    self._mark_failed(response, ProcessingStage.EMBEDDING, str(outcome))
                    outcomes[response.id] = self._failed_outcome(response, ProcessingStage.EMBEDDING, str(outcome))
                else:
                    response.embedding_id = outcome
                    response.processing_stage = None
                    response.processing_error = None
                    report.embedded += 1
                    outcomes[response.id] = RespondentOutcome(
                        response_id=response.id,
                        respondent_name=response.respondent_name,
                        status=RespondentStatus.PROCESSED,
                        embedding_id=outcome,
                    )
                self._session.add(response)
            await self._session.commit()

        for response in responses:
            if response.id not in outcomes:
                outcomes[response.id] = RespondentOutcome(
                    response_id=response.id,
                    respondent_name=response.respondent_name,
                    status=RespondentStatus.SKIPPED,
                    embedding_id=response.embedding_id,
                )
        report.outcomes = [outcomes[response.id] for response in responses]
        report.failed = sum(1 for outcome in report.outcomes if outcome.status == RespondentStatus.FAILED)
        report.skipped = sum(1 for outcome in report.outcomes if outcome.status == RespondentStatus.SKIPPED)

        _LOGGER.info(
            "Processed responses: %d summarized, %d embedded, %d failed, %d skipped (%s)",
            report.summarized,
            report.embedded,
            report.failed,
            report.skipped,
            timer.snapshot(),
            extra={"form_id": str(form_id)},
        )
        return report

    async def generate_connections(self, form_id: UUID) -> ConnectionListResponse:
        form = await self._require_form(form_id)
        ranked = await self._pipeline.ranker.rank(form_id)

        result = await self._session.exec(select(Response).where(Response.form_id == form_id))
        known = {str(response.id): response for response in result.scalars().all()}
        unembedded = self.unembedded_responses(known.values())
        if unembedded:
            _LOGGER.warning(
                "%d summarized responses have no embedding and are excluded from ranking: %s",
                len(unembedded),
                ", ".join(str(response.id) for response in unembedded),
                extra={"form_id": str(form_id), "stage": ProcessingStage.RANKING.value},
            )

        generation = await self._latest_generation(form_id) + 1
        stored = 0
        for connection in ranked:
            left = known.get(connection.response1_id)
            right = known.get(connection.response2_id)
            if left is None or right is None:
                _LOGGER.warning(
                    "Ranked pair %s/%s references a response outside this form",
                    connection.response1_id,
                    connection.response2_id,
                    extra={"form_id": str(form_id), "stage": ProcessingStage.RANKING.value},
                )
                continue
            self._session.add(
                Connection(
                    form_id=form_id,
                    response1_id=left.id,
                    response2_id=right.id,
                    similarity_score=connection.similarity_score,
                    generation=generation,
                )
            )
            stored += 1

        form.connections_generated = True
        self._session.add(form)
        await self._session.commit()
        _LOGGER.info(
            "Stored %d connections as generation %d",
            stored,
            generation,
            extra={"form_id": str(form_id), "stage": ProcessingStage.RANKING.value},
        )
        return await self.list_connections(form_id, generation=generation)

    async def list_connections(self, form_id: UUID, generation: Optional[int] = None) -> ConnectionListResponse:
        await self._require_form(form_id)
        if generation is None:
            generation = await self._latest_generation(form_id) or None
        if generation is None:
            return ConnectionListResponse(form_id=form_id)

        result = await self._session.exec(
            select(Connection)
            .where(Connection.form_id == form_id, Connection.generation == generation)
            .order_by(Connection.similarity_score.desc(), Connection.created_at, Connection.id)
        )
        connections = list(result.scalars().all())
        responses_result = await self._session.exec(select(Response).where(Response.form_id == form_id))
        responses = {response.id: response for response in responses_result.scalars().all()}

        return ConnectionListResponse(
            form_id=form_id,
            generation=generation,
            connections=[
                ConnectionResource(
                    id=connection.id,
                    form_id=connection.form_id,
                    generation=connection.generation,
                    similarity_score=connection.similarity_score,
                    response1=_respondent(connection.response1_id, responses.get(connection.response1_id)),
                    response2=_respondent(connection.response2_id, responses.get(connection.response2_id)),
                )
                for connection in connections
            ],
        )

    async def process_form(self, form_id: UUID, *, generate: bool = True) -> tuple[ProcessingReport, Optional[ConnectionListResponse]]:
        await self.stop_accepting(form_id)
        report = await self.process_responses(form_id)
        connections = await self.generate_connections(form_id) if generate else None
        return report, connections

    async def _summarize_one(
        self,
        form: Form,
        questions: Sequence[tuple[str, str]],
        answers: dict[str, str],
        response: Response,
    ) -> SummaryResult:
        profile = ProfileInput(
            form_title=form.title,
            form_description=form.description,
            questions=questions,
            answers=answers,
            respondent_name=response.respondent_name,
        )
        try:
            return await self._pipeline.synthesizer.synthesize(profile)
        except Exception as exc:
            # Recorded as a failed outcome so sibling summaries still reach the stage commit.
            _LOGGER.exception(
                "Unexpected summary failure",
                extra={"form_id": str(form.id), "response_id": str(response.id), "stage": ProcessingStage.SUMMARY.value},
            )
            return SummaryResult.failed(str(exc) or exc.__class__.__name__)

    async def _embed_one(self, form_id: UUID, response: Response) -> str | PipelineError:
        try:
            return await self._pipeline.store.store(
                form_id,
                response.id,
                RespondentIdentity(name=response.respondent_name, email=response.respondent_email),
                response.summary or "",
            )
        except (PipelineError, ValueError) as exc:
            _LOGGER.warning(
                "Embedding failed: %s",
                exc,
                extra={"form_id": str(form_id), "response_id": str(response.id), "stage": ProcessingStage.EMBEDDING.value},
            )
            return exc if isinstance(exc, PipelineError) else PipelineError(str(exc))
        except Exception as exc:
            _LOGGER.exception(
                "Unexpected embedding failure",
                extra={"form_id": str(form_id), "response_id": str(response.id), "stage": ProcessingStage.EMBEDDING.value},
            )
            return PipelineError(str(exc) or exc.__class__.__name__)

    async def _bounded(self, calls: Sequence[Awaitable[T]]) -> list[T]:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _run(call: Awaitable[T]) -> T:
            async with semaphore:
                return await call

        return list(await asyncio.gather(*(_run(call) for call in calls)))

    async def _load_answers(self, response_ids: Sequence[UUID]) -> dict[UUID, dict[str, str]]:
        result = await self._session.exec(select(Answer).where(Answer.response_id.in_(response_ids)))
        answers: dict[UUID, dict[str, str]] = defaultdict(dict)
        for answer in result.scalars().all():
            answers[answer.response_id][str(answer.question_id)] = answer.text
        return answers

    async def _latest_generation(self, form_id: UUID) -> int:
        result = await self._session.exec(
            select(func.max(Connection.generation)).where(Connection.form_id == form_id)
        )
        return int(result.scalar() or 0)

    @staticmethod
    def unembedded_responses(responses: Iterable[Response]) -> list[Response]:
        """Responses left inconsistent: a stored summary with no vector-index record."""

        return [response for response in responses if response.summary is not None and response.embedding_id is None]

    @staticmethod
    def _mark_failed(response: Response, stage: ProcessingStage, error: str) -> None:
        response.processing_stage = stage.value
        response.processing_error = error
        _LOGGER.warning(
            "Respondent processing failed: %s",
            error,
            extra={"form_id": str(response.form_id), "response_id": str(response.id), "stage": stage.value},
        )

    @staticmethod
    def _failed_outcome(response: Response, stage: ProcessingStage, error: Optional[str]) -> RespondentOutcome:
        return RespondentOutcome(
            response_id=response.id,
            respondent_name=response.respondent_name,
            status=RespondentStatus.FAILED,
            stage=stage,
            error=error,
        )


def _respondent(response_id: UUID, response: Optional[Response]) -> ConnectedRespondent:
    if response is None:
        return ConnectedRespondent(response_id=response_id)
    return ConnectedRespondent(
        response_id=response.id,
        respondent_name=response.respondent_name,
        respondent_email=response.respondent_email,
        summary=response.summary,
    )
