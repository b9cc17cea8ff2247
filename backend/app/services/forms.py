"""Form lifecycle and response submission.

Classes:
    FormService: Form CRUD plus respondent submissions.
"""

from __future__ import annotations

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.errors import PipelineError
from app.models import Answer, Connection, Form, Question, Response
from app.schemas import FormCreateRequest, FormListItem, FormResource, QuestionResource, ResponseSubmissionRequest
from app.services.embedding_store import EmbeddingStore

_LOGGER = logging.getLogger(__name__)


class FormService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def require_form(self, form_id: UUID) -> Form:
        form = await self._session.get(Form, form_id)
        if form is None:
            raise ValueError(f"Form {form_id} not found")
        return form

    async def list_questions(self, form_id: UUID) -> list[Question]:
        result = await self._session.exec(
            select(Question).where(Question.form_id == form_id).order_by(Question.position)
        )
        return list(result.scalars().all())

    async def list_responses(self, form_id: UUID) -> list[Response]:
        await self.require_form(form_id)
        result = await self._session.exec(
            select(Response).where(Response.form_id == form_id).order_by(Response.created_at, Response.id)
        )
        return list(result.scalars().all())

    async def create_form(self, payload: FormCreateRequest) -> Form:
        form = Form(user_id=payload.user_id, title=payload.title.strip(), description=payload.description.strip())
        self._session.add(form)
        await self._session.flush()
        for position, question in enumerate(payload.questions):
            self._session.add(
                Question(
                    form_id=form.id,
                    text=question.text.strip(),
                    position=position,
                    time_limit=question.time_limit,
                )
            )
        await self._session.commit()
        await self._session.refresh(form)
        _LOGGER.info("Created form with %d questions", len(payload.questions), extra={"form_id": str(form.id)})
        return form

    async def list_forms(self, user_id: str) -> list[FormListItem]:
        """Return the owner's forms, newest first, each with its response count."""

        result = await self._session.exec(
            select(Form).where(Form.user_id == user_id).order_by(Form.created_at.desc(), Form.id)
        )
        forms = list(result.scalars().all())
        if not forms:
            return []

        counts_result = await self._session.exec(
            select(Response.form_id, func.count(Response.id))
            .where(Response.form_id.in_([form.id for form in forms]))
            .group_by(Response.form_id)
        )
        counts = {form_id: count for form_id, count in counts_result.all()}
        return [
            FormListItem(
                id=form.id,
                user_id=form.user_id,
                title=form.title,
                description=form.description,
                is_published=form.is_published,
                is_accepting_responses=form.is_accepting_responses,
                connections_generated=form.connections_generated,
                created_at=form.created_at,
                response_count=counts.get(form.id, 0),
            )
            for form in forms
        ]

    async def delete_form(self, form_id: UUID, store: EmbeddingStore | None = None) -> None:
        """Delete the form with its questions, responses, answers, and connections.

        When ``store`` is given the form's vector records are removed before the
        commit; if that fails the database changes are rolled back.
        """

        await self.require_form(form_id)
        response_ids = [response.id for response in await self.list_responses(form_id)]

        await self._session.exec(delete(Connection).where(Connection.form_id == form_id))
        if response_ids:
            await self._session.exec(delete(Answer).where(Answer.response_id.in_(response_ids)))
        await self._session.exec(delete(Response).where(Response.form_id == form_id))
        await self._session.exec(delete(Question).where(Question.form_id == form_id))
        await self._session.exec(delete(Form).where(Form.id == form_id))

        if store is not None:
            try:
                await store.delete_form(form_id)
            except PipelineError:
                await self._session.rollback()
                raise
        await self._session.commit()
        _LOGGER.info("Deleted form with %d responses", len(response_ids), extra={"form_id": str(form_id)})

    async def publish_form(self, form_id: UUID) -> Form:
        form = await self.require_form(form_id)
        if not form.is_published:
            form.is_published = True
            self._session.add(form)
            await self._session.commit()
            await self._session.refresh(form)
        return form

    async def submit_response(self, form_id: UUID, payload: ResponseSubmissionRequest) -> tuple[Response, int]:
        form = await self.require_form(form_id)
        if not form.is_published:
            raise PermissionError("This form is not published")
        if not form.is_accepting_responses:
            raise PermissionError("This form is no longer accepting responses")

        question_ids = {question.id for question in await self.list_questions(form_id)}
        unknown = [str(answer.question_id) for answer in payload.answers if answer.question_id not in question_ids]
        if unknown:
            raise ValueError(f"Answers reference questions outside this form: {', '.join(unknown)}")

        response = Response(
            form_id=form_id,
            user_id=payload.user_id,
            respondent_name=payload.name.strip(),
            respondent_email=payload.email.strip(),
        )
        self._session.add(response)
        await self._session.flush()
        for answer in payload.answers:
            self._session.add(
                Answer(
                    response_id=response.id,
                    question_id=answer.question_id,
                    text=answer.text,
                    time_spent=answer.time_spent,
                )
            )
        await self._session.commit()
        await self._session.refresh(response)
        return response, len(payload.answers)

    async def to_resource(self, form: Form, questions: Sequence[Question] | None = None) -> FormResource:
        if questions is None:
            questions = await self.list_questions(form.id)
        return FormResource(
            id=form.id,
            user_id=form.user_id,
            title=form.title,
            description=form.description,
            is_published=form.is_published,
            is_accepting_responses=form.is_accepting_responses,
            connections_generated=form.connections_generated,
            created_at=form.created_at,
            updated_at=form.updated_at,
            questions=[QuestionResource.model_validate(question) for question in questions],
        )
