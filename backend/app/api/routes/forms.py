"""Form building, listing, deletion, publishing, and response submission endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_pipeline, raise_http_error
from app.core.errors import PipelineError
from app.db.session import get_session
from app.schemas import (
    FormCreateRequest,
    FormListItem,
    FormResource,
    ResponseResource,
    ResponseSubmissionRequest,
    ResponseSubmittedResponse,
)
from app.services.forms import FormService
from app.services.processing import MatchingPipeline

router = APIRouter(prefix="/forms", tags=["forms"])


@router.post("", response_model=FormResource, status_code=status.HTTP_201_CREATED)
async def create_form(
    payload: FormCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> FormResource:
    service = FormService(session)
    form = await service.create_form(payload)
    return await service.to_resource(form)


@router.get("", response_model=list[FormListItem])
async def list_forms(
    user_id: str = Query(min_length=1),
    session: AsyncSession = Depends(get_session),
) -> list[FormListItem]:
    return await FormService(session).list_forms(user_id)


@router.get("/{form_id}", response_model=FormResource)
async def get_form(form_id: UUID, session: AsyncSession = Depends(get_session)) -> FormResource:
    service = FormService(session)
    try:
        form = await service.require_form(form_id)
    except ValueError as exc:
        raise_http_error(exc)
    return await service.to_resource(form)


@router.post("/{form_id}/publish", response_model=FormResource)
async def publish_form(form_id: UUID, session: AsyncSession = Depends(get_session)) -> FormResource:
    service = FormService(session)
    try:
        form = await service.publish_form(form_id)
    except ValueError as exc:
        raise_http_error(exc)
    return await service.to_resource(form)


@router.post(
    "/{form_id}/responses",
    response_model=ResponseSubmittedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_response(
    form_id: UUID,
    payload: ResponseSubmissionRequest,
    session: AsyncSession = Depends(get_session),
) -> ResponseSubmittedResponse:
    service = FormService(session)
    try:
        response, answer_count = await service.submit_response(form_id, payload)
    except (ValueError, PermissionError) as exc:
        raise_http_error(exc)
    return ResponseSubmittedResponse(response_id=response.id, answer_count=answer_count)


@router.get("/{form_id}/responses", response_model=list[ResponseResource])
async def list_responses(form_id: UUID, session: AsyncSession = Depends(get_session)) -> list[ResponseResource]:
    service = FormService(session)
    try:
        responses = await service.list_responses(form_id)
    except ValueError as exc:
        raise_http_error(exc)
    return [ResponseResource.model_validate(response) for response in responses]


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(
    form_id: UUID,
    session: AsyncSession = Depends(get_session),
    pipeline: MatchingPipeline = Depends(get_pipeline),
) -> Response:
    try:
        await FormService(session).delete_form(form_id, store=pipeline.store)
    except (ValueError, PipelineError) as exc:
        raise_http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
