"""Response processing and connection endpoints.

Endpoints:
    stop_accepting(form_id): Close a form to new responses.
    process_form(form_id, payload): Stop intake, synthesize and embed responses, optionally rank connections.
    generate_connections(form_id): Rank the form's embedded responses and append a new generation.
    list_connections(form_id, generation): Read a stored generation (latest by default).
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_pipeline, raise_http_error
from app.core.errors import PipelineError
from app.db.session import get_session
from app.schemas import ConnectionListResponse, FormResource, ProcessFormRequest, ProcessFormResponse
from app.services.forms import FormService
from app.services.processing import FormProcessingService, MatchingPipeline

router = APIRouter(prefix="/forms", tags=["connections"])


@router.post("/{form_id}/stop", response_model=FormResource)
async def stop_accepting(
    form_id: UUID,
    session: AsyncSession = Depends(get_session),
    pipeline: MatchingPipeline = Depends(get_pipeline),
) -> FormResource:
    service = FormProcessingService(session, pipeline)
    try:
        form = await service.stop_accepting(form_id)
    except ValueError as exc:
        raise_http_error(exc)
    return await FormService(session).to_resource(form)


@router.post("/{form_id}/process", response_model=ProcessFormResponse)
async def process_form(
    form_id: UUID,
    payload: Optional[ProcessFormRequest] = None,
    session: AsyncSession = Depends(get_session),
    pipeline: MatchingPipeline = Depends(get_pipeline),
) -> ProcessFormResponse:
    options = payload or ProcessFormRequest()
    service = FormProcessingService(session, pipeline)
    try:
        report, connections = await service.process_form(form_id, generate=options.generate_connections)
    except (ValueError, PipelineError) as exc:
        raise_http_error(exc)
    return ProcessFormResponse(report=report, connections=connections)


@router.post("/{form_id}/connections", response_model=ConnectionListResponse)
async def generate_connections(
    form_id: UUID,
    session: AsyncSession = Depends(get_session),
    pipeline: MatchingPipeline = Depends(get_pipeline),
) -> ConnectionListResponse:
    service = FormProcessingService(session, pipeline)
    try:
        return await service.generate_connections(form_id)
    except (ValueError, PipelineError) as exc:
        raise_http_error(exc)


@router.get("/{form_id}/connections", response_model=ConnectionListResponse)
async def list_connections(
    form_id: UUID,
    generation: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
    pipeline: MatchingPipeline = Depends(get_pipeline),
) -> ConnectionListResponse:
    service = FormProcessingService(session, pipeline)
    try:
        return await service.list_connections(form_id, generation=generation)
    except ValueError as exc:
        raise_http_error(exc)
