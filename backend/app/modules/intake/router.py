"""Work-order intake API — /intake/ endpoints.

  - /companies              — Companies for the upload form's dropdown
  - /companies/{company_id} — Single company with its sub-companies
  - /resolve                — Resolve a document descriptor and render its prompt
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.modules.intake.dispatcher import IntakeDispatcher
from app.modules.intake.exceptions import CompanyNotFoundError, DispatchConsistencyError
from app.modules.intake.schemas import (
    CompanyDetail,
    CompanyRecord,
    DocumentDescriptor,
    ResolutionResult,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/intake", tags=["intake"])


def get_dispatcher(request: Request) -> IntakeDispatcher:
    """The pipeline built at application startup."""
    return request.app.state.intake_dispatcher


@router.get("/companies", response_model=list[CompanyRecord])
async def list_companies(
    include_unresolved: bool = Query(False, description="Include the unresolved sentinel"),
    dispatcher: IntakeDispatcher = Depends(get_dispatcher),
) -> list[CompanyRecord]:
    if include_unresolved:
        return dispatcher.registry.list_all()
    return dispatcher.registry.list_selectable()


@router.get("/companies/{company_id}", response_model=CompanyDetail)
async def get_company(
    company_id: str,
    dispatcher: IntakeDispatcher = Depends(get_dispatcher),
) -> CompanyDetail:
    try:
        record = dispatcher.registry.get_by_id(company_id)
    except CompanyNotFoundError:
        raise HTTPException(status_code=404, detail="Company not found") from None

    children = sorted(child.id for child in dispatcher.registry.get_children(record.id))
    return CompanyDetail(**record.model_dump(), children=children)


@router.post("/resolve", response_model=ResolutionResult)
async def resolve_document(
    descriptor: DocumentDescriptor,
    dispatcher: IntakeDispatcher = Depends(get_dispatcher),
) -> ResolutionResult:
    """Resolve the issuing company of a work-order PDF and build its prompt.

    The caller sends ``prompt_text`` to the extraction model and stores
    ``matched_company_id`` / ``is_fallback`` / ``prompt_identifier`` for audit.
    """
    try:
        return dispatcher.resolve_and_render(descriptor)
    except DispatchConsistencyError as exc:
        logger.error("Intake dispatch failed", error=str(exc), exc_info=True)
        raise HTTPException(status_code=500, detail="Document processing failed.")
