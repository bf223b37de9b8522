"""
Triangulation API Routes
========================

REST endpoints exposing the field triangulation engine.

Endpoints:
- POST /api/triangulate        - Triangulate pages or a raw pipeline result
- GET  /api/sample             - Triangulation of the built-in sample package
- GET  /api/config/defaults    - Default labels, schema, trust table and stages
"""

import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from loan_triangulation.config import Config
from loan_triangulation.models import BackendConfig, BackendPipelineResponse
from loan_triangulation.sample_data import CANDIDATE_LABELS, EXTRACTION_SCHEMA, SAMPLE_PAGES
from loan_triangulation.services.presentation import ProcessedPackage, build_final_fields, hydrate_pages
from loan_triangulation.services.triangulation import (
    DefaultTrustTable,
    Page,
    fields_from_schema,
    record_to_dict,
    triangulate,
)
from loan_triangulation.utils.translations import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Triangulation"])


# ============================================================================
# Request/Response Models
# ============================================================================

class PageInput(BaseModel):
    """One page with its upstream classification and extraction."""
    page_number: int = Field(..., ge=1)
    text: str = ""
    predicted_label: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    extracted_fields: Optional[Dict[str, Any]] = None


class TriangulateRequest(BaseModel):
    """Either `pages` or a raw pipeline `result` must be supplied."""
    pages: List[PageInput] = Field(default_factory=list)
    result: Optional[BackendPipelineResponse] = None
    language: str = Field(default="tr", description="en | tr")
    label_weights: Optional[Dict[str, float]] = Field(None, description="Label-only trust overrides")
    extraction_schema: Optional[Dict[str, str]] = Field(None, description="Field set in display order")


class TriangulateResponse(BaseModel):
    """Triangulated record plus presentation cards."""
    fields: List[str]
    record: Dict[str, Dict[str, Any]]
    cards: List[Dict[str, Any]]


class DefaultsResponse(BaseModel):
    """Built-in configuration used when the backend supplies none."""
    labels: List[str]
    extraction_schema: Dict[str, str]
    trust_table: Dict[str, Dict[str, int]]
    stage_catalog: List[str]
    languages: List[str]


# ============================================================================
# Helpers
# ============================================================================

def _to_pages(request: TriangulateRequest, fields: List[str]) -> List[Page]:
    if request.result is not None:
        return hydrate_pages(request.result, fields)

    seen = set()
    pages = []
    for item in request.pages:
        if item.page_number in seen:
            raise HTTPException(
                status_code=400,
                detail=f"Duplicate page_number: {item.page_number}"
            )
        seen.add(item.page_number)
        pages.append(Page(
            page_number=item.page_number,
            raw_text=item.text,
            predicted_label=item.predicted_label,
            confidence=item.confidence,
            extracted_fields=item.extracted_fields,
        ))
    return pages


def _respond(
    pages: List[Page],
    fields: List[str],
    language: str,
    label_weights: Optional[Dict[str, float]],
) -> TriangulateResponse:
    record = triangulate(pages, language=language, label_weights=label_weights, fields=fields)
    package = ProcessedPackage(job_id=None, pages=pages, fields=fields, triangulated=record)
    return TriangulateResponse(
        fields=fields,
        record=record_to_dict(record),
        cards=[card.to_dict() for card in build_final_fields(package, language)],
    )


# ============================================================================
# API Endpoints
# ============================================================================

@router.post("/triangulate", response_model=TriangulateResponse)
async def triangulate_pages(request: TriangulateRequest) -> TriangulateResponse:
    """
    Pick one authoritative value per field from per-page extractions.

    Accepts hydrated pages, or the raw result of a completed pipeline job.
    """
    if not request.pages and request.result is None:
        raise HTTPException(
            status_code=400,
            detail="Provide either 'pages' or 'result'"
        )
    if request.language not in SUPPORTED_LANGUAGES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported language: {request.language}"
        )

    fields = fields_from_schema(request.extraction_schema)
    pages = _to_pages(request, fields)
    logger.info(f"Triangulating {len(pages)} pages over fields {fields}")
    return _respond(pages, fields, request.language, request.label_weights)


@router.get("/sample", response_model=TriangulateResponse)
async def triangulate_sample(
    language: str = Query("tr", description="en | tr")
) -> TriangulateResponse:
    """Triangulate the built-in sample closing package."""
    if language not in SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=400, detail=f"Unsupported language: {language}")
    fields = fields_from_schema(EXTRACTION_SCHEMA)
    return _respond(SAMPLE_PAGES, fields, language, None)


@router.get("/config/defaults", response_model=DefaultsResponse)
async def get_defaults() -> DefaultsResponse:
    """Default labels, schema, trust table and stage catalog."""
    defaults = BackendConfig(labels=CANDIDATE_LABELS, extraction_schema=EXTRACTION_SCHEMA)
    return DefaultsResponse(
        labels=defaults.labels,
        extraction_schema=defaults.extraction_schema,
        trust_table=DefaultTrustTable().to_dict(),
        stage_catalog=list(Config.STAGE_CATALOG),
        languages=list(SUPPORTED_LANGUAGES),
    )
