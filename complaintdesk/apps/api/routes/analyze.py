from __future__ import annotations

import logging

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from complaintdesk.services.classifier import classify


logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

ANALYZE_PATH = "/analyze-complaint"
MISSING_TEXT_ERROR = "Complaint text required"


class AnalyzeComplaintRequest(BaseModel):
    complaintText: str | None = None


class ComplaintAnalysisPayload(BaseModel):
    summary: str
    category: str
    priority: str
    emotion: str


class AnalyzeComplaintResponse(BaseModel):
    success: bool
    analysis: ComplaintAnalysisPayload | None = None
    error: str | None = None


@router.post(
    ANALYZE_PATH,
    response_model=AnalyzeComplaintResponse,
    response_model_exclude_none=True,
    responses={400: {"model": AnalyzeComplaintResponse, "description": "Complaint text missing"}},
)
async def analyze_complaint(
    payload: AnalyzeComplaintRequest | None = Body(default=None),
) -> AnalyzeComplaintResponse | JSONResponse:
    # Stateless: classification only, nothing is persisted.
    text = payload.complaintText if payload is not None else None
    if not text or not text.strip():
        return JSONResponse(status_code=400, content={"success": False, "error": MISSING_TEXT_ERROR})
    analysis = classify(text)
    logger.debug("complaint_text_analyzed category=%s priority=%s", analysis.category, analysis.priority)
    return AnalyzeComplaintResponse(success=True, analysis=ComplaintAnalysisPayload(**analysis.to_dict()))
