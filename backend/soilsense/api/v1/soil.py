"""Soil analysis endpoints: analyze, history, export/import, knowledge base."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from soilsense.core.config import get_settings
from soilsense.core.dependencies import get_analyzer, get_history
from soilsense.core.image_processing import validate_upload
from soilsense.services.ai.soil.contracts import (
    AnalysisResult,
    HistoryRecord,
    HistoryStatistics,
    SoilProfile,
    StorageSize,
)
from soilsense.services.ai.soil.knowledge_base import PROFILES
from soilsense.services.ai.soil.service import SoilAnalyzer
from soilsense.services.history_store import HistoryStore

router = APIRouter()


class AnalyzeResponse(BaseModel):
    record_id: str | None
    latency_ms: float
    result: AnalysisResult


class ImportResponse(BaseModel):
    imported: int


class DeleteResponse(BaseModel):
    deleted: bool


def _json_attachment(payload: str, filename: str) -> Response:
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/soil/analyze",
    response_model=AnalyzeResponse,
    summary="Classify a soil photograph",
)
async def analyze_soil(
    file: UploadFile = File(...),
    analyzer: SoilAnalyzer = Depends(get_analyzer),
):
    settings = get_settings()
    content = await file.read()
    content_type = validate_upload(
        content,
        content_type=file.content_type,
        filename=file.filename,
        max_size=settings.max_image_size,
        allowed_types=settings.allowed_image_types,
    )

    outcome = await analyzer.analyze(content, filename=file.filename, content_type=content_type)
    return AnalyzeResponse(
        record_id=outcome.record_id,
        latency_ms=outcome.total_latency_ms,
        result=outcome.result,
    )


@router.get("/soil/types", response_model=list[SoilProfile])
def soil_types():
    return list(PROFILES.values())


@router.get("/soil/history", response_model=list[HistoryRecord])
def list_history(
    limit: int = Query(default=10, ge=1, le=50),
    history: HistoryStore = Depends(get_history),
):
    return history.get_recent(limit)


@router.get("/soil/history/stats", response_model=HistoryStatistics)
def history_stats(history: HistoryStore = Depends(get_history)):
    return history.statistics()


@router.get("/soil/history/size", response_model=StorageSize)
def history_size(history: HistoryStore = Depends(get_history)):
    return history.storage_size()


@router.get("/soil/history/export")
def export_history(history: HistoryStore = Depends(get_history)):
    return _json_attachment(history.export_all(), f"soil-history-{int(time.time() * 1000)}.json")


@router.post("/soil/history/import", response_model=ImportResponse)
async def import_history(
    file: UploadFile = File(...),
    history: HistoryStore = Depends(get_history),
):
    payload = await file.read()
    return ImportResponse(imported=history.import_all(payload))


@router.get("/soil/history/remote")
def remote_history(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    analyzer: SoilAnalyzer = Depends(get_analyzer),
):
    if analyzer.remote is None:
        return []
    return analyzer.remote.fetch_remote_history(limit=limit, offset=offset)


@router.delete("/soil/history", response_model=DeleteResponse)
def clear_history(history: HistoryStore = Depends(get_history)):
    return DeleteResponse(deleted=history.clear_all())


@router.get("/soil/history/{record_id}", response_model=HistoryRecord)
def get_history_record(record_id: str, history: HistoryStore = Depends(get_history)):
    record = history.get_by_id(record_id)
    if record is None:
        raise HTTPException(404, "Analysis not found")
    return record


@router.get("/soil/history/{record_id}/report")
def download_report(record_id: str, history: HistoryStore = Depends(get_history)):
    """Downloadable JSON report of one stored analysis."""
    record = history.get_by_id(record_id)
    if record is None:
        raise HTTPException(404, "Analysis not found")

    result = record.result
    report = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "analyzed_at": record.timestamp,
        "soil_type": result.soil_type.value,
        "confidence": result.confidence,
        "characteristics": result.characteristics.model_dump(),
        "nutrients": result.nutrients.model_dump(),
        "ph": result.ph.model_dump(),
        "recommendations": result.recommendations,
    }
    return _json_attachment(json.dumps(report, indent=2), f"soil-analysis-{record.id}.json")


@router.delete("/soil/history/{record_id}", response_model=DeleteResponse)
def delete_history_record(record_id: str, history: HistoryStore = Depends(get_history)):
    if not history.delete(record_id):
        raise HTTPException(404, "Analysis not found")
    return DeleteResponse(deleted=True)
