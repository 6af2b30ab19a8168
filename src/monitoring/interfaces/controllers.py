"""
Monitoring Controllers (API Routes)
====================================

FastAPI routes exposing the monitoring session.

Controllers are thin - they delegate to the session held in app state.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status

from src.core.exceptions import ResourceNotFoundException, ValidationException
from src.escalation.application import (
    CaseActivityRequest,
    CaseActivityResponse,
    EscalationSummary,
    EscalationSweepResponse,
    QuietThresholdResponse,
    QuietThresholdUpdateRequest,
)
from src.heartbeat.application import (
    ComponentReportRequest,
    IngestReportResponse,
    SnapshotResponse,
    TimelineResponse,
    TimelineSegmentResponse,
)
from src.heartbeat.domain import normalize_status
from src.monitoring.application import MonitoringSession
from src.shared.infrastructure.logging import get_context_logger

router = APIRouter(prefix="/monitoring", tags=["Monitoring"])


# ========== Example payloads for Swagger ==========

SNAPSHOT_RESPONSE_EXAMPLE = {
    "timestamp": "2024-01-15T10:00:00Z",
    "statuses": {"api": "ok", "storage": "degraded", "realtime": "ok"},
    "overall": "degraded",
    "color": "#fbbf24",
    "label": "Partial outage",
    "tooltip": ["API: OK", "Storage: DEGRADED", "Realtime: OK"]
}

QUIET_THRESHOLDS_EXAMPLE = {
    "businessWarningHours": 12,
    "businessAlertHours": 24,
    "offHoursWarningHours": 36,
    "offHoursAlertHours": 72
}


# ========== Dependencies ==========

def get_monitoring_session(request: Request) -> MonitoringSession:
    """Get the monitoring session owned by the application."""
    session = getattr(request.app.state, "monitoring_session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitoring session not initialized"
        )
    return session


def _request_logger(request: Request):
    return get_context_logger(__name__, getattr(request.state, "correlation_id", None))


def _unprocessable(exc: ValidationException) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": exc.message, **exc.details}
    )


# ========== Heartbeat ==========

@router.post(
    "/heartbeat/reports",
    response_model=IngestReportResponse,
    summary="Report a component status",
    description="""
    Merge one component status into the current heartbeat tick.

    Accepted statuses: `ok`, `degraded`, `down`, plus realtime channel
    states `connected`, `connecting`, `disconnected`. Anything else counts
    as `down`.
    """
)
async def report_component(
    report: ComponentReportRequest,
    request: Request,
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        result = session.ingest(report.component, report.status, report.at)
    except ValidationException as e:
        _request_logger(request).warning(
            "Component report rejected", extra={"component": report.component}
        )
        raise _unprocessable(e)

    return IngestReportResponse(
        component=report.component,
        status=normalize_status(report.status).value,
        tick_finalized=result is not None,
        outcome=result.outcome.value if result else None
    )


@router.get(
    "/heartbeat/snapshot",
    response_model=SnapshotResponse,
    summary="Current system status",
    responses={
        200: {
            "description": "Current snapshot",
            "content": {"application/json": {"example": SNAPSHOT_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_snapshot(session: MonitoringSession = Depends(get_monitoring_session)):
    return SnapshotResponse.from_domain(session.snapshot(), session.components)


@router.get(
    "/heartbeat/timeline",
    response_model=TimelineResponse,
    summary="Health timeline over a trailing window"
)
async def get_timeline(
    window_hours: Optional[float] = Query(None, gt=0, le=24 * 7, description="Window length (defaults to retention)"),
    session: MonitoringSession = Depends(get_monitoring_session)
):
    window = timedelta(hours=window_hours) if window_hours else session.retention
    segments = session.timeline(window=window)
    return TimelineResponse(
        window_hours=window.total_seconds() / 3600,
        segments=[TimelineSegmentResponse.from_domain(s) for s in segments]
    )


# ========== Cases & Escalations ==========

@router.put(
    "/cases/{case_id}/activity",
    response_model=CaseActivityResponse,
    summary="Record activity on a case"
)
async def touch_case(
    case_id: str,
    body: Optional[CaseActivityRequest] = None,
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        updated = session.touch_case(case_id, body.at if body else None)
    except ValidationException as e:
        raise _unprocessable(e)
    return CaseActivityResponse(
        case_id=case_id,
        last_activity_at=session.last_activity(case_id),
        updated=updated
    )


@router.delete(
    "/cases/{case_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Stop tracking a case"
)
async def forget_case(
    case_id: str,
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        session.forget_case(case_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/cases/{case_id}/escalation",
    summary="Evaluate one case"
)
async def evaluate_case(
    case_id: str,
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        return session.evaluate_case(case_id).to_dict()
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get(
    "/escalations",
    response_model=EscalationSweepResponse,
    summary="Run an escalation sweep over all tracked cases"
)
async def sweep_escalations(session: MonitoringSession = Depends(get_monitoring_session)):
    now = datetime.now(timezone.utc)
    tiers = session.sweep_escalations(now)
    return EscalationSweepResponse(
        evaluated_at=now,
        tiers={case_id: tier.value for case_id, tier in tiers.items()},
        summary=EscalationSummary(**session.escalation_summary(tiers))
    )


# ========== Quiet threshold settings ==========

@router.get(
    "/settings/quiet",
    response_model=QuietThresholdResponse,
    summary="Current quiet thresholds",
    responses={
        200: {"content": {"application/json": {"example": QUIET_THRESHOLDS_EXAMPLE}}}
    }
)
async def get_quiet_thresholds(session: MonitoringSession = Depends(get_monitoring_session)):
    return session.thresholds.to_document()


@router.put(
    "/settings/quiet",
    response_model=QuietThresholdResponse,
    summary="Partially update quiet thresholds",
    description="Values must be between 1 and 200 hours, warning below alert in each mode."
)
async def update_quiet_thresholds(
    body: QuietThresholdUpdateRequest,
    request: Request,
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        config = session.update_thresholds(body.changes())
    except ValidationException as e:
        raise _unprocessable(e)
    _request_logger(request).info("Quiet thresholds updated via API")
    return config.to_document()


@router.get(
    "/settings/quiet/export",
    summary="Export quiet thresholds as a JSON document"
)
async def export_quiet_thresholds(session: MonitoringSession = Depends(get_monitoring_session)):
    return Response(content=session.export_thresholds(), media_type="application/json")


@router.post(
    "/settings/quiet/import",
    response_model=QuietThresholdResponse,
    summary="Import a quiet threshold document",
    description="Any key other than the four threshold names rejects the whole document."
)
async def import_quiet_thresholds(
    document: Dict[str, Any] = Body(..., examples=[QUIET_THRESHOLDS_EXAMPLE]),
    session: MonitoringSession = Depends(get_monitoring_session)
):
    try:
        config = session.import_thresholds(document)
    except ValidationException as e:
        raise _unprocessable(e)
    return config.to_document()


# Export router for inclusion in main app
monitoring_router = router
