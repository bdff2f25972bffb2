"""
Investigation Routes
====================

Routes for starting and steering the session's current investigation,
plus the WebSocket endpoint for live updates.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from api.schemas import ErrorResponse, InvestigationRequest, InvestigationStartResponse, StopResponse
from core.exceptions import InvestigationBootstrapError, OsintForensicsBaseException, ReportExportError
from core.logging import get_logger
from core.models import Investigation, InvestigationSummary, StateUpdate
from infra.realtime import ConnectionHub
from orchestration.session import InvestigationSession
from reports.exporter import export_investigation_report, report_filename

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/investigations", tags=["investigations"])

MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


def get_session(request: Request) -> InvestigationSession:
    return request.app.state.session


def require_current(session: InvestigationSession) -> Investigation:
    investigation = session.current_investigation
    if investigation is None:
        raise HTTPException(status_code=404, detail="No active investigation")
    return investigation


def error_response(status_code: int, exc: OsintForensicsBaseException) -> JSONResponse:
    body = ErrorResponse(detail=exc.message, error_code=exc.error_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "",
    status_code=201,
    response_model=InvestigationStartResponse,
    responses={502: {"model": ErrorResponse}},
)
async def start_investigation(
    body: InvestigationRequest,
    session: InvestigationSession = Depends(get_session),
):
    """
    Start a new investigation, replacing the current one.

    Execution continues in the background; follow it over the live
    WebSocket or by polling ``/current``.
    """
    try:
        investigation = await session.start_new_investigation(body.query, body.pipelines)
    except InvestigationBootstrapError as e:
        return error_response(502, e)

    return InvestigationStartResponse(
        investigation_id=investigation.id,
        status="started",
        message=f"Running {len(investigation.pipelines)} analysis pipelines",
        live_url=session.channel.url if session.channel else None,
        investigation=investigation,
    )


@router.get("/current", response_model=Investigation)
async def get_current(session: InvestigationSession = Depends(get_session)):
    """Get the current investigation snapshot."""
    return require_current(session)


@router.post("/current/toggle", response_model=Investigation)
async def toggle_current(session: InvestigationSession = Depends(get_session)):
    """Pause or resume the current investigation."""
    require_current(session)
    return session.toggle()


@router.post("/current/stop", response_model=StopResponse)
async def stop_current(session: InvestigationSession = Depends(get_session)):
    """Stop the current investigation and close its live channel."""
    require_current(session)
    return StopResponse(status="stopped", investigation=session.stop())


@router.get("/current/summary", response_model=InvestigationSummary)
async def get_summary(session: InvestigationSession = Depends(get_session)):
    """Roll-up statistics for the current investigation."""
    require_current(session)
    return session.get_summary()


@router.get("/current/report", responses={415: {"model": ErrorResponse}})
async def export_report(
    format: str = Query(default="json"),
    session: InvestigationSession = Depends(get_session),
):
    """Download a report of the current investigation."""
    investigation = require_current(session)
    try:
        content = export_investigation_report(investigation, format)
    except ReportExportError as e:
        return error_response(415, e)

    filename = report_filename(investigation, format)
    return Response(
        content=content,
        media_type=MEDIA_TYPES[format.lower()],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.websocket("/{investigation_id}/live")
async def live_updates(websocket: WebSocket, investigation_id: str):
    """WebSocket endpoint for live investigation updates."""
    hub: ConnectionHub = websocket.app.state.hub
    session: InvestigationSession = websocket.app.state.session
    await websocket.accept()

    hub.register(investigation_id, websocket)

    try:
        current = session.current_investigation
        data = {"status": "connected"}
        if current is not None and current.id == investigation_id:
            data["investigation"] = current.model_dump(mode="json")
        await websocket.send_json(StateUpdate(
            type="CONNECTED",
            investigation_id=investigation_id,
            message="Connected to live updates",
            data=data,
        ).model_dump(mode="json"))

        # Inbound messages are not interpreted; reading keeps the socket open
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        logger.debug("Live update subscriber left", investigation_id=investigation_id)
    finally:
        hub.unregister(investigation_id, websocket)
