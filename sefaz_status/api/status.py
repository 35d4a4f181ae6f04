"""
Endpoints de status, histórico, incidentes, frescor e stream em tempo real.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from sefaz_status.core.config import settings
from sefaz_status.schemas.status import ErrorResponse, FreshnessResponse, ServiceStatusRecordOut
from sefaz_status.services.broadcaster import RecordBroadcaster, Subscription
from sefaz_status.services.database_service import RecordSink, get_record_sink
from sefaz_status.services.monitor.cycle import MonitorCycle
from sefaz_status.services.monitor.freshness import headline, is_stale
from sefaz_status.services.monitor.models import DocumentType, Status
from sefaz_status.services.monitor_service import get_broadcaster, get_monitor_cycle

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_KEEPALIVE_SECONDS = 15.0

PAIR_ERRORS = {400: {"model": ErrorResponse}}


def _bad_request(error: str, detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": error, "detail": detail})


def _parse_pair(state: Optional[str], document_type: str):
    if not state or not state.strip():
        raise _bad_request("state_required", "Parâmetro 'state' é obrigatório")
    try:
        doc = DocumentType(document_type)
    except ValueError:
        raise _bad_request("invalid_document_type", "documentType deve ser NFe ou NFCe")
    return state.strip().upper(), doc


def _resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.HISTORY_DEFAULT_LIMIT
    return min(limit, settings.HISTORY_MAX_LIMIT)


@router.get(
    "/status",
    response_model=List[ServiceStatusRecordOut],
    responses={502: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_status(cycle: MonitorCycle = Depends(get_monitor_cycle)):
    """
    Roda um ciclo completo (sonda + portal + reconciliação + gravação) e
    retorna todos os registros reconciliados.

    Portal sem linhas -> 502 (tratado em main.py via PortalLayoutError).
    """
    result = await cycle.run()
    return [ServiceStatusRecordOut.from_record(r) for r in result.records]


@router.get("/history", response_model=List[ServiceStatusRecordOut], responses=PAIR_ERRORS)
async def get_history(
    state: Optional[str] = Query(None),
    document_type: str = Query("NFe", alias="documentType"),
    limit: Optional[int] = Query(None, ge=1),
    sink: RecordSink = Depends(get_record_sink),
):
    """Registros gravados do par, do mais novo para o mais antigo."""
    uf, doc = _parse_pair(state, document_type)
    records = await sink.recent(uf, doc, _resolve_limit(limit))
    return [ServiceStatusRecordOut.from_record(r) for r in records]


@router.get("/incidents", response_model=List[ServiceStatusRecordOut], responses=PAIR_ERRORS)
async def get_incidents(
    state: Optional[str] = Query(None),
    document_type: str = Query("NFe", alias="documentType"),
    limit: Optional[int] = Query(None, ge=1),
    sink: RecordSink = Depends(get_record_sink),
):
    """Log de incidentes: histórico com autorização offline ou instável."""
    uf, doc = _parse_pair(state, document_type)
    records = await sink.recent(uf, doc, _resolve_limit(limit))
    return [
        ServiceStatusRecordOut.from_record(r)
        for r in records
        if r.authorization in (Status.OFFLINE, Status.UNSTABLE)
    ]


@router.get(
    "/freshness",
    response_model=FreshnessResponse,
    responses={**PAIR_ERRORS, 404: {"model": ErrorResponse}},
)
async def get_freshness(
    state: Optional[str] = Query(None),
    document_type: str = Query("NFe", alias="documentType"),
    cycle: MonitorCycle = Depends(get_monitor_cycle),
    sink: RecordSink = Depends(get_record_sink),
):
    """Último registro do par com o predicado de dado velho aplicado."""
    uf, doc = _parse_pair(state, document_type)
    record = cycle.cache.get(uf, doc)
    if record is None:
        latest = await sink.recent(uf, doc, 1)
        record = latest[0] if latest else None
    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "no_data", "detail": f"Nenhum registro para {uf}/{doc.value}"},
        )

    stale = is_stale(record, window=cycle.config.freshness_window)
    return FreshnessResponse(
        state=record.state,
        document_type=record.document_type.value,
        observed_at=record.observed_at,
        authorization=record.authorization.value,
        stale=stale,
        headline=headline(record, stale),
    )


async def sse_events(
    subscription: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = SSE_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Converte os eventos de inserção de uma assinatura em mensagens SSE."""
    while not await is_disconnected():
        try:
            record = await asyncio.wait_for(subscription.get(), timeout=keepalive)
        except asyncio.TimeoutError:
            yield ": keep-alive\n\n"
            continue
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        yield f"event: insert\ndata: {payload}\n\n"


@router.get("/stream", responses=PAIR_ERRORS)
async def stream_records(
    request: Request,
    state: Optional[str] = Query(None),
    broadcaster: RecordBroadcaster = Depends(get_broadcaster),
):
    """Server-Sent Events com cada registro gravado para o estado pedido."""
    if not state or not state.strip():
        raise _bad_request("state_required", "Parâmetro 'state' é obrigatório")
    subscription = broadcaster.subscribe(state.strip().upper())

    async def event_stream():
        try:
            async for message in sse_events(subscription, request.is_disconnected):
                yield message
        finally:
            broadcaster.unsubscribe(subscription)

    return StreamingResponse(event_stream(), media_type="text/event-stream")
