"""
Ciclo de monitoramento: sonda + portal -> classificação -> agregação ->
reconciliação -> persistência -> fan-out.

Sonda e busca do portal rodam em paralelo, cada uma com seu próprio
timeout, e são unidas antes da reconciliação. Ciclos são serializados por
um lock: um novo ciclo só começa depois que o anterior gravou.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from sefaz_status.core.tracing import trace_span
from sefaz_status.services.broadcaster import RecordBroadcaster
from sefaz_status.services.database_service import RecordSink
from sefaz_status.services.portal.portal_client import PortalClient
from .aggregator import MatrixRow, aggregate
from .classifier import ClassifierConfig, OutcomeClassifier
from .errors import PortalLayoutError
from .freshness import DEFAULT_FRESHNESS_WINDOW, LatestRecordCache
from .models import (
    AvailabilityVerdict,
    DocumentType,
    ProbeOutcome,
    ServiceStatusRecord,
    Status,
    TransportError,
    utc_now,
)
from .prober import EndpointProber
from .reconciler import CriticalEndpoint, reconcile_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitorConfig:
    """Configuração explícita do monitor (nada de singletons globais no núcleo)."""
    critical_endpoint: CriticalEndpoint
    portal_url: str
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    probe_timeout_s: float = 5.0
    portal_timeout_s: float = 8.0
    freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW


def build_monitor_config(settings) -> MonitorConfig:
    """Converte o objeto Settings (variáveis de ambiente) em MonitorConfig."""
    return MonitorConfig(
        critical_endpoint=CriticalEndpoint(
            state=settings.CRITICAL_STATE.upper(),
            document_type=DocumentType(settings.CRITICAL_DOCUMENT_TYPE),
            url=settings.CRITICAL_ENDPOINT_URL,
        ),
        portal_url=settings.PORTAL_URL,
        classifier=ClassifierConfig(
            latency_threshold_ms=settings.LATENCY_THRESHOLD_MS,
            forbidden_is_online=settings.FORBIDDEN_IS_ONLINE,
            expect_structured_body=settings.EXPECT_STRUCTURED_BODY,
            min_body_bytes=settings.MIN_BODY_BYTES,
            connection_reset_status=Status(settings.CONNECTION_RESET_STATUS),
        ),
        probe_timeout_s=settings.PROBE_TIMEOUT_SECONDS,
        portal_timeout_s=settings.PORTAL_TIMEOUT_SECONDS,
        freshness_window=timedelta(seconds=settings.FRESHNESS_WINDOW_SECONDS),
    )


@dataclass(frozen=True)
class CycleResult:
    records: List[ServiceStatusRecord]
    outcome: ProbeOutcome
    verdict: AvailabilityVerdict
    persisted: bool
    duration_ms: int


class MonitorCycle:
    """Executa ciclos completos de monitoramento, um por vez."""

    def __init__(
        self,
        config: MonitorConfig,
        sink: RecordSink,
        broadcaster: Optional[RecordBroadcaster] = None,
        prober: Optional[EndpointProber] = None,
        portal: Optional[PortalClient] = None,
        cache: Optional[LatestRecordCache] = None,
    ):
        self.config = config
        self.sink = sink
        self.broadcaster = broadcaster or RecordBroadcaster()
        self.prober = prober or EndpointProber(timeout=config.probe_timeout_s)
        self.portal = portal or PortalClient(config.portal_url, timeout=config.portal_timeout_s)
        self.cache = cache or LatestRecordCache()
        self.classifier = OutcomeClassifier(config.classifier)
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> CycleResult:
        """
        Roda um ciclo completo.

        Raises:
            PortalLayoutError: Portal sem linhas utilizáveis (nada é gravado)
        """
        async with self._lock:
            start = time.perf_counter()
            observed_at = utc_now()

            outcome, rows = await asyncio.gather(
                self._probe(),
                self._fetch_matrix(),
                return_exceptions=True,
            )
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(rows, BaseException):
                raise rows

            verdict = self.classifier.classify(outcome)

            shells = aggregate(rows, observed_at)
            if not shells:
                raise PortalLayoutError(
                    f"Nenhuma linha válida na matriz do portal ({len(rows)} linhas brutas)",
                    reason="layout_changed",
                )

            records = reconcile_all(
                shells, self.config.critical_endpoint, verdict, outcome.elapsed_ms
            )
            persisted = await self._persist(records)
            self.cache.update(records)

            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                f"✅ Ciclo concluído: {len(records)} registros, sonda={verdict.status.value}, "
                f"gravado={persisted}, {duration_ms}ms",
            )
            return CycleResult(records, outcome, verdict, persisted, duration_ms)

    async def _probe(self) -> ProbeOutcome:
        endpoint = self.config.critical_endpoint
        async with trace_span("sefaz.probe", url=endpoint.url, state=endpoint.state) as span:
            start = time.perf_counter()
            try:
                # Margem sobre o timeout interno da sonda
                outcome = await asyncio.wait_for(
                    self.prober.probe(endpoint.url),
                    timeout=self.config.probe_timeout_s + 1.0,
                )
            except asyncio.TimeoutError:
                outcome = ProbeOutcome(
                    elapsed_ms=int((time.perf_counter() - start) * 1000),
                    transport_error=TransportError.TIMEOUT,
                )
            if span:
                span.set_attribute("elapsed_ms", outcome.elapsed_ms)
                if outcome.http_status is not None:
                    span.set_attribute("http_status", outcome.http_status)
                if outcome.transport_error is not None:
                    span.set_attribute("transport_error", outcome.transport_error.value)
            return outcome

    async def _fetch_matrix(self) -> List[MatrixRow]:
        async with trace_span("sefaz.portal_fetch", url=self.config.portal_url) as span:
            try:
                rows = await asyncio.wait_for(
                    self.portal.fetch_matrix(),
                    timeout=self.config.portal_timeout_s,
                )
            except asyncio.TimeoutError as e:
                raise PortalLayoutError(
                    f"Portal nacional excedeu {self.config.portal_timeout_s}s",
                    reason="portal_unreachable",
                ) from e
            if span:
                span.set_attribute("rows", len(rows))
            return rows

    async def _persist(self, records: List[ServiceStatusRecord]) -> bool:
        """Falha de gravação é registrada e engolida: servir o status vem primeiro."""
        try:
            await self.sink.append(records)
        except Exception as e:
            logger.error(f"❌ Erro ao gravar registros do ciclo: {e}", exc_info=True)
            return False
        self.broadcaster.publish(records)
        return True
