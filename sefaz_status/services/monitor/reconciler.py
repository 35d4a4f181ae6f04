"""
Reconciliação entre a sondagem direta e a matriz do portal.

O veredito da sondagem sobrescreve parte dos canais do registro-casca do
par crítico (last-writer-wins). Funções puras: entram registros imutáveis,
sai um registro novo.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .models import AvailabilityVerdict, DocumentType, ServiceStatusRecord, Status

logger = logging.getLogger(__name__)

# Canais sobrescritos quando a sondagem indica problema
OVERRIDE_CHANNELS = ("authorization", "service_status")
# Dependem do autorizador: caem junto quando ele está offline.
# Inutilização (cancellation) é assíncrona e nunca entra na cascata.
CASCADE_CHANNELS = ("authorization_return", "protocol_lookup")


@dataclass(frozen=True)
class CriticalEndpoint:
    """Endpoint sondado diretamente para validar um par (estado, modelo)."""
    state: str
    document_type: DocumentType
    url: str

    def matches(self, record: ServiceStatusRecord) -> bool:
        return record.state == self.state and record.document_type == self.document_type


def reconcile(
    shell: ServiceStatusRecord,
    verdict: AvailabilityVerdict,
    latency_ms: Optional[int] = None,
) -> ServiceStatusRecord:
    """
    Aplica o veredito da sondagem a um registro-casca.

    - online: canais do portal mantidos (já concordam ou são mais granulares)
    - unstable/offline: autorização e status do serviço recebem o veredito
    - offline: cascata para retorno da autorização e consulta de protocolo

    A latência da sondagem é sempre anexada; o diagnóstico, só quando há
    sobrescrita. Identidade e observed_at nunca mudam.
    """
    changes = {"latency_ms": latency_ms}

    if verdict.status is not Status.ONLINE:
        targets = OVERRIDE_CHANNELS
        if verdict.status is Status.OFFLINE:
            targets = OVERRIDE_CHANNELS + CASCADE_CHANNELS
        for channel in targets:
            changes[channel] = verdict.status
        changes["diagnostic"] = verdict.diagnostic

    return shell.with_channels(**changes)


def reconcile_all(
    records: List[ServiceStatusRecord],
    endpoint: CriticalEndpoint,
    verdict: AvailabilityVerdict,
    latency_ms: Optional[int] = None,
) -> List[ServiceStatusRecord]:
    """Reconcilia somente o par configurado; os demais passam intactos."""
    result = []
    matched = False
    for record in records:
        if endpoint.matches(record):
            matched = True
            record = reconcile(record, verdict, latency_ms)
            logger.info(
                f"🔧 Reconciliado {record.state}/{record.document_type.value}: "
                f"{verdict.status.value} ({verdict.diagnostic})",
                extra={"latency_ms": latency_ms},
            )
        result.append(record)

    if not matched:
        logger.warning(
            f"⚠️ Par crítico {endpoint.state}/{endpoint.document_type.value} ausente da matriz"
        )
    return result
