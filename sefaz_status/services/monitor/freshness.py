"""
Portão de frescor dos dados exibidos no dashboard.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

from .models import DocumentType, ServiceStatusRecord, Status, utc_now

DEFAULT_FRESHNESS_WINDOW = timedelta(minutes=5)

HEADLINE_OFFLINE = "Indisponível"
HEADLINE_UNSTABLE = "Instabilidade"
HEADLINE_ONLINE = "Operacional"


def is_stale(
    record: ServiceStatusRecord,
    now: Optional[datetime] = None,
    window: timedelta = DEFAULT_FRESHNESS_WINDOW,
) -> bool:
    """
    Dado velho: último registro mais antigo que a janela E autorização não
    offline (um offline já é, por si só, a informação relevante).
    """
    now = now or utc_now()
    if record.authorization is Status.OFFLINE:
        return False
    return now - record.observed_at >= window


def headline(record: ServiceStatusRecord, stale: bool) -> str:
    """Resumo exibido no topo do dashboard."""
    if record.authorization is Status.OFFLINE:
        return HEADLINE_OFFLINE
    if stale or record.authorization is Status.UNSTABLE:
        return HEADLINE_UNSTABLE
    return HEADLINE_ONLINE


class LatestRecordCache:
    """
    Último registro conhecido por par (estado, modelo).
    Só o ciclo em execução escreve aqui (ciclos são serializados).
    """

    def __init__(self):
        self._latest: Dict[Tuple[str, DocumentType], ServiceStatusRecord] = {}

    def update(self, records: Iterable[ServiceStatusRecord]) -> None:
        for record in records:
            current = self._latest.get(record.key)
            if current is None or record.observed_at >= current.observed_at:
                self._latest[record.key] = record

    def get(self, state: str, document_type: DocumentType) -> Optional[ServiceStatusRecord]:
        return self._latest.get((state, document_type))

    def __len__(self) -> int:
        return len(self._latest)
