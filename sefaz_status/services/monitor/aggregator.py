"""
Agregador da matriz do portal nacional.

Cada linha válida da matriz vira dois registros-casca (NFe e NFCe) com os
cinco canais na ordem das colunas do portal.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .constants import CHANNEL_COLUMN_COUNT, VIRTUAL_AUTHORIZERS
from .models import CHANNELS, DocumentType, ServiceStatusRecord, Status, utc_now

logger = logging.getLogger(__name__)

_UF_RE = re.compile(r"^[A-Z]{2}$")


@dataclass(frozen=True)
class MatrixRow:
    """Linha decodificada pelo scraper: autorizador + status por coluna."""
    state: str
    channels: Sequence[Status]


def is_valid_state(state: Optional[str]) -> bool:
    if not state:
        return False
    return bool(_UF_RE.match(state)) or state in VIRTUAL_AUTHORIZERS


def aggregate(
    rows: Iterable[MatrixRow],
    observed_at: Optional[datetime] = None,
) -> List[ServiceStatusRecord]:
    """
    Gera os registros-casca a partir da matriz.

    Linhas com menos colunas que o mínimo ou com autorizador vazio/malformado
    são descartadas: representam falha de parse, não indisponibilidade.

    Args:
        rows: Linhas decodificadas do portal
        observed_at: Instante do ciclo (compartilhado por todos os registros)

    Returns:
        Lista com dois registros (NFe, NFCe) por linha válida
    """
    observed_at = observed_at or utc_now()
    records: List[ServiceStatusRecord] = []
    dropped = 0

    for row in rows:
        state = (row.state or "").strip().upper()
        if not is_valid_state(state) or len(row.channels) < CHANNEL_COLUMN_COUNT:
            dropped += 1
            logger.debug(f"Linha descartada: state={row.state!r}, colunas={len(row.channels)}")
            continue

        channels = dict(zip(CHANNELS, row.channels[:CHANNEL_COLUMN_COUNT]))
        for document_type in (DocumentType.NFE, DocumentType.NFCE):
            records.append(ServiceStatusRecord(
                state=state,
                document_type=document_type,
                observed_at=observed_at,
                **channels,
            ))

    if dropped:
        logger.info(f"⚠️ {dropped} linha(s) da matriz descartadas (layout inesperado)")

    return records
