"""
Armazenamento append-only dos registros reconciliados.

Dois backends com a mesma interface:
- PostgresRecordSink: tabela sefaz_logs via asyncpg
- MemoryRecordSink: em memória, quando DATABASE_URL não está configurada
"""
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from sefaz_status.core.database import TABLE_NAME, database_configured, get_pool
from sefaz_status.services.monitor.errors import PersistenceError
from sefaz_status.services.monitor.models import (
    CHANNELS,
    DocumentType,
    ServiceStatusRecord,
)

logger = logging.getLogger(__name__)

_COLUMNS = ("state", "document_type") + CHANNELS + ("observed_at", "diagnostic", "latency_ms")


def _quote(column: str) -> str:
    # "authorization" é palavra reservada no PostgreSQL
    return f'"{column}"'


class RecordSink:
    """Interface do armazenamento: só inserção e leitura, nunca update."""

    async def append(self, records: Sequence[ServiceStatusRecord]) -> int:
        raise NotImplementedError

    async def recent(
        self,
        state: str,
        document_type: DocumentType,
        limit: int = 30,
    ) -> List[ServiceStatusRecord]:
        raise NotImplementedError


class MemoryRecordSink(RecordSink):
    """Log em memória, limitado por par (estado, modelo)."""

    def __init__(self, max_per_pair: int = 500):
        self.max_per_pair = max_per_pair
        self._log: Dict[Tuple[str, DocumentType], Deque[ServiceStatusRecord]] = defaultdict(
            lambda: deque(maxlen=self.max_per_pair)
        )

    async def append(self, records: Sequence[ServiceStatusRecord]) -> int:
        for record in records:
            self._log[record.key].append(record)
        return len(records)

    async def recent(
        self,
        state: str,
        document_type: DocumentType,
        limit: int = 30,
    ) -> List[ServiceStatusRecord]:
        records = self._log.get((state, document_type), ())
        ordered = sorted(records, key=lambda r: r.observed_at, reverse=True)
        return ordered[:limit]


class PostgresRecordSink(RecordSink):
    """Grava e lê a tabela sefaz_logs."""

    async def append(self, records: Sequence[ServiceStatusRecord]) -> int:
        """
        Insere todos os registros do ciclo em uma única transação.

        Raises:
            PersistenceError: Se a gravação falhar
        """
        if not records:
            return 0

        columns = ", ".join(_quote(c) for c in _COLUMNS)
        placeholders = ", ".join(f"${i}" for i in range(1, len(_COLUMNS) + 1))
        query = f"INSERT INTO {TABLE_NAME} ({columns}) VALUES ({placeholders})"

        values = []
        for record in records:
            row = record.to_dict()
            row["observed_at"] = record.observed_at
            values.append(tuple(row[c] for c in _COLUMNS))

        try:
            pool = await get_pool()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(query, values)
        except Exception as e:
            raise PersistenceError(f"Falha ao gravar {len(records)} registros: {e}") from e

        logger.debug(f"✅ {len(records)} registros gravados em {TABLE_NAME}")
        return len(records)

    async def recent(
        self,
        state: str,
        document_type: DocumentType,
        limit: int = 30,
    ) -> List[ServiceStatusRecord]:
        columns = ", ".join(_quote(c) for c in _COLUMNS)
        query = f"""
            SELECT {columns} FROM {TABLE_NAME}
            WHERE state = $1 AND document_type = $2
            ORDER BY observed_at DESC
            LIMIT $3
            """
        pool = await get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(query, state, document_type.value, limit)
        return [ServiceStatusRecord.from_dict(dict(row)) for row in rows]


_record_sink: Optional[RecordSink] = None


def get_record_sink() -> RecordSink:
    """
    Retorna o armazenamento singleton: Postgres quando DATABASE_URL está
    configurada, memória caso contrário.
    """
    global _record_sink
    if _record_sink is None:
        if database_configured():
            _record_sink = PostgresRecordSink()
            logger.info("🗄️ Armazenamento: PostgreSQL")
        else:
            _record_sink = MemoryRecordSink()
            logger.warning("⚠️ DATABASE_URL não configurada, usando armazenamento em memória")
    return _record_sink
