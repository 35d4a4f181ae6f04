"""
Testes unitários para o armazenamento de registros.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sefaz_status.services.database_service import MemoryRecordSink, PostgresRecordSink
from sefaz_status.services.monitor.errors import PersistenceError
from sefaz_status.services.monitor.models import DocumentType, Status
from tests.factories import OBSERVED_AT, make_record


class TestMemoryRecordSink:

    @pytest.mark.asyncio
    async def test_recent_is_newest_first(self):
        sink = MemoryRecordSink()
        records = [make_record(observed_at=OBSERVED_AT + timedelta(seconds=15 * i)) for i in range(4)]
        await sink.append(records)

        recent = await sink.recent("PR", DocumentType.NFCE, limit=2)

        assert [r.observed_at for r in recent] == [records[3].observed_at, records[2].observed_at]

    @pytest.mark.asyncio
    async def test_pairs_are_isolated(self):
        sink = MemoryRecordSink()
        await sink.append([make_record("PR", DocumentType.NFE), make_record("SP", DocumentType.NFE)])

        assert len(await sink.recent("PR", DocumentType.NFE)) == 1
        assert await sink.recent("PR", DocumentType.NFCE) == []

    @pytest.mark.asyncio
    async def test_append_only(self):
        """Registros repetidos do mesmo par não se sobrescrevem."""
        sink = MemoryRecordSink()
        await sink.append([make_record(authorization=Status.ONLINE)])
        await sink.append([make_record(authorization=Status.OFFLINE)])

        assert len(await sink.recent("PR", DocumentType.NFCE)) == 2

    @pytest.mark.asyncio
    async def test_bounded_per_pair(self):
        sink = MemoryRecordSink(max_per_pair=3)
        await sink.append([make_record(latency_ms=i) for i in range(5)])
        assert len(await sink.recent("PR", DocumentType.NFCE, limit=10)) == 3


def _mock_pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)
    return pool


def _mock_conn():
    conn = MagicMock()
    conn.transaction.return_value.__aenter__ = AsyncMock(return_value=None)
    conn.transaction.return_value.__aexit__ = AsyncMock(return_value=False)
    conn.executemany = AsyncMock()
    return conn


class TestPostgresRecordSink:

    @pytest.mark.asyncio
    async def test_append_batches_in_one_call(self):
        conn = _mock_conn()
        with patch("sefaz_status.services.database_service.get_pool",
                   AsyncMock(return_value=_mock_pool(conn))):
            count = await PostgresRecordSink().append([make_record("PR"), make_record("SP")])

        assert count == 2
        query, values = conn.executemany.call_args.args
        assert '"authorization"' in query
        assert len(values) == 2
        assert values[0][0] == "PR"

    @pytest.mark.asyncio
    async def test_append_failure_raises_persistence_error(self):
        conn = _mock_conn()
        conn.executemany.side_effect = RuntimeError("relation does not exist")
        with patch("sefaz_status.services.database_service.get_pool",
                   AsyncMock(return_value=_mock_pool(conn))):
            with pytest.raises(PersistenceError):
                await PostgresRecordSink().append([make_record()])

    @pytest.mark.asyncio
    async def test_append_empty_skips_database(self):
        with patch("sefaz_status.services.database_service.get_pool", AsyncMock()) as get_pool:
            assert await PostgresRecordSink().append([]) == 0
        get_pool.assert_not_called()
