"""
Conexão assíncrona com PostgreSQL via asyncpg.

Uso: SEMPRE usar `async with pool.acquire() as conn:` para operações.
Ao sair do bloco a conexão é devolvida ao pool. Nunca guardar `conn` fora
do bloco. No shutdown do processo, chamar close_pool().
"""
import asyncpg
from typing import Optional
import logging
from sefaz_status.core.config import settings

logger = logging.getLogger(__name__)

# Pool global de conexões
_pool: Optional[asyncpg.Pool] = None

TABLE_NAME = "sefaz_logs"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id BIGSERIAL PRIMARY KEY,
    state TEXT NOT NULL,
    document_type TEXT NOT NULL,
    "authorization" TEXT NOT NULL,
    authorization_return TEXT NOT NULL,
    cancellation TEXT NOT NULL,
    protocol_lookup TEXT NOT NULL,
    service_status TEXT NOT NULL,
    observed_at TIMESTAMPTZ NOT NULL,
    diagnostic TEXT,
    latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_pair_observed
    ON {TABLE_NAME} (state, document_type, observed_at DESC);
"""


def database_configured() -> bool:
    return bool(settings.DATABASE_URL)


async def get_pool() -> asyncpg.Pool:
    """
    Retorna pool de conexões (singleton). Cria o pool e a tabela na
    primeira chamada.

    Raises:
        Exception: Se não conseguir criar o pool
    """
    global _pool
    if _pool is None:
        try:
            _pool = await asyncpg.create_pool(
                settings.DATABASE_URL,
                min_size=settings.DATABASE_POOL_MIN_SIZE,
                max_size=settings.DATABASE_POOL_MAX_SIZE,
                command_timeout=30,
            )
            async with _pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
            logger.info(
                f"✅ Pool asyncpg criado (min={settings.DATABASE_POOL_MIN_SIZE}, "
                f"max={settings.DATABASE_POOL_MAX_SIZE}, tabela={TABLE_NAME})"
            )
        except Exception as e:
            logger.error(f"❌ Erro ao criar pool asyncpg: {e}")
            _pool = None
            raise
    return _pool


async def close_pool():
    """
    Fecha o pool de conexões (chamar no shutdown).
    Não levanta exceção.
    """
    global _pool
    if _pool:
        try:
            await _pool.close()
            logger.info("🔌 Pool asyncpg fechado")
        except Exception as e:
            logger.warning("Erro ao fechar pool asyncpg: %s", e)
        finally:
            _pool = None
