"""
Worker do ciclo de monitoramento (sem servidor HTTP).
Processo separado: sonda + portal + reconciliação + gravação a cada N segundos.
Execute com: python -m sefaz_status.workers.monitor_worker
"""
import asyncio
import logging
import signal

from sefaz_status.core.config import settings
from sefaz_status.core.database import close_pool, database_configured, get_pool
from sefaz_status.core.logging_utils import setup_logging
from sefaz_status.services.monitor.scheduler import CycleScheduler
from sefaz_status.services.monitor_service import get_monitor_cycle

setup_logging()
logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 15.0


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: Ctrl+C chega como KeyboardInterrupt
            pass


async def run_worker() -> None:
    """Mantém o agendador de ciclos rodando até SIGINT/SIGTERM."""
    stop = asyncio.Event()
    _install_stop_handlers(stop)

    if database_configured():
        await get_pool()
        logger.info("🗄️ Worker de monitoramento gravando em PostgreSQL")
    else:
        logger.warning("⚠️ DATABASE_URL ausente: registros do worker ficam só em memória")

    # Neste processo o agendador é a única razão de existir: nunca desabilitado
    interval = settings.CYCLE_INTERVAL_SECONDS
    if interval <= 0:
        interval = DEFAULT_INTERVAL_SECONDS
    cycle = get_monitor_cycle()
    endpoint = cycle.config.critical_endpoint
    scheduler = CycleScheduler(cycle, interval=interval)

    logger.info(
        f"🛰️ Worker de monitoramento SEFAZ iniciado: sonda {endpoint.state}/"
        f"{endpoint.document_type.value} + portal nacional a cada {interval}s"
    )
    scheduler.start()
    try:
        await stop.wait()
        logger.info("⏹️ Sinal recebido, encerrando ciclos de monitoramento...")
    finally:
        await scheduler.stop()
        if database_configured():
            await close_pool()
        logger.info(
            f"Worker de monitoramento parado (ciclos={scheduler.cycles_run}, "
            f"falhas={scheduler.cycles_failed})"
        )


def main() -> None:
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Worker de monitoramento interrompido")


if __name__ == "__main__":
    main()
