"""
Disparo periódico do ciclo de monitoramento.
"""

import asyncio
import logging
from typing import Optional

from .cycle import MonitorCycle
from .errors import PortalLayoutError

logger = logging.getLogger(__name__)

LOG_ALIVE_EVERY_N_CYCLES = 20  # ~5min com cadência de 15s


class CycleScheduler:
    """
    Roda MonitorCycle.run() a cada `interval` segundos em uma task asyncio.
    Falha de um ciclo não interrompe o loop; o próximo ciclo tenta de novo.
    """

    def __init__(self, cycle: MonitorCycle, interval: float = 15.0):
        self.cycle = cycle
        self.interval = interval
        self.cycles_run = 0
        self.cycles_failed = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval <= 0:
            logger.info("⏸️ Agendador desabilitado (CYCLE_INTERVAL_SECONDS <= 0)")
            return
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run_forever(), name="sefaz-monitor-cycle")
        logger.info(f"⏱️ Agendador iniciado: ciclo a cada {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("⏹️ Agendador parado")

    async def run_once(self) -> bool:
        """Roda um ciclo e registra o resultado. Retorna True em caso de sucesso."""
        self.cycles_run += 1
        try:
            await self.cycle.run()
            return True
        except PortalLayoutError as e:
            self.cycles_failed += 1
            logger.warning(f"⚠️ Ciclo sem dados do portal ({e.reason}): {e}")
        except Exception as e:
            self.cycles_failed += 1
            logger.exception("❌ Ciclo de monitoramento falhou: %s", e)
        return False

    async def run_forever(self) -> None:
        while True:
            await self.run_once()
            if self.cycles_run % LOG_ALIVE_EVERY_N_CYCLES == 0:
                logger.info(
                    "Agendador ativo (ciclos=%s, falhas=%s)",
                    self.cycles_run,
                    self.cycles_failed,
                )
            await asyncio.sleep(self.interval)
