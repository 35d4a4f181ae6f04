"""
Instâncias compartilhadas do processo: ciclo, armazenamento e fan-out.
"""
import logging
from typing import Optional

from sefaz_status.core.config import settings
from sefaz_status.services.broadcaster import RecordBroadcaster
from sefaz_status.services.database_service import get_record_sink
from sefaz_status.services.monitor.cycle import MonitorCycle, build_monitor_config

logger = logging.getLogger(__name__)

_broadcaster: Optional[RecordBroadcaster] = None
_monitor_cycle: Optional[MonitorCycle] = None


def get_broadcaster() -> RecordBroadcaster:
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = RecordBroadcaster()
    return _broadcaster


def get_monitor_cycle() -> MonitorCycle:
    """
    Retorna o MonitorCycle singleton, montado a partir das variáveis de
    ambiente na primeira chamada.
    """
    global _monitor_cycle
    if _monitor_cycle is None:
        config = build_monitor_config(settings)
        _monitor_cycle = MonitorCycle(
            config=config,
            sink=get_record_sink(),
            broadcaster=get_broadcaster(),
        )
        logger.info(
            f"🛰️ Monitor configurado: endpoint crítico {config.critical_endpoint.state}/"
            f"{config.critical_endpoint.document_type.value} -> {config.critical_endpoint.url}"
        )
    return _monitor_cycle
