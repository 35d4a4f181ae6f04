import logging
import json
import sys
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional

from sefaz_status.core.config import settings

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs', 'message',
    'pathname', 'process', 'processName', 'relativeCreated', 'thread',
    'threadName', 'exc_info', 'exc_text', 'stack_info', 'taskName',
}


class JSONFormatter(logging.Formatter):
    """
    Formatter que serializa cada registro de log como uma linha JSON.
    Campos passados em extra={} (ex.: state, latency_ms) entram no objeto.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            log_obj[key] = value

        return json.dumps(log_obj, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """
    Configura o root logger para JSON em stdout e em arquivo diário.

    Logs são salvos em:
    - Console: stdout (formato JSON)
    - Arquivo: <LOG_DIR>/monitor_YYYYMMDD.log (um arquivo por dia)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = JSONFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logs_dir = Path(log_dir or settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_filename = logs_dir / f"monitor_{datetime.now().strftime('%Y%m%d')}.log"

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"📝 Logs sendo salvos em: {log_filename.absolute()}")

    # Bibliotecas HTTP são muito verbosas em INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
