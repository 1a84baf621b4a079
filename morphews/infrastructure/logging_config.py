"""
LOGGING
=======

Produção: uma linha JSON por evento (stdout), pronta para o coletor.
Desenvolvimento: texto legível no terminal.

Campos de contexto (organization_id, sale_id, job...) entram via
`extra={"context": {...}}` e viram chaves no JSON.
"""

import json
import logging
import sys
from typing import Any

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "sqlalchemy.engine", "aiosqlite")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_record.update(context)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str, ensure_ascii=False)


def setup_logging(level: int = logging.INFO, json_format: bool = True) -> None:
    """Substitui os handlers do logger raiz (chamado no startup da API)."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # uvicorn propaga para o raiz
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = []

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
