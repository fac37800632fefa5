"""Logging setup: readable console output plus JSON files for log shipping."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from bazaar.config import Settings, settings as default_settings

SERVICE_NAME = "bazaar"

# Client libraries that log every request at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "apscheduler.executors.default")


class MarketplaceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON records tagged with the service name and source location."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["service"] = SERVICE_NAME
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["source"] = f"{record.module}.{record.funcName}:{record.lineno}"


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    config: Settings = default_settings,
    base_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure the root logger.

    Console output is always on. When ``config.log_to_file`` is set, every
    record also goes to ``logs/app.log`` and errors to ``logs/error.log``,
    both as one JSON object per line.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"))
    root.addHandler(console)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if config.log_to_file:
        logs_dir = Path(base_dir or Path.cwd()) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        formatter = MarketplaceJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        root.addHandler(_file_handler(logs_dir / "app.log", logging.DEBUG, formatter))
        root.addHandler(_file_handler(logs_dir / "error.log", logging.ERROR, formatter))

    return root


class ContextLogger(logging.LoggerAdapter):
    """Attaches fixed context (run id, order id, ...) to every record.

    The context becomes top-level keys in the JSON files and a
    ``[key=value]`` prefix on the console message.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        if self.extra:
            prefix = " ".join(f"{key}={value}" for key, value in self.extra.items())
            msg = f"[{prefix}] {msg}"
        return msg, kwargs


def get_logger(name: str, **context) -> ContextLogger:
    """Logger for ``name`` carrying ``context`` on every record."""
    return ContextLogger(logging.getLogger(name), context)
