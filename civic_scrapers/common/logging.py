"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from civic_scrapers.common.constants import JSON_LOG_FIELDS
from civic_scrapers.common.fs import ensure_dir
from civic_scrapers.common.time_utils import utc_timestamp_iso

DEFAULT_LOGGER_NAME = "civic_scrapers"
LEVEL_ALIASES = {"WARN": "WARNING", "VERBOSE": "DEBUG", "SILENT": "CRITICAL"}


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            if field in payload:
                continue
            payload[field] = getattr(record, field, None)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def normalise_level(level: str) -> str:
    upper = level.upper()
    return LEVEL_ALIASES.get(upper, upper)


def build_logger(run_id: str, data_dir: Path, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(f"{DEFAULT_LOGGER_NAME}.{run_id}")
    logger.setLevel(normalise_level(level))
    logger.handlers.clear()
    logger.propagate = False

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    logger.addHandler(stream)

    log_path = data_dir / "run_meta" / f"{run_id}.log.jsonl"
    ensure_dir(log_path.parent)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(JsonLineFormatter())
    logger.addHandler(file_handler)

    return logger


def default_logger() -> logging.Logger:
    return logging.getLogger(DEFAULT_LOGGER_NAME)


def log_event(logger: logging.Logger, message: str, *, level: int = logging.INFO, **event_fields: Any) -> None:
    logger.log(level, message, extra=event_fields)
