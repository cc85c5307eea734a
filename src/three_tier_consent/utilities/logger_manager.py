"""Logger manager with colored console output, structured records and counters.

Every pipeline component receives a ``LoggerManager`` and logs through the
``CustomLogger`` it hands out. Context attached with ``context(**kwargs)`` is
kept in a context variable, so concurrent runs of the pipeline each keep their
own ``action_id``/``result_id`` stamps.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import datetime
from enum import Enum
import json
import logging
from logging import Handler, Logger, LogRecord, getLevelName
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
import threading
from typing import Any, ClassVar

import colorlog

_LOG_CONTEXT: ContextVar[dict[str, Any]] = ContextVar(
    "three_tier_consent_log_context", default={}
)


class MetricType(Enum):
    """Enum for supported metric types."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass
class LoggerConfig:
    """Configuration for LoggerManager."""

    log_dir: Path | str | None = None
    log_level: str = "INFO"
    log_file_name: str = "consent_pipeline.log"
    max_file_size_mb: int = 10
    backup_count: int = 3
    structured_logging: bool = False
    telemetry_enabled: bool = False
    log_colors: dict[str, str] | None = None

    DEFAULT_LOG_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "red,bg_white",
    }

    def __post_init__(self) -> None:
        """Normalize and validate configuration."""
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).resolve()
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_level = self.log_level.upper()
        self.log_colors = self.log_colors or self.DEFAULT_LOG_COLORS


class ContextFilter(logging.Filter):
    """Copies the active logging context onto each record."""

    def filter(self, record: LogRecord) -> bool:
        active = _LOG_CONTEXT.get()
        explicit = getattr(record, "context", None)
        merged = dict(active)
        if isinstance(explicit, Mapping):
            merged.update(explicit)
        record.context = merged
        record.context_text = (
            " ".join(f"{key}={value}" for key, value in merged.items())
            if merged
            else ""
        )
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(
                record.created, tz=datetime.UTC
            ).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
            "context": getattr(record, "context", {}),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerSettings:
    """Builds the console and file handlers described by a LoggerConfig."""

    _PLAIN_FORMAT = "%(asctime)s - [%(levelname)s] %(name)s: %(message)s %(context_text)s"

    def __init__(self, config: LoggerConfig) -> None:
        self.config = config
        self._file_handler: RotatingFileHandler | None = None

    def get_handlers(self) -> tuple[Handler, Handler | None]:
        """Return console and (optional) file handlers."""
        return self._get_console_handler(), self._get_file_handler()

    def _get_console_handler(self) -> Handler:
        handler = colorlog.StreamHandler(sys.stderr)
        formatter: logging.Formatter = (
            StructuredFormatter()
            if self.config.structured_logging
            else colorlog.ColoredFormatter(
                "%(log_color)s" + self._PLAIN_FORMAT,
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors=self.config.log_colors,
            )
        )
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        return handler

    def _get_file_handler(self) -> RotatingFileHandler | None:
        if self.config.log_dir is None:
            return None
        file_path = Path(self.config.log_dir) / self.config.log_file_name
        try:
            handler = RotatingFileHandler(
                file_path,
                maxBytes=self.config.max_file_size_mb * 1024 * 1024,
                backupCount=self.config.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            print(f"Failed to create RotatingFileHandler: {e}", file=sys.stderr)
            return None
        formatter = (
            StructuredFormatter()
            if self.config.structured_logging
            else logging.Formatter(self._PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        self._file_handler = handler
        return handler


class CustomLogger:
    """Logger wrapper exposing the manager's context scoping."""

    def __init__(self, logger: Logger, manager: LoggerManager) -> None:
        self.logger = logger
        self.manager = manager

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.critical(msg, *args, **kwargs)

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.log(level, msg, *args, **kwargs)

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[CustomLogger]:
        """Delegate to LoggerManager's context method."""
        with self.manager.context(**context_kwargs):
            yield self


class LoggerManager:
    """Owns one configured stdlib logger plus an in-process counter store."""

    def __init__(
        self,
        name: str | LoggerConfig = "three_tier_consent",
        config: LoggerConfig | None = None,
    ) -> None:
        if isinstance(name, LoggerConfig):
            config = name
            name = "three_tier_consent"
        self.name = name
        self.config = config or LoggerConfig()
        self.settings = LoggerSettings(self.config)
        self._telemetry_metrics: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"type": MetricType.COUNTER.value, "value": 0, "tags": {}}
        )
        self._metrics_lock = threading.Lock()
        self._logger = self._configure_logger()

    def get_logger(self) -> CustomLogger:
        return CustomLogger(self._logger, self)

    def child(self, suffix: str) -> Logger:
        """Return a configured child logger, e.g. for operational alerts."""
        return self._logger.getChild(suffix)

    def _configure_logger(self) -> Logger:
        logger = logging.getLogger(self.name)
        if getattr(logger, "_is_configured", False):
            return logger

        logger.setLevel(getLevelName(self.config.log_level))
        console_handler, file_handler = self.settings.get_handlers()
        logger.addHandler(console_handler)
        if file_handler:
            logger.addHandler(file_handler)

        logger.propagate = False
        logger._is_configured = True  # type: ignore[attr-defined]
        return logger

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[Logger]:
        """Attach ``context_kwargs`` to every record logged inside the block."""
        merged = {**_LOG_CONTEXT.get(), **context_kwargs}
        token = _LOG_CONTEXT.set(merged)
        try:
            yield self._logger
        finally:
            _LOG_CONTEXT.reset(token)

    def log_metric(
        self,
        metric_name: str,
        value: int | float = 1,
        metric_type: MetricType = MetricType.COUNTER,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Record a counter increment or gauge value when telemetry is on."""
        if not self.config.telemetry_enabled:
            return
        tags_dict: dict[str, str] = dict(tags or {})
        with self._metrics_lock:
            metric = self._telemetry_metrics[metric_name]
            metric["type"] = metric_type.value
            metric["tags"] = tags_dict
            if metric_type == MetricType.COUNTER:
                metric["value"] += value
            else:
                metric["value"] = value
        self._logger.debug(
            f"Metric recorded: {metric_name} = {value}",
            extra={"context": {"metric_name": metric_name, "tags": tags_dict}},
        )

    def get_metrics(self) -> dict[str, dict[str, Any]]:
        with self._metrics_lock:
            return {name: dict(data) for name, data in self._telemetry_metrics.items()}

    def reset_metrics(self) -> None:
        with self._metrics_lock:
            self._telemetry_metrics.clear()

    def flush(self) -> None:
        """Flush all handlers to ensure logs are written."""
        for handler in self._logger.handlers:
            handler.flush()
