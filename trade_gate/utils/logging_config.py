"""
Logging Configuration
=====================

Console + rotating file handlers, optional JSON file format.

Module code only ever does ``logger = logging.getLogger(__name__)``;
the host process calls setup_logging() once at startup.
"""
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON formatter for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        if hasattr(record, 'symbol'):
            log_data['symbol'] = record.symbol
        return json.dumps(log_data)


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[str] = 'logs',
    app_name: str = 'trade_gate',
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    json_logs: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the 'trade_gate' logger tree.

    Args:
        level: DEBUG/INFO/WARNING/... (default: $TRADE_GATE_LOG_LEVEL or INFO)
        log_dir: Directory for log files (None disables file logging)
        app_name: Log file base name
        max_file_size_mb: Max size per log file before rotation
        backup_count: Number of rotated files to keep
        json_logs: Use JSON format for file logs
        console: Enable console output

    Returns:
        The configured package logger
    """
    level = level or os.getenv('TRADE_GATE_LOG_LEVEL', 'INFO')

    logger = logging.getLogger('trade_gate')
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s',
            datefmt='%H:%M:%S',
        ))
        logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / f'{app_name}.log',
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8',
        )
        if json_logs:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)-8s | %(name)-32s | %(funcName)-20s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
            ))
        logger.addHandler(file_handler)

    logger.debug(f"Logging configured: level={level}, dir={log_dir}, json={json_logs}")
    return logger
