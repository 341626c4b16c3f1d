"""
School Admin console - Logging Configuration
Plain text for the terminal, JSON when the output is collected by a tool.

Logs go to stderr so that tables printed on stdout stay clean.
Tokens and passwords are never passed to the logger.
"""

import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar


# Context variables describing the signed-in actor
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
role_var: ContextVar[str] = ContextVar('role', default='')


def get_user_id() -> str:
    """Get current user ID from context"""
    return user_id_var.get() or ''


def set_user_id(user_id: Optional[Any]) -> None:
    """Set user ID in context"""
    user_id_var.set('' if user_id is None else str(user_id))


def get_role() -> str:
    """Get current role from context"""
    return role_var.get() or ''


def set_role(role: Optional[str]) -> None:
    """Set role in context"""
    role_var.set(role or '')


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging
    """

    _reserved = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'message', 'taskName', 'user_id', 'role'
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        user_id = get_user_id()
        if user_id:
            log_data["user_id"] = user_id

        role = get_role()
        if role:
            log_data["role"] = role

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        for key, value in record.__dict__.items():
            if key not in self._reserved and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextualFormatter(logging.Formatter):
    """
    Readable formatter that includes the signed-in user and role
    """

    def format(self, record: logging.LogRecord) -> str:
        record.user_id = get_user_id() or '-'
        record.role = get_role() or '-'
        return super().format(record)


class SchoolAdminLogger(logging.Logger):
    """
    Custom logger with convenience methods for structured logging
    """

    def log_request(self, method: str, path: str, status_code: Optional[int],
                    duration_ms: float, **kwargs) -> None:
        """Log an outbound API request"""
        level = logging.DEBUG if status_code is not None and status_code < 400 else logging.WARNING
        self.log(
            level,
            f"HTTP {method} {path} - {status_code if status_code is not None else 'no response'} "
            f"({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: str = None,
                       reason: str = None, **kwargs) -> None:
        """Log authentication events"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"Auth {event}: {'success' if success else 'failed'}" +
            (f" - {user_email}" if user_email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        """Log error with full context"""
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )


def _get_logger() -> SchoolAdminLogger:
    logging.setLoggerClass(SchoolAdminLogger)
    base = logging.getLogger("schooladmin")
    base.__class__ = SchoolAdminLogger  # Ensure it's our custom class
    return base


def setup_logging(level: str = "INFO", log_file: Optional[str] = None,
                  json_logs: bool = False) -> SchoolAdminLogger:
    """Configure the console logger"""
    log = _get_logger()
    log.setLevel(getattr(logging, level.upper(), logging.INFO))
    log.propagate = False

    log.handlers.clear()

    if json_logs:
        stream_formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = JSONFormatter()
    else:
        stream_formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | "
            "[%(user_id)s] [%(role)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log.level)
    console_handler.setFormatter(stream_formatter)
    log.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=1048576,  # 1MB
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        log.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    log.debug(
        "Logging initialized",
        extra={"log_level": level, "json_logging": json_logs}
    )

    return log


# Shared logger instance; handlers are attached by setup_logging()
logger: SchoolAdminLogger = _get_logger()


__all__ = [
    'logger',
    'setup_logging',
    'get_user_id',
    'set_user_id',
    'get_role',
    'set_role',
    'JSONFormatter',
    'ContextualFormatter',
    'SchoolAdminLogger',
]
