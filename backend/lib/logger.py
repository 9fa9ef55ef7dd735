"""
Structured Logging for the Dialogue Engine Host

Terminal-friendly log lines for the API: colored levels, an icon per engine
area, banners for startup/shutdown, and one-line helpers for the events the
host cares about (request timing, pattern selection, outcomes, phase
transitions).
"""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

_RESET = '\033[0m'
_BOLD = '\033[1m'
_GRAY = '\033[90m'
_BANNER = '\033[94m'

# ANSI color per level name
_LEVEL_STYLE = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}

_LEVEL_ICON = {
    'DEBUG': '🔍',
    'INFO': '•',
    'WARNING': '⚠️',
    'ERROR': '❌',
    'CRITICAL': '🚨',
}

# Keyed by the last component of the logger name
_AREA_ICON = {
    'question_selector': '🎯',
    'pattern_scorer': '🧮',
    'effectiveness_learner': '📈',
    'flow_manager': '🔀',
    'session_manager': '💾',
    'engine': '🧭',
    'main': '🌐',
}


def _colors_enabled(requested: bool) -> bool:
    return requested and sys.stdout.isatty() and os.getenv("NO_COLOR") is None


class DialogueLogFormatter(logging.Formatter):
    """One line per record: time, area icon, level, logger name, message."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = _colors_enabled(use_colors)

    def _paint(self, text: str, style: str) -> str:
        return f"{style}{text}{_RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        area = record.name.rsplit('.', 1)[-1]
        icon = _AREA_ICON.get(area, _LEVEL_ICON.get(record.levelname, '•'))
        clock = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        line = " ".join((
            self._paint(f"[{clock}]", _GRAY),
            icon,
            self._paint(f"{record.levelname:<8}", _LEVEL_STYLE.get(record.levelname, '')),
            self._paint(record.name, _BOLD),
            "|",
            record.getMessage(),
        ))
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger:
    """
    Wrapper around a stdlib logger that appends key/value payloads.

    Payload entries are rendered one per line under the message so session
    ids, patterns and scores stay readable in a scrolling terminal.
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    @staticmethod
    def _render(data: Dict[str, Any]) -> str:
        return "\n".join(f"  {key}: {value}" for key, value in data.items())

    def _emit(self, level: int, message: str, data: Optional[Dict[str, Any]] = None, **kwargs):
        if data:
            message = f"{message}\n{self._render(data)}"
        self.logger.log(level, message, **kwargs)

    def section(self, title: str, data: Optional[Dict[str, Any]] = None):
        """Banner written straight to stdout (startup, shutdown)."""
        style = _BANNER if _colors_enabled(True) else ''
        end = _RESET if style else ''
        rule = "=" * 80
        lines = [f"\n{style}{rule}{end}", f"{style}📋 {title.upper()}{end}"]
        if data:
            lines.append(self._render(data))
        lines.append(f"{style}{rule}{end}\n")
        print("\n".join(lines))

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._emit(logging.DEBUG, message, data)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, message, data)

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._emit(logging.WARNING, message, data)

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        if error is not None:
            message = f"{message} ({type(error).__name__}: {error})"
        self._emit(logging.ERROR, message, data, exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, f"✅ {message}", data)

    def request(self, method: str, path: str, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        payload = dict(data or {})
        if session_id:
            payload["session_id"] = session_id
        self._emit(logging.INFO, f"📥 {method} {path}", payload)

    def response(self, status: int, path: str, duration: Optional[float] = None, data: Optional[Dict[str, Any]] = None):
        timing = f" in {duration * 1000:.1f}ms" if duration is not None else ""
        self._emit(logging.INFO, f"📤 {status} {path}{timing}", data)

    def selection(self, session_id: str, pattern: str, confidence: float, alternatives: Iterable[str] = ()):
        """Pattern chosen for a turn."""
        self._emit(logging.INFO, f"🎯 Session {session_id}: asking {pattern} (confidence {confidence:.2f})", {
            "alternatives": ", ".join(alternatives) or "none",
        })

    def outcome(self, session_id: str, pattern: str, turn_count: int, effectiveness: float):
        self._emit(
            logging.INFO,
            f"📈 Session {session_id}: turn {turn_count} with {pattern}, effectiveness now {effectiveness:.2f}",
        )

    def transition(self, session_id: str, from_phase: str, to_phase: str, success: bool, warnings: Iterable[str] = ()):
        warnings = list(warnings)
        if success:
            self._emit(logging.INFO, f"🔀 Session {session_id}: {from_phase} -> {to_phase}",
                       {"warnings": "; ".join(warnings)} if warnings else None)
        else:
            self._emit(logging.WARNING, f"🚫 Session {session_id}: {from_phase} -> {to_phase} rejected",
                       {"reason": "; ".join(warnings) or "unknown"})


def setup_logging(level: Optional[int] = None, use_colors: bool = True) -> logging.Logger:
    """
    Route every logger through one colored stdout handler.

    The level defaults to the LOG_LEVEL environment variable (INFO when unset).
    """
    if level is None:
        level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(DialogueLogFormatter(use_colors=use_colors))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Third-party chatter (supabase uses httpx under the hood)
    for name in ('asyncio', 'httpx', 'httpcore', 'hpack', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
