"""Rich logging integration for ccStream.

Provides a Rich console handler that tags records with the request
correlation ID and highlights info-hashes and byte ranges.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class CorrelationRichHandler(RichHandler):
    """RichHandler with correlation ID support and stream-aware highlighting."""

    # Patterns colored in log messages: info-hashes, byte ranges, status codes
    HIGHLIGHT_PATTERNS: list[tuple[str, str]] = [
        (r"\b[0-9a-f]{40}\b", "magenta"),
        (r"\bbytes \d+-\d+/\d+\b", "bright_cyan"),
        (r"\b[2-5]\d\d\b(?= )", "yellow"),
    ]

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize RichHandler bound to stdout with markup enabled."""
        if console is None:
            console = Console(file=sys.stdout, markup=True, color_system="auto")
        kwargs.setdefault("markup", True)
        super().__init__(*args, console=console, **kwargs)

    def _highlight(self, message: str) -> str:
        # Escape brackets first so user data is never parsed as markup
        message = message.replace("[", r"\[")
        for pattern, style in self.HIGHLIGHT_PATTERNS:
            message = re.sub(
                pattern,
                lambda m, s=style: f"[{s}]{m.group(0)}[/{s}]",
                message,
            )
        return message

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record with correlation ID prefix and highlighting."""
        try:
            if not hasattr(record, "correlation_id"):
                from ccstream.utils.logging_config import correlation_id

                record.correlation_id = correlation_id.get() or "no-correlation-id"

            message = self._highlight(record.getMessage())
            corr = record.correlation_id
            if corr and corr != "no-correlation-id":
                message = f"[dim]{corr[:8]}[/dim] {message}"
            record.msg = message
            record.args = ()
            super().emit(record)
        except Exception:
            self.handleError(record)


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup from text for file logging."""
    return re.sub(r"(?<!\\)\[/?[^\]]+\]", "", text).replace(r"\[", "[")


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks

    Returns:
        Configured RichHandler instance

    """
    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
    )
