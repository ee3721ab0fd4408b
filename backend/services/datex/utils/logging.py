"""
Thread-local diagnostic logging for DATEX II extraction.

Diagnostics (queue overflow, read errors, debug traces) never share the
primary output stream: log() writes to standard error and, when one is set,
to a thread-local log file. Each API request (thread) can therefore keep its
own log without passing file handles around.

Usage:
    from services.datex.utils.logging import log, set_log_file, close_log_file

    log_file = open("extraction.log", "w")
    set_log_file(log_file)
    try:
        log("[STREAM] Processing feed...")
    finally:
        close_log_file()
"""

import sys
import threading
from typing import Optional, TextIO


# Thread-local storage for log file
_thread_local = threading.local()

# When False, console output is suppressed (log files still receive lines)
_console_enabled = True


def set_console_logging(enabled: bool) -> None:
    """Enable or disable the stderr half of log()."""
    global _console_enabled
    _console_enabled = enabled


def log(message: str) -> None:
    """
    Log a message to standard error and the thread-local log file.

    Args:
        message: Message to log (newline automatically appended)
    """
    if _console_enabled:
        print(message, file=sys.stderr)
    log_file = getattr(_thread_local, 'log_file', None)
    if log_file:
        try:
            log_file.write(message + "\n")
            log_file.flush()
        except (OSError, ValueError):
            # Closed or unavailable log file must not break extraction
            pass


def debug_log(message: str, debug: bool = False) -> None:
    """[STREAM]-prefixed trace, emitted only when debug is on."""
    if debug:
        log(f"[STREAM] {message}")


def set_log_file(log_file: Optional[TextIO]) -> None:
    """
    Set the log file for the current thread.

    Args:
        log_file: File object to write logs to, or None to disable file logging
    """
    _thread_local.log_file = log_file


def close_log_file() -> None:
    """
    Close and clear the thread-local log file if one is open.

    Safe to call multiple times; meant for a finally block.
    """
    log_file = getattr(_thread_local, 'log_file', None)
    if log_file:
        set_log_file(None)
        try:
            log_file.close()
        except OSError:
            pass

