"""
Logging for Vekkam.

Everything goes through one stdlib logger, "Vekkam", with up to three
handlers:

- logs/vekkam.log       application log (INFO, or DEBUG in debug mode)
- logs/debug_flow.txt   per-process trace of every message, rewritten on start
- stderr                only when DEBUG=true

Modules import the helpers instead of touching logging directly:

    from vekkam.logging_config import debug_log, info, warning, error, Timer

Messages start with a component tag, e.g. "[ORCHESTRATOR] Primary failed".
Directories that cannot be written to simply get no file handler.
"""

import logging
import sys
import time

from vekkam.config import DEBUG_LOG_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

FLOW_FORMAT = "[%(asctime)s.%(msecs)03d] %(levelname)-8s %(message)s"


def _file_handler(path, mode: str, level: int, fmt: str) -> logging.Handler | None:
    try:
        handler = logging.FileHandler(path, mode=mode, encoding='utf-8')
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT))
    return handler


def _build_logger() -> tuple[logging.Logger, logging.Handler | None]:
    """Attach handlers once; re-imports reuse the configured logger."""
    logger = logging.getLogger('Vekkam')
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger, None

    app_handler = _file_handler(LOG_FILE, 'a', logging.DEBUG if DEBUG_MODE else logging.INFO, LOG_FORMAT)
    if app_handler:
        logger.addHandler(app_handler)

    flow_handler = _file_handler(DEBUG_LOG_FILE, 'w', logging.DEBUG, FLOW_FORMAT)
    if flow_handler:
        logger.addHandler(flow_handler)
        logger.debug(f"=== Vekkam debug flow (DEBUG_MODE={DEBUG_MODE}) ===")

    if DEBUG_MODE:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console)

    return logger, flow_handler


_logger, _flow_handler = _build_logger()


# =============================================================================
# Helpers
# =============================================================================

def debug_log(message: str):
    """Trace-level message: always in debug_flow.txt, elsewhere only in debug mode."""
    _logger.debug(message)


def info(message: str):
    _logger.info(message)


def warning(message: str):
    """Fallbacks and dropped work (primary failure, parse fallback, failed chunk)."""
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error.

    Args:
        message: The error message
        exc_info: Attach the active traceback (honoured only in debug mode)
    """
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def critical(message: str, exc_info: bool = True):
    _logger.critical(message, exc_info=exc_info and DEBUG_MODE)


def debug_timing(operation: str, elapsed_seconds: float):
    """
    Log how long an operation took, in ms, seconds or minutes.

    Example:
        start = time.time()
        result = orchestrator.generate(request)
        debug_timing("[QuizGenerator] Quiz generation", time.time() - start)
    """
    if elapsed_seconds < 1:
        elapsed = f"{elapsed_seconds * 1000:.0f} ms"
    elif elapsed_seconds < 60:
        elapsed = f"{elapsed_seconds:.2f}s"
    else:
        elapsed = f"{elapsed_seconds / 60:.1f}m"
    debug_log(f"{operation} took {elapsed}")


def close_debug_log():
    """Close the trace file at shutdown; the other handlers keep working."""
    global _flow_handler
    if _flow_handler is None:
        return
    _logger.removeHandler(_flow_handler)
    _flow_handler.close()
    _flow_handler = None


class Timer:
    """
    Times a block and logs the duration.

    Usage:
        with Timer("ProcessSyllabus") as timer:
            guide = synthesizer.synthesize(text)
        print(timer.duration_ms)
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.duration_ms: float | None = None
        self._start = 0.0

    def __enter__(self):
        if self.auto_log:
            debug_log(f"[TIMER] {self.operation_name} started")
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self._start
        self.duration_ms = elapsed * 1000
        if self.auto_log:
            debug_timing(f"[TIMER] {self.operation_name}", elapsed)
        return False


__all__ = [
    'debug_log',
    'debug_timing',
    'info',
    'warning',
    'error',
    'critical',
    'close_debug_log',
    'Timer',
    'DEBUG_MODE',
]
