from __future__ import annotations

import asyncio
import logging
import sys
from types import TracebackType
from typing import Any, Dict, Optional, Type


logger = logging.getLogger("waifu-backend.lifecycle")


def log_uncaught_exception(
    exc_type: Type[BaseException],
    exc: BaseException,
    tb: Optional[TracebackType],
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical("Uncaught exception, exiting", exc_info=(exc_type, exc, tb))


def install_excepthook() -> None:
    """Log any uncaught exception before the interpreter exits non-zero."""
    sys.excepthook = log_uncaught_exception


def handle_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    exc = context.get("exception")
    message = context.get("message", "Unhandled error in event loop")
    if exc is not None:
        logger.critical("%s", message, exc_info=exc)
    else:
        logger.critical("%s: %s", message, context)


def install_loop_exception_handler(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    (loop or asyncio.get_running_loop()).set_exception_handler(handle_loop_exception)


def report_task_failure(task: asyncio.Task) -> None:
    """Done-callback that logs a background task which died unexpectedly."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.critical("Background task %s crashed", task.get_name(), exc_info=exc)
