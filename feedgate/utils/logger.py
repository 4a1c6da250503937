"""Structured logging for FeedGate.

Log entries are structlog event dicts. Everything logged while a policy check
runs carries that check's ``check_id``: ``check_scope()`` binds it through
``structlog.contextvars`` and unbinds it when the check ends, so ids never
leak into unrelated entries logged later in the same task.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import Processor


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: One JSON object per line; console rendering otherwise.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "feedgate") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def check_scope(check_id: str) -> Iterator[str]:
    """Bind ``check_id`` to every entry logged inside the block."""
    with structlog.contextvars.bound_contextvars(check_id=check_id):
        yield check_id


class CheckTimer:
    """Times one policy check and logs its outcome on exit.

    Call ``record()`` with the decision before leaving the block. A block left
    by an exception (cancellation included) is logged as aborted.
    """

    def __init__(self, logger: Any, package: str):
        self.logger = logger
        self.package = package
        self.allowed: Optional[bool] = None
        self.error: Optional[str] = None
        self._start = 0.0

    def record(self, decision: Any) -> None:
        self.allowed = decision.allowed
        self.error = decision.error

    def __enter__(self) -> "CheckTimer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        elapsed_ms = round((time.perf_counter() - self._start) * 1000, 2)
        if exc_type is not None:
            self.logger.warning(
                "Policy check aborted",
                package=self.package,
                elapsed_ms=elapsed_ms,
                error_type=exc_type.__name__,
            )
        elif self.allowed:
            self.logger.debug("Package allowed", package=self.package, elapsed_ms=elapsed_ms)
        else:
            self.logger.info(
                "Package denied",
                package=self.package,
                elapsed_ms=elapsed_ms,
                error=self.error,
            )


# Defaults until main.py reconfigures from the environment
configure_logging()
