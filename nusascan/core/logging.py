"""Logging setup with per-analysis request ids and a FlightLogger ring buffer for forensics."""

import logging
import sys
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from nusascan.core.config import get_config

FLIGHT_LOG_CAPACITY = 50_000
NO_REQUEST = "-"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Copied into tasks and provider threads (core.threads), so records from concurrent stages keep their request id.
_request_id: ContextVar[str] = ContextVar("nusascan_request_id", default=NO_REQUEST)

_flight_logger: "FlightLogger | None" = None


def current_request_id() -> str:
    return _request_id.get()


@contextmanager
def request_context(request_id: str) -> Iterator[str]:
    """Tag every record logged inside the block (including child tasks) with request_id."""
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


def _stamp(record: logging.LogRecord) -> None:
    if not hasattr(record, "request_id"):
        record.request_id = _request_id.get()


class RequestIdFilter(logging.Filter):
    """Adds record.request_id so LOG_FORMAT can render it on any handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        _stamp(record)
        return True


class FlightLogger(logging.Handler):
    """
    Ring buffer of the most recent records at every level, held in memory until dump().

    dump(label) writes the whole buffer; dump(label, request_id) writes only the
    records logged under that request, which keeps a degraded analysis readable
    when other requests were running at the same time.
    """

    def __init__(self, capacity: int = FLIGHT_LOG_CAPACITY, forensics_dir: str | Path | None = None) -> None:
        super().__init__(level=logging.DEBUG)
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)
        self._forensics_dir = Path(forensics_dir) if forensics_dir is not None else Path("logs") / "forensics"

    def emit(self, record: logging.LogRecord) -> None:
        _stamp(record)
        self._records.append(record)

    def records_for(self, request_id: str | None = None) -> list[logging.LogRecord]:
        if request_id is None:
            return list(self._records)
        return [r for r in self._records if getattr(r, "request_id", NO_REQUEST) == request_id]

    def dump(self, label: str, request_id: str | None = None) -> str:
        """Write buffered records to {forensics_dir}/{label}[_{request_id}]_{timestamp}.log; return the path."""
        self._forensics_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        parts = [label] + ([request_id] if request_id is not None else []) + [stamp]
        path = self._forensics_dir / ("_".join(parts) + ".log")
        fmt = self.formatter or logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        path.write_text("".join(fmt.format(r) + "\n" for r in self.records_for(request_id)))
        return str(path)

    def __len__(self) -> int:
        return len(self._records)


def get_flight_logger() -> FlightLogger | None:
    """The FlightLogger installed by setup_logging(), or None before it ran."""
    return _flight_logger


def setup_logging(level: str | None = None) -> FlightLogger:
    """
    Route all records through the root logger at DEBUG.

    The stderr console shows level (default: the configured log_level, WARNING
    unless set) and above; the FlightLogger keeps everything. Calling this again
    replaces the previous handlers.
    """
    global _flight_logger
    cfg = get_config()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    request_filter = RequestIdFilter()

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel((level or cfg.log_level).upper())
    console.setFormatter(formatter)
    console.addFilter(request_filter)
    root.addHandler(console)

    flight = FlightLogger(forensics_dir=cfg.forensics_dir)
    flight.setFormatter(formatter)
    flight.addFilter(request_filter)
    root.addHandler(flight)
    _flight_logger = flight
    return flight
