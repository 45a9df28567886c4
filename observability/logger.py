"""
Observability Layer — Structured event logging & latency metrics.

Responsibility:
- Emit one JSON line per domain event (model call, confirmation, dispatch)
- Measure latency of outbound calls and data operations
- Carry session_id / trace_id so a whole turn can be correlated

Domain events go through here; plain diagnostics use module loggers.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

logger = logging.getLogger("observability")


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return str(value)


class Observability:
    """Structured logger bound to one session and one trace."""

    def __init__(self, session_id: str | None = None, trace_id: str | None = None):
        self.session_id = session_id or "anonymous"
        self.trace_id = trace_id or uuid.uuid4().hex

    def log_event(self, event_type: str, payload: dict[str, Any], level: str = "INFO") -> None:
        """Log a structured event as a single JSON line."""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self.session_id,
            "trace_id": self.trace_id,
            "event": event_type,
            **payload,
        }
        log_method = getattr(logger, level.lower(), logger.info)
        log_method(json.dumps(entry, ensure_ascii=False, default=_json_default))

    @contextmanager
    def measure(self, operation: str, metadata: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """Time a block and log an `execution_metric` event.

        The yielded dict may be filled by the caller with extra fields
        (e.g. row counts) that are known only once the block finishes.
        """
        start_time = time.perf_counter()
        extra: dict[str, Any] = {}
        error: str | None = None
        try:
            yield extra
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.log_event(
                "execution_metric",
                {
                    "operation": operation,
                    "duration_ms": round(duration_ms, 2),
                    "success": error is None,
                    "error": error,
                    **(metadata or {}),
                    **extra,
                },
                level="INFO" if error is None else "WARNING",
            )

