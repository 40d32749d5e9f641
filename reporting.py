import logging
from typing import Any, Dict, List

__all__ = [
    "start_warning_capture",
    "get_captured_warnings",
    "build_summary",
]


class _WarningCapture(logging.Handler):
    """Logging handler that stores warning messages."""

    def __init__(self):
        super().__init__(level=logging.WARNING)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - simple
        self.messages.append(record.getMessage())


_warning_handler: _WarningCapture | None = None


def start_warning_capture() -> None:
    """Begin collecting warning messages from the root logger."""
    global _warning_handler
    if _warning_handler is None:
        _warning_handler = _WarningCapture()
        logging.getLogger().addHandler(_warning_handler)


def get_captured_warnings() -> List[str]:
    """Return and clear captured warning messages."""
    global _warning_handler
    if _warning_handler is None:
        return []
    logging.getLogger().removeHandler(_warning_handler)
    msgs = list(_warning_handler.messages)
    _warning_handler = None
    return msgs


def build_summary(result, cfg, warnings: List[str] | None = None) -> Dict[str, Any]:
    """Return a JSON-ready summary of a pipeline ``result``."""

    points = [
        {
            "index": p.index,
            "file": p.path.name,
            "date_key": p.key,
            "concentration": p.concentration,
            "rn_integral": p.rn_integral,
            "runtime_hours": p.runtime_hours,
            "fit_converged": p.fit_converged,
        }
        for p in result.points
    ]
    skipped = [
        {"index": s.index, "file": s.path.name, "reason": s.reason}
        for s in result.skipped
    ]
    return {
        "strategy": result.strategy,
        "n_files": result.n_files,
        "n_points": len(points),
        "n_fit_failures": sum(1 for p in result.points if not p.fit_converged),
        "peak_fit": dict(cfg.get("peak_fit", {})),
        "points": points,
        "skipped": skipped,
        "warnings": list(warnings or []),
    }
