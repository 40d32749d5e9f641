"""Small helpers shared by the pipeline driver."""

import logging
import time
from contextlib import contextmanager

__all__ = ["PipelineTimer"]


class PipelineTimer:
    """Simple helper to time major sections of the analysis pipeline."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self._start = time.perf_counter()
        self._sections: list[tuple[str, float]] = []

    @contextmanager
    def section(self, name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self._sections.append((name, duration))
            self.logger.info("⏱️ %s took %.2f s", name, duration)

    @property
    def sections(self) -> list[tuple[str, float]]:
        return list(self._sections)

    def report(self):
        if not self._sections:
            return
        total = time.perf_counter() - self._start
        lines = [f"Pipeline timing summary (total {total:.2f} s):"]
        lines.extend(f"  • {name}: {duration:.2f} s" for name, duration in self._sections)
        self.logger.info("\n".join(lines))
