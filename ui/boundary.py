"""
Supervisory wrapper for the render path
"""

import functools
from typing import Callable, Optional

from core.logging_config import get_logger


class RenderBoundary:
    """Catches exceptions raised while rendering and switches to a fallback

    Once tripped, wrapped render callbacks are skipped until reset() is
    called. The session core keeps running underneath either way.
    """

    def __init__(self, on_error: Optional[Callable[[Exception], None]] = None):
        self.logger = get_logger(__name__)
        self.on_error = on_error
        self.has_error = False
        self.error: Optional[Exception] = None
        self.trip_count = 0

    def wrap(self, render: Callable) -> Callable:
        @functools.wraps(render)
        def guarded(*args, **kwargs):
            if self.has_error:
                return None
            try:
                return render(*args, **kwargs)
            except Exception as e:
                self._trip(e)
                return None

        return guarded

    def _trip(self, error: Exception):
        self.has_error = True
        self.error = error
        self.trip_count += 1
        self.logger.error(f"Render failure caught by boundary: {error}", exc_info=error)

        if self.on_error:
            try:
                self.on_error(error)
            except Exception:
                self.logger.exception("Error boundary fallback failed")

    def reset(self):
        """Resume rendering after a failure"""
        self.has_error = False
        self.error = None
