from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Signal

_LOG = logging.getLogger(__name__)


class UpdateScheduler(QObject):
    """Runs an update callback now, or once after edits settle.

    Only one run is ever pending: every request stops the timer first, so a
    debounced request restarts the delay and an immediate one supersedes it.
    """

    cycleRan = Signal(str)  # reason: immediate | debounced

    DEFAULT_DELAY_MS = 500

    def __init__(self, run_cycle: Callable[[], None], delay_ms: int = DEFAULT_DELAY_MS, parent=None):
        super().__init__(parent)
        self._run_cycle = run_cycle
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._flush_debounced_request)
        self.set_delay(delay_ms)

    def delay_ms(self) -> int:
        return int(self._timer.interval())

    def set_delay(self, delay_ms: int) -> None:
        try:
            delay = int(delay_ms)
        except (TypeError, ValueError):
            delay = self.DEFAULT_DELAY_MS
        self._timer.setInterval(max(0, delay))

    def schedule(self, immediate: bool = False) -> None:
        self._timer.stop()
        if immediate:
            self._run("immediate")
            return
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def _flush_debounced_request(self) -> None:
        self._run("debounced")

    def _run(self, reason: str) -> None:
        _LOG.debug("Update cycle (%s)", reason)
        self._run_cycle()
        self.cycleRan.emit(reason)
