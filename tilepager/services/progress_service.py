"""
progress_service.py - Progress channel used by long map buffer operations

The map buffer calls ``report(done, total)`` followed by
``pump_pending_events()`` at a throttled cadence while it flushes, and
``close()`` once the save pass is over.
Implementations must not call back into the map buffer from any of them;
the buffer is mid-iteration when they run.
"""

import logging

from PySide6.QtCore import QCoreApplication, QObject, Signal

log = logging.getLogger(__name__)


class ProgressReporter(object):
    """No-op reporter."""

    def report(self, done: int, total: int) -> None:
        pass

    def pump_pending_events(self) -> None:
        pass

    def close(self) -> None:
        pass


class LogProgressReporter(ProgressReporter):

    def __init__(self, message: str = "Please wait as the map saves"):
        self.message = message
        self.last = None

    def report(self, done: int, total: int) -> None:
        self.last = (done, total)
        log.info(f"{self.message} [{done}/{total}]")


class _ProgressSignals(QObject):
    progress = Signal(int, int)
    finished = Signal()


class QtProgressReporter(ProgressReporter):
    """
    Forwards progress to a Qt front end.

    ``progress`` is a ``Signal(int, int)`` that widgets can connect to,
    ``finished`` fires when the save is done.
    Pumping runs ``QCoreApplication.processEvents()`` so the UI keeps
    repainting during a long save.
    """

    def __init__(self, app=None):
        self.app = app or QCoreApplication.instance()
        self.comm = _ProgressSignals()
        self.progress = self.comm.progress
        self.finished = self.comm.finished

    def report(self, done: int, total: int) -> None:
        self.progress.emit(done, total)

    def pump_pending_events(self) -> None:
        if self.app is not None:
            self.app.processEvents()

    def close(self) -> None:
        self.finished.emit()
