"""
Periodic import scheduler.

Runs a full import cycle immediately, then again interval_seconds after each
cycle finishes. SIGINT/SIGTERM stop the loop once the current cycle is done.
"""

import signal
import threading

from logistics_sync.core.models import SyncMode
from logistics_sync.observability.logger import get_logger

from .coordinator import RunCoordinator

logger = get_logger(__name__)


class ImportScheduler:
    """
    Fixed-delay timer around RunCoordinator.run_all().

    Usage:
        scheduler = ImportScheduler(coordinator, interval_seconds=600)
        scheduler.install_signal_handlers()
        scheduler.run_forever()
    """

    def __init__(
        self,
        coordinator: RunCoordinator,
        interval_seconds: float | None = None,
        mode: SyncMode | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            coordinator: Coordinator executing the cycles
            interval_seconds: Delay between cycles (defaults to the settings' interval)
            mode: Run mode of every cycle (defaults to the settings' mode)
        """
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds or coordinator.settings.interval_seconds
        self.mode = mode
        self.cycles = 0
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to stop after the current cycle."""
        self._stop_event.set()

    def _signal_handler(self, signum, frame):  # type: ignore[no-untyped-def]
        """
        Handle shutdown signals (SIGINT, SIGTERM).

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name} signal, stopping after the current cycle...")
        self.stop()

    def install_signal_handlers(self) -> None:
        """Register SIGINT/SIGTERM handlers (main thread only)."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def run_forever(self, max_cycles: int | None = None) -> int:
        """
        Run cycles until stopped.

        Args:
            max_cycles: Stop after this many cycles (None runs until stopped)

        Returns:
            Number of cycles run
        """
        logger.info(f"Scheduler started, interval {self.interval_seconds}s")
        while not self.stopped:
            self.coordinator.run_all(self.mode)
            self.cycles += 1
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            # Returns early when stop() is called
            self._stop_event.wait(self.interval_seconds)

        logger.info(f"Scheduler stopped after {self.cycles} cycles")
        return self.cycles
