"""
Run coordinator: owns the run state of every record kind.

At most one run per kind executes at a time. Manual triggers and the scheduler
go through the same guard; a trigger that finds its kind running is dropped.
"""

import gc
import threading
import time
from enum import Enum
from pathlib import Path

from logistics_sync.config import ImportSettings
from logistics_sync.core.kinds import DEFAULT_RUN_ORDER, get_kind
from logistics_sync.core.models import RecordKind, RunReport, SyncMode
from logistics_sync.observability.logger import get_logger, run_context
from logistics_sync.observability.metrics import record_run, record_trigger_dropped, run_active
from logistics_sync.warehouse.store import RecordStore

from .pipeline import ImportPipeline

logger = get_logger(__name__)


class RunState(str, Enum):
    """Run state of one record kind."""
    IDLE = "idle"
    RUNNING = "running"


class RunCoordinator:
    """
    Serializes import runs per record kind and persists their outcome.
    """

    def __init__(
        self,
        pipeline: ImportPipeline,
        store: RecordStore,
        kinds: dict[str, RecordKind],
        settings: ImportSettings | None = None,
        run_order: list[str] | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            pipeline: Pipeline executing single runs
            store: Store receiving the import metadata
            kinds: Known record kinds by name
            settings: Import settings (defaults to the pipeline's)
            run_order: Kind order of run_all() (defaults to the built-in order,
                       followed by any extra configured kinds)
        """
        self.pipeline = pipeline
        self.store = store
        self.kinds = kinds
        self.settings = settings or pipeline.settings
        if run_order is None:
            run_order = [name for name in DEFAULT_RUN_ORDER if name in kinds]
            run_order += sorted(name for name in kinds if name not in run_order)
        self.run_order = run_order
        self._states: dict[str, RunState] = {name: RunState.IDLE for name in kinds}
        self._lock = threading.Lock()

    def state(self, kind_name: str) -> RunState:
        with self._lock:
            return self._states.get(kind_name, RunState.IDLE)

    def _acquire(self, kind_name: str) -> bool:
        with self._lock:
            if self._states.get(kind_name) == RunState.RUNNING:
                return False
            self._states[kind_name] = RunState.RUNNING
        return True

    def _release(self, kind_name: str) -> None:
        with self._lock:
            self._states[kind_name] = RunState.IDLE

    def trigger(
        self,
        kind_name: str,
        mode: SyncMode | None = None,
        source: str | Path | None = None,
    ) -> RunReport | None:
        """
        Run one kind unless a run of it is already in progress.

        Args:
            kind_name: Record kind name
            mode: Run mode (defaults to the settings' mode)
            source: Extract to read instead of the kind's file in the data directory

        Returns:
            The finished RunReport, or None when the trigger was dropped

        Raises:
            KeyError: If the kind is unknown
            SyncError: The fatal error of the run, after its report was persisted
        """
        kind = get_kind(kind_name, self.kinds)
        mode = mode or self.settings.mode

        if not self._acquire(kind.name):
            record_trigger_dropped(kind.name)
            logger.warning(
                f"[{kind.name}] import already running, trigger dropped",
                extra={"kind": kind.name},
            )
            return None

        report = RunReport(kind=kind.name, mode=mode)
        try:
            with run_active(kind.name), run_context(kind=kind.name, mode=mode.value):
                self.pipeline.run(kind, report=report, mode=mode, source=source)
        except Exception as e:
            report.finish(error=e)
            logger.error(
                f"[{kind.name}] import failed: {e}",
                exc_info=True,
                extra=report.summary(),
            )
            self._persist(report)
            record_run(report)
            raise
        else:
            self._persist(report)
            record_run(report)
        finally:
            # Idle only once the report is saved
            self._release(kind.name)

        return report

    def _persist(self, report: RunReport) -> None:
        try:
            self.store.save_import_metadata(report.to_metadata())
        except Exception as e:
            if report.status != "failed":
                raise
            logger.error(
                f"[{report.kind}] could not save import metadata: {e}",
                extra={"kind": report.kind},
            )

    def run_all(self, mode: SyncMode | None = None) -> dict[str, RunReport | None]:
        """
        Run every kind once, strictly one after another.

        A kind that fails is logged and the cycle continues.

        Args:
            mode: Run mode for the whole cycle

        Returns:
            Kind name -> report (None when the run failed or was dropped)
        """
        results: dict[str, RunReport | None] = {}
        logger.info(f"Import cycle started: {', '.join(self.run_order)}")

        for position, kind_name in enumerate(self.run_order):
            try:
                results[kind_name] = self.trigger(kind_name, mode)
            except Exception as e:
                results[kind_name] = None
                logger.error(f"[{kind_name}] skipped to next kind after failure: {e}")

            gc.collect()
            if position < len(self.run_order) - 1 and self.settings.kind_pause_seconds:
                time.sleep(self.settings.kind_pause_seconds)

        succeeded = sum(1 for report in results.values() if report is not None)
        logger.info(
            f"Import cycle finished: {succeeded}/{len(results)} kinds imported",
            extra={"succeeded": succeeded, "total": len(results)},
        )
        return results
