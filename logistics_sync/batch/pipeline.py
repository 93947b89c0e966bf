"""
Import pipeline orchestration for one run of one record kind.

Coordinates the flow: open extract -> resolve header -> load reference set and
identity index -> stream rows through normalization and reconciliation ->
flush writes -> remove unseen records (full sync only).
"""

from datetime import datetime
from pathlib import Path

from logistics_sync.config import ImportSettings
from logistics_sync.core.models import RecordKind, RunReport, SyncMode
from logistics_sync.core.rules import RowNormalizer
from logistics_sync.core.schema import SchemaResolver
from logistics_sync.observability.logger import get_logger, log_operation
from logistics_sync.warehouse.store import RecordStore

from .identity_index import IdentityIndex
from .readers import ExtractFile
from .reconciler import ReconciliationEngine
from .writers import BatchWriter

logger = get_logger(__name__)

PROGRESS_EVERY = 10000


class ImportPipeline:
    """
    Runs the import of one extract into the store.

    Flow:
    1. Open the extract and detect its encoding
    2. Resolve the header against the kind's fields
    3. Load the owning-party set and the identity index
    4. Normalize, validate and reconcile every row
    5. Flush pending writes
    6. Remove records absent from the extract (full sync only)
    """

    def __init__(
        self,
        store: RecordStore,
        settings: ImportSettings | None = None,
        check_references: bool = True,
    ):
        """
        Initialize import pipeline.

        Args:
            store: Record store
            settings: Import settings (defaults to environment settings)
            check_references: Check owning-party identifiers against the store
        """
        self.store = store
        self.settings = settings or ImportSettings.from_env()
        self.check_references = check_references

    def run(
        self,
        kind: RecordKind,
        report: RunReport | None = None,
        mode: SyncMode | None = None,
        source: str | Path | None = None,
        now: datetime | None = None,
    ) -> RunReport:
        """
        Import one extract.

        Args:
            kind: Record kind to import
            report: Report to fill (created if omitted); on a fatal error it
                    holds the partial counts
            mode: Run mode (defaults to the settings' mode)
            source: Extract path (defaults to data_dir / kind.file_name)
            now: Run start time (defaults to the current time)

        Returns:
            The finished RunReport

        Raises:
            SourceUnavailableError: If the extract cannot be opened
            EmptyExtractError: If the extract has no header
            SchemaResolutionError: If required fields are missing from the header
            StoreUnavailableError: If the store cannot be reached
        """
        mode = mode or self.settings.mode
        now = now or datetime.now()
        report = report or RunReport(kind=kind.name, mode=mode, started_at=now)
        path = Path(source) if source else self.settings.extract_path(kind.file_name)

        window_start = None
        if mode == SyncMode.WINDOWED and kind.supports_window:
            window_start = self.settings.window_start(now)

        with log_operation(f"Import {kind.name}", logger=logger, kind=kind.name, mode=mode.value):
            with ExtractFile(path, header_tokens=kind.required_labels, on_error=report.record_skip) as extract:
                schema = SchemaResolver(kind).resolve(extract.reader.header)

                reference_ids = None
                if self.check_references and kind.reference_field:
                    reference_ids = self.store.load_reference_identifiers()
                    logger.info(
                        f"[{kind.name}] loaded {len(reference_ids)} owning-party identifiers",
                        extra={"kind": kind.name},
                    )

                index = IdentityIndex(kind, self.store, self.settings.index_page_size, since=window_start).load()
                try:
                    self._stream(kind, extract, schema, index, report, mode, window_start, reference_ids, now)
                finally:
                    index.clear()

        report.finish()
        logger.info(f"[{kind.name}] import finished", extra=report.summary())
        return report

    def _stream(self, kind, extract, schema, index, report, mode, window_start, reference_ids, now) -> None:
        writer = BatchWriter(
            kind,
            self.store,
            report,
            create_batch_size=self.settings.create_batch_size,
            update_batch_size=self.settings.update_batch_size,
            update_concurrency=self.settings.update_concurrency,
        )
        engine = ReconciliationEngine(kind, index, writer, report, mode)
        writer.on_created = engine.register_created

        normalizer = RowNormalizer(
            kind,
            schema,
            reference_ids=reference_ids,
            mode=mode,
            window_start=window_start,
            now=now,
        )
        logger.debug(f"[{kind.name}] field rules loaded", extra={"kind": kind.name, **normalizer.get_rule_summary()})

        rows_read = 0
        for row in extract.reader:
            rows_read += 1
            record = normalizer.process(row, report)
            if record is not None:
                engine.apply(record)
            if rows_read % PROGRESS_EVERY == 0:
                logger.info(
                    f"[{kind.name}] processed {rows_read} rows",
                    extra={"kind": kind.name, "rows": rows_read, "skipped": report.skipped},
                )

        logger.info(
            f"[{kind.name}] read {rows_read} rows (encoding {extract.encoding}), {report.skipped} skipped",
            extra={"kind": kind.name, "rows": rows_read, "encoding": extract.encoding},
        )
        engine.finish()
