"""
Excel Import Service - Framework-agnostic import orchestration.

Drives the per-file / per-row loop: every file is imported inside a single
transaction that is committed when all rows went through, or rolled back
when any step fails. Progress is reported through an optional callback so
the CLI (or any other caller) decides how to present it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from backend.table_gateway import TableGateway
from services.column_resolver import ColumnResolver
from services.entity_builder import EntityBuilder
from services.import_options import ImportOptions
from services.spreadsheet_reader import HEADER_ROW_INDEX, SpreadsheetReader, combine_row, header_names
from services.storage_service import DEFAULT_EXTENSIONS, StorageService, collect_import_files
from services.upsert_service import ImportCounters, UpsertDecider
from services.validation_service import RequiredFieldValidator

logger = logging.getLogger(__name__)


class ExcelImportService:
    """
    Framework-agnostic Excel import service.

    Counters are scoped to the service instance (one command invocation) and
    only include files whose transaction was committed.
    """

    def __init__(
        self,
        db_session: Session,
        options: ImportOptions,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        reader: Optional[SpreadsheetReader] = None,
        entity_builder: Optional[EntityBuilder] = None,
        storage: Optional[StorageService] = None
    ):
        """
        Initialize Excel import service.

        Args:
            db_session: SQLAlchemy database session (autocommit off)
            options: Validated import options
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            reader: Spreadsheet reader (default: openpyxl reader)
            entity_builder: Entity builder (default: built from options)
            storage: File routing service (default: built from options)
        """
        self.session = db_session
        self.options = options
        self.progress_callback = progress_callback or (lambda *args: None)

        # Initialize components
        self.gateway = TableGateway(db_session)
        self.reader = reader or SpreadsheetReader()
        self.column_resolver = ColumnResolver(options.column_mappings)
        self.entity_builder = entity_builder or EntityBuilder(
            defaults=options.defaults,
            value_mappings=options.value_mappings,
            trim=options.trim,
        )
        self.validator = RequiredFieldValidator(options.unique_fields)
        self.upsert = UpsertDecider(self.gateway, options.unique_fields)
        self.storage = storage or StorageService(options.success_directory, options.error_directory)

        self.counters = ImportCounters()

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    @property
    def table_name(self) -> str:
        return self.options.table_name

    def import_path(self, path: str, extensions: List[str] = DEFAULT_EXTENSIONS) -> Dict[str, Any]:
        """
        Import a single file or every matching file of a directory.

        One file's failure never aborts the run. File status is 'success',
        'failed' (rolled back) or 'committed' (imported, but not moved).

        Args:
            path: File or directory
            extensions: Suffixes imported from a directory

        Returns:
            Dictionary with run results:
            {
                'created': int,
                'updated': int,
                'files': [{'file', 'status', 'created', 'updated', 'skipped', 'moved_to', 'error'}],
                'errors': list
            }
        """
        files = collect_import_files(path, extensions)
        results = []
        errors = []

        for index, file_path in enumerate(files):
            percent = 100 * index / len(files)
            self._emit_progress('file_start', percent, f"Import file: {file_path}")

            result = self.import_file_transaction(file_path)
            results.append(result)

            if result['status'] == 'failed':
                self._emit_progress(
                    'file_failed', percent,
                    f"Unable to import file: {file_path}. rollback transactions"
                )
            else:
                self._emit_progress('file_success', percent, f"Successfully imported: {file_path}")

            if result['error']:
                errors.append(f"{file_path}: {result['error']}")
                self._emit_progress('file_error', percent, f"Error: {result['error']}")

        self._emit_progress(
            'complete', 100,
            f"Items updated: {self.counters.updated}, items created: {self.counters.created}"
        )

        return {
            'created': self.counters.created,
            'updated': self.counters.updated,
            'files': results,
            'errors': errors,
        }

    def import_file_transaction(self, file_path: str) -> Dict[str, Any]:
        """
        Import one file in its own transaction and route it afterwards.

        Any exception rolls back every row of the file; its counts are discarded.
        A committed file that cannot be moved is left in place with status
        'committed' and the move error.
        """
        file_counters = ImportCounters()
        result = {
            'file': file_path,
            'status': 'success',
            'created': 0,
            'updated': 0,
            'skipped': 0,
            'moved_to': None,
            'error': None,
        }

        try:
            result['skipped'] = self.import_file(file_path, file_counters)
            self.gateway.commit()

        except Exception as e:
            logger.error(f"Unable to import file: {file_path}. rollback transactions: {e}", exc_info=True)
            self.gateway.rollback()
            result['status'] = 'failed'
            result['error'] = str(e)
            result['moved_to'] = self._route_failed_file(file_path)
            return result

        self.counters.add(file_counters)
        result['created'] = file_counters.created
        result['updated'] = file_counters.updated
        logger.info(f"Successfully imported: {file_path}")

        # rows are committed; a file that cannot be moved stays where it is
        try:
            result['moved_to'] = self.storage.handle_success(file_path)
        except OSError as e:
            logger.error(f"Could not move imported file {file_path}: {e}")
            result['status'] = 'committed'
            result['error'] = str(e)

        return result

    def _route_failed_file(self, file_path: str) -> Optional[str]:
        try:
            return self.storage.handle_failure(file_path)
        except OSError as e:
            logger.error(f"Could not move failed file {file_path}: {e}")
            return None

    def resolve_columns(self, file_path: str) -> Dict[str, str]:
        """
        Column assignments for a file, checked against the live table schema.

        Raises ColumnNotFoundError before any row is touched.
        """
        file_columns = [c for c in self.reader.read_header(file_path) if c is not None]
        column_assignments = self.column_resolver.resolve(file_columns)

        self.gateway.check_columns(
            self.table_name,
            [*column_assignments, *self.options.default_fields, *self.options.unique_fields]
        )
        return column_assignments

    def import_file(self, file_path: str, counters: ImportCounters) -> int:
        """
        Import all data rows of the first worksheet (no commit).

        Args:
            file_path: Path to Excel file
            counters: Receives created/updated counts for this file

        Returns:
            Number of rows skipped by validation
        """
        logger.info(f"Import file: {file_path}")
        column_assignments = self.resolve_columns(file_path)

        skipped = 0
        header = []

        # closed explicitly so the workbook is released before the file is moved
        rows = self.reader.iter_rows(file_path)
        try:
            for row_index, values in rows:
                if row_index == HEADER_ROW_INDEX:
                    header = header_names(values)
                    continue

                if not self.import_row(row_index, combine_row(header, values), column_assignments, counters):
                    skipped += 1
        finally:
            rows.close()

        logger.info(f"Imported {file_path}: {counters.created} created, "
                    f"{counters.updated} updated, {skipped} skipped")
        return skipped

    def import_row(
        self,
        row_index: int,
        row: Dict[str, Any],
        column_assignments: Dict[str, str],
        counters: ImportCounters
    ) -> bool:
        """
        Update the entry found by unique fields or create a new one.

        Returns:
            False when the row was skipped by validation
        """
        entity = self.entity_builder.build(row, column_assignments)

        if not self.validator.validate(row_index, entity):
            return False

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Import row #{row_index}: {','.join('' if v is None else str(v) for v in entity.values())}")

        self.upsert.decide(entity, self.table_name, counters)
        return True
