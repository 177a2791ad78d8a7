"""Import normalizer domain service."""

import csv
import hashlib
import io
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.dialects import ParsedRow, detect_dialect, get_dialect
from ledgerflow.domain.errors import ConflictError, ImportFormatError
from ledgerflow.domain.ofx import looks_like_ofx, parse_ofx
from ledgerflow.domain.source_account import SourceAccountService
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_IDENTIFIER = "Default"
UNKNOWN_INSTITUTION = "Unknown"


@dataclass(frozen=True)
class RowError:
    row_num: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_num}: {self.message}"


@dataclass
class ImportResult:
    """Outcome of one import.

    Every data row lands in exactly one of ``imported``, ``skipped``
    (duplicate of a stored row) or ``errors``.
    """

    batch_id: int
    dialect: str
    imported: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)
    transaction_ids: list[int] = field(default_factory=list)
    source_account_ids: list[int] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return self.imported + self.skipped + len(self.errors)


def generate_unique_id(row: ParsedRow, occurrence: int) -> str:
    """Stable identifier for a row without a bank-supplied transaction id.

    ``occurrence`` separates identical rows within one file, so two real
    coffee purchases on the same day survive while a re-import is skipped.
    """
    key = "|".join(
        [row.transaction_date.isoformat(), row.description.strip().upper(), str(row.amount), str(occurrence)]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


def decode_payload(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


class ImportService:
    """Service for importing bank and card exports."""

    def __init__(self, db: Database, auto_create_ledger_accounts: bool = True):
        """Initialize import service.

        Args:
            db: Database instance
            auto_create_ledger_accounts: Create a ledger account for each new
                source account
        """
        self.db = db
        self.source_service = SourceAccountService(
            db, auto_create_ledger_accounts=auto_create_ledger_accounts
        )

    def import_file(
        self,
        file_path: str | Path,
        source_account_id: Optional[int] = None,
        dialect: Optional[str] = None,
    ) -> ImportResult:
        """Import a file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Import file not found: {file_path}")
        return self.import_bytes(
            path.read_bytes(), file_name=path.name, source_account_id=source_account_id, dialect=dialect
        )

    def import_bytes(
        self,
        data: bytes,
        file_name: Optional[str] = None,
        source_account_id: Optional[int] = None,
        dialect: Optional[str] = None,
    ) -> ImportResult:
        """Import transactions from a raw payload.

        Rows that cannot be parsed are reported in ``errors`` and never stop
        the rest of the file from importing.

        Args:
            data: File or feed bytes (CSV or OFX/QFX)
            file_name: Name recorded on the import batch
            source_account_id: Source account that every row belongs to,
                overriding any account identifiers in the file
            dialect: Force a CSV dialect by name instead of detecting it

        Returns:
            ImportResult

        Raises:
            ImportFormatError: If the payload is empty or its format is unsupported
            NotFoundError: If the source account hint does not exist
        """
        hint = None
        if source_account_id is not None:
            hint = self.source_service.require_source_account(source_account_id)

        text = decode_payload(data)
        if not text.strip():
            raise ImportFormatError("Import file is empty")

        if looks_like_ofx(text):
            try:
                document = parse_ofx(text)
            except ValueError as e:
                raise ImportFormatError(str(e))
            dialect_name = "ofx"
            rows = document.rows
            errors = [RowError(row_num, message) for row_num, message in document.errors]
            if not rows and not errors:
                raise ImportFormatError("OFX file contains no transactions")
        else:
            dialect_name, rows, errors = self._parse_csv(text, dialect)

        batch_id = self.db.create_import_batch(dialect=dialect_name, file_name=file_name)
        log = logger.bind(batch_id=batch_id, dialect=dialect_name, file_name=file_name)
        log.info("import_started", rows=len(rows) + len(errors))
        for error in errors:
            log.warning("import_row_error", row_num=error.row_num, error=error.message)

        result = ImportResult(batch_id=batch_id, dialect=dialect_name, errors=errors)

        # Group by account identifier, keeping first-seen order.
        groups: dict[tuple[str, str], list[ParsedRow]] = {}
        for row in rows:
            if hint is not None:
                key = (hint.institution, hint.account_identifier)
            else:
                key = (
                    row.institution or UNKNOWN_INSTITUTION,
                    row.account_identifier or DEFAULT_IDENTIFIER,
                )
            groups.setdefault(key, []).append(row)

        for (institution, identifier), group_rows in groups.items():
            if hint is not None:
                source = hint
            else:
                source = self.source_service.resolve_or_create(
                    institution,
                    identifier,
                    currency=group_rows[0].currency,
                    is_credit_card=group_rows[0].is_credit_card,
                )
            result.source_account_ids.append(source.id)
            self._store_group(source.id, batch_id, group_rows, result)

        result.errors.sort(key=lambda e: e.row_num)
        self.db.finish_import_batch(batch_id, result.imported, result.skipped, len(result.errors))
        log.info(
            "import_completed",
            imported=result.imported,
            skipped=result.skipped,
            errors=len(result.errors),
            source_accounts=len(result.source_account_ids),
        )
        return result

    def _parse_csv(
        self, text: str, dialect_name: Optional[str]
    ) -> tuple[str, list[ParsedRow], list[RowError]]:
        sample = text[:4096]
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            delimiter = ","

        records: list[tuple[int, list[str]]] = []
        read_errors: list[RowError] = []
        reader = csv.reader(io.StringIO(text), delimiter=delimiter)
        line_num = 0
        while True:
            line_num += 1
            try:
                cells = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                # The reader drops the rest of the bad line and carries on.
                read_errors.append(RowError(line_num, f"Unreadable row: {e}"))
                continue
            if any(cell.strip() for cell in cells):
                records.append((line_num, cells))
        if not records:
            raise ImportFormatError("Import file has no rows")

        first_row = records[0][1]
        if dialect_name is not None:
            try:
                dialect = get_dialect(dialect_name, first_row)
            except ValueError as e:
                raise ImportFormatError(str(e))
        else:
            dialect = detect_dialect(first_row)
        if dialect is None:
            raise ImportFormatError(
                "Unsupported CSV format: header must name at least a date and an amount column"
            )

        data_records = records[1:] if dialect.has_header else records
        rows: list[ParsedRow] = []
        errors: list[RowError] = list(read_errors)
        for line_num, cells in data_records:
            try:
                rows.append(dialect.parse(line_num, cells))
            except ValueError as e:
                errors.append(RowError(line_num, str(e)))
        return dialect.name, rows, errors

    def _store_group(
        self, source_account_id: int, batch_id: int, rows: list[ParsedRow], result: ImportResult
    ) -> None:
        occurrences: Counter = Counter()
        for row in rows:
            if row.bank_transaction_id:
                unique_id = row.bank_transaction_id
            else:
                key = (row.transaction_date, row.description.strip().upper(), row.amount)
                unique_id = generate_unique_id(row, occurrences[key])
                occurrences[key] += 1

            if self.db.imported_transaction_exists(source_account_id, unique_id):
                result.skipped += 1
                continue

            try:
                txn_id = self.db.create_imported_transaction(
                    source_account_id=source_account_id,
                    unique_id=unique_id,
                    transaction_date=row.transaction_date,
                    amount=row.amount,
                    description=row.description,
                    batch_id=batch_id,
                    post_date=row.post_date,
                    merchant=row.merchant,
                    raw_category=row.raw_category,
                    reference_number=row.reference_number,
                    check_number=row.check_number,
                    is_personal=row.is_personal,
                )
            except ConflictError:
                # A concurrent import stored the same row first.
                result.skipped += 1
                continue
            result.imported += 1
            result.transaction_ids.append(txn_id)
