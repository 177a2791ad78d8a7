"""Shared pytest fixtures for ledgerflow tests."""

import itertools
import os
import tempfile
from datetime import date, datetime
from decimal import Decimal

import pytest

from ledgerflow.config import Settings
from ledgerflow.database.factories import create_sqlite_database
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import ImportedTransaction, TransactionStatus
from ledgerflow.domain.importer import ImportService
from ledgerflow.domain.payments import PaymentService
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.domain.reconciliation import ReconciliationService
from ledgerflow.domain.recurring import RecurringTemplateService
from ledgerflow.domain.review import ReviewService
from ledgerflow.domain.rules import BankRuleService
from ledgerflow.domain.source_account import SourceAccountService
from ledgerflow.logging_config import configure_logging

# Keep INFO events out of captured CLI output.
configure_logging(level="WARNING")

CHART = [
    ("1000", "Checking", "Asset", "Bank"),
    ("1200", "Accounts Receivable", "Asset", None),
    ("2000", "Accounts Payable", "Liability", None),
    ("3800", "Owner's Contribution", "Equity", None),
    ("3900", "Owner's Draw", "Equity", None),
    ("4000", "Sales", "Revenue", None),
    ("6100", "Office Supplies", "Expense", None),
    ("6200", "Rent", "Expense", None),
    ("6300", "Meals", "Expense", None),
]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def source_service(temp_db):
    return SourceAccountService(temp_db)


@pytest.fixture
def import_service(temp_db):
    return ImportService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    return BankRuleService(temp_db)


@pytest.fixture
def posting_engine(temp_db, settings):
    return PostingEngine(temp_db, settings)


@pytest.fixture
def review_service(temp_db, settings):
    return ReviewService(temp_db, settings)


@pytest.fixture
def payment_service(temp_db, posting_engine):
    return PaymentService(temp_db, posting_engine)


@pytest.fixture
def template_service(temp_db, posting_engine):
    return RecurringTemplateService(temp_db, posting_engine)


@pytest.fixture
def reconciliation_service(temp_db, settings):
    service = ReconciliationService(temp_db, settings=settings)
    yield service
    service.close()


@pytest.fixture
def chart(account_service):
    """Seed a small chart of accounts. Returns {code: account_id}."""
    ids = {}
    for code, name, account_type, subtype in CHART:
        ids[code] = account_service.create_account(code, name, account_type, subtype=subtype)
    return ids


@pytest.fixture
def checking_source(temp_db, chart):
    """Source account for a bank account mapped to 1000 Checking."""
    source_id = temp_db.create_source_account(
        institution="First Bank",
        account_identifier="1234",
        name="First Bank - 1234",
        ledger_account_id=chart["1000"],
    )
    return temp_db.get_source_account(source_id)


@pytest.fixture
def make_txn(temp_db, checking_source):
    """Factory for Pending imported transactions on the checking source."""
    counter = itertools.count(1)

    def _make(amount, txn_date=date(2024, 3, 1), description="TEST", batch_id=None, **kwargs):
        if batch_id is None:
            batch_id = temp_db.create_import_batch(dialect="generic")
        source_account_id = kwargs.pop("source_account_id", checking_source.id)
        txn_id = temp_db.create_imported_transaction(
            source_account_id=source_account_id,
            unique_id=f"test-{next(counter)}",
            transaction_date=txn_date,
            amount=Decimal(amount),
            description=description,
            batch_id=batch_id,
            **kwargs,
        )
        return temp_db.get_imported_transaction(txn_id)

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir(tmp_path):
    """Directory for files written by a test."""
    return tmp_path


def imported_transaction(
    amount, txn_date=date(2024, 3, 10), description="DEPOSIT", txn_id=100, batch_id=5, **kwargs
):
    """Build an ImportedTransaction without touching the database."""
    values = dict(
        id=txn_id,
        batch_id=batch_id,
        source_account_id=1,
        unique_id=f"u-{txn_id}",
        transaction_date=txn_date,
        post_date=None,
        description=description,
        merchant=None,
        raw_category=None,
        amount=Decimal(amount),
        reference_number=None,
        check_number=None,
        is_personal=False,
        status=TransactionStatus.PENDING,
        suggested_account_id=None,
        suggested_memo=None,
        categorization_source=None,
        matched_entity_type=None,
        matched_entity_id=None,
        confidence=None,
        match_reason=None,
        approved_account_id=None,
        approved_memo=None,
        reviewed_by=None,
        reviewed_at=None,
        linked_at=None,
        claimed_by_id=None,
        journal_entry_id=None,
        imported_at=datetime(2024, 3, 10),
    )
    values.update(kwargs)
    return ImportedTransaction(**values)


@pytest.fixture
def build_txn():
    """Factory for in-memory imported transactions."""
    return imported_transaction
