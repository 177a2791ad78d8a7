"""SQLAlchemy models for the ledgerflow database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import StaticPool

Base = declarative_base()

MONEY = Numeric(18, 2)


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Chart-of-accounts model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    subtype = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    status = Column(String, nullable=False, default="Active")
    created_at = Column(DateTime, default=_now, nullable=False)

    parent = relationship("Account", remote_side=[id], backref="children")


class SourceAccount(Base):
    """Bank or card account that feeds imports."""

    __tablename__ = "source_accounts"

    id = Column(Integer, primary_key=True)
    institution = Column(String, nullable=False)
    account_identifier = Column(String, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    name = Column(String, nullable=False)
    ledger_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("institution", "account_identifier", name="uq_source_institution_identifier"),
    )

    ledger_account = relationship("Account")


class ImportBatch(Base):
    """One imported file or feed payload."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    file_name = Column(String, nullable=True)
    dialect = Column(String, nullable=False)
    imported_count = Column(Integer, default=0, nullable=False)
    skipped_count = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class ImportedTransaction(Base):
    """Imported bank row awaiting review or posting."""

    __tablename__ = "imported_transactions"

    id = Column(Integer, primary_key=True)
    batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=True)
    source_account_id = Column(Integer, ForeignKey("source_accounts.id"), nullable=False)
    unique_id = Column(String, nullable=False)
    transaction_date = Column(Date, nullable=False)
    post_date = Column(Date, nullable=True)
    description = Column(String, nullable=False)
    merchant = Column(String, nullable=True)
    raw_category = Column(String, nullable=True)
    amount = Column(MONEY, nullable=False)
    reference_number = Column(String, nullable=True)
    check_number = Column(String, nullable=True)
    is_personal = Column(Boolean, default=False, nullable=False)
    status = Column(String, nullable=False, default="Pending")
    suggested_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    suggested_memo = Column(String, nullable=True)
    categorization_source = Column(String, nullable=True)
    matched_entity_type = Column(String, nullable=True)
    matched_entity_id = Column(Integer, nullable=True)
    confidence = Column(String, nullable=True)
    match_reason = Column(String, nullable=True)
    approved_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    approved_memo = Column(String, nullable=True)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    linked_at = Column(DateTime, nullable=True)
    claimed_by_id = Column(Integer, nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    imported_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("source_account_id", "unique_id", name="uq_source_unique_id"),
    )

    source_account = relationship("SourceAccount")


class JournalEntry(Base):
    """Journal entry header."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    reference = Column(String, nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default="Draft")
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    posted_at = Column(DateTime, nullable=True)
    reversal_of_id = Column(Integer, ForeignKey("journal_entries.id"), unique=True, nullable=True)
    # Plain column: imported_transactions already points back here.
    source_transaction_id = Column(Integer, unique=True, nullable=True)
    recurring_template_id = Column(Integer, ForeignKey("recurring_templates.id"), nullable=True)

    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
    )


class JournalEntryLine(Base):
    """One debit or credit line of a journal entry."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    description = Column(String, nullable=True)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "debit >= 0 AND credit >= 0 AND ((debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0))",
            name="ck_line_one_sided",
        ),
        UniqueConstraint("entry_id", "line_number", name="uq_entry_line_number"),
    )

    entry = relationship("JournalEntry", back_populates="lines")


class BankRule(Base):
    """Categorization rule."""

    __tablename__ = "bank_rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    match_field = Column(String, nullable=False)
    match_type = Column(String, nullable=False)
    match_value = Column(String, nullable=False)
    assign_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    priority = Column(Integer, nullable=False, default=100)
    source_account_id = Column(Integer, ForeignKey("source_accounts.id"), nullable=True)
    transaction_type = Column(String, nullable=True)
    min_amount = Column(MONEY, nullable=True)
    max_amount = Column(MONEY, nullable=True)
    assign_memo = Column(String, nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)


class Payment(Base):
    """Customer receipt or bill payment."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    payment_date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    ledger_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    counterparty = Column(String, nullable=True)
    reference_number = Column(String, nullable=True)
    document_number = Column(String, nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    reconciled_transaction_id = Column(
        Integer, ForeignKey("imported_transactions.id"), unique=True, nullable=True
    )
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (CheckConstraint("amount > 0", name="ck_payment_positive"),)


class RecurringTemplate(Base):
    """Recurring transaction template."""

    __tablename__ = "recurring_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    transaction_type = Column(String, nullable=False)
    frequency = Column(String, nullable=False)
    interval = Column(Integer, nullable=False, default=1)
    day_of_month = Column(Integer, nullable=True)
    day_of_week = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="Active")
    next_run_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    last_run_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    lines = relationship(
        "TemplateLine",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateLine.line_number",
    )


class TemplateLine(Base):
    """Line of a recurring template."""

    __tablename__ = "template_lines"

    id = Column(Integer, primary_key=True)
    template_id = Column(Integer, ForeignKey("recurring_templates.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    description = Column(String, nullable=True)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)

    template = relationship("RecurringTemplate", back_populates="lines")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory.

    SQLite connections may be used from worker threads and wait up to thirty
    seconds for a competing writer. An in-memory database shares a single
    connection so every session sees the same data.
    """
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=False, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
