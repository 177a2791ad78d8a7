"""Tests for the command-line interface."""

from ledgerflow.cli.main import cli
from ledgerflow.domain.entities import JournalEntryStatus, TransactionStatus

BANK_CSV = """Date,Description,Amount
2024-03-01,STAPLES #123,-50.00
2024-03-02,ACH DEPOSIT ACME INV-1001,500.00
2024-03-03,MYSTERY VENDOR,-12.00
"""


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_help(cli_runner):
    """Test that help lists the command groups."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for name in ("account", "import", "reconcile", "review", "post", "journal", "payment"):
        assert name in result.output


def test_account_create_and_list(cli_runner, temp_db):
    """Test creating accounts and listing them."""
    result = _invoke(cli_runner, temp_db, "account", "create", "1000", "Checking", "--type", "Asset")
    assert result.exit_code == 0
    assert "Created account 1000 'Checking'" in result.output

    _invoke(cli_runner, temp_db, "account", "create", "6000", "Operating", "--type", "expense")
    _invoke(cli_runner, temp_db, "account", "create", "6100", "Supplies", "--type", "Expense", "--parent", "6000")

    result = _invoke(cli_runner, temp_db, "account", "list")
    assert result.exit_code == 0
    assert "Checking" in result.output
    assert "Supplies" in result.output

    result = _invoke(cli_runner, temp_db, "account", "list", "--tree")
    assert "  6100 Supplies" in result.output


def test_account_errors_exit_nonzero(cli_runner, temp_db):
    """Test that domain errors print Error: and exit 1."""
    _invoke(cli_runner, temp_db, "account", "create", "1000", "Checking", "--type", "Asset")
    result = _invoke(cli_runner, temp_db, "account", "create", "1000", "Again", "--type", "Asset")
    assert result.exit_code == 1
    assert "Error:" in result.output

    result = _invoke(cli_runner, temp_db, "account", "deactivate", "9999")
    assert result.exit_code == 1


def test_empty_listings(cli_runner, temp_db):
    """Test the messages for empty tables."""
    assert "No accounts found." in _invoke(cli_runner, temp_db, "account", "list").output
    assert "No transactions awaiting review." in _invoke(cli_runner, temp_db, "review", "list").output
    assert "No posted entries." in _invoke(cli_runner, temp_db, "account", "balances").output


def test_import_reconcile_review_post(cli_runner, temp_db, chart, checking_source, tmp_path):
    """Test the full bank-row workflow from file to posted entry."""
    path = tmp_path / "march.csv"
    path.write_text(BANK_CSV)

    result = _invoke(cli_runner, temp_db, "payment", "record", "--kind", "customer", "--date", "2024-03-01",
                     "--amount", "500.00", "--account", "1000", "--against", "1200", "--document", "INV-1001")
    assert result.exit_code == 0, result.output
    assert "Recorded customer payment" in result.output

    result = _invoke(cli_runner, temp_db, "rule", "create", "Staples", "--value", "STAPLES", "--account", "6100")
    assert result.exit_code == 0, result.output

    result = _invoke(cli_runner, temp_db, "import", str(path), "--source", str(checking_source.id))
    assert result.exit_code == 0, result.output
    assert "Imported: 3 transactions" in result.output

    result = _invoke(cli_runner, temp_db, "reconcile", "--no-ai")
    assert result.exit_code == 0, result.output
    assert "Reconciled 3 transactions" in result.output
    assert "Matched: 1 high, 0 medium, 0 low" in result.output
    assert "Categorized: 1" in result.output
    assert "Needs review: 1" in result.output

    staples, deposit, mystery = temp_db.list_imported_transactions()

    result = _invoke(cli_runner, temp_db, "review", "approve", str(staples.id), "--by", "alice", "--post")
    assert result.exit_code == 0, result.output
    assert f"Approved transaction {staples.id}" in result.output
    assert "Posted journal entry" in result.output

    result = _invoke(cli_runner, temp_db, "review", "approve", str(deposit.id))
    assert "no new journal entry" in result.output

    result = _invoke(cli_runner, temp_db, "review", "approve", str(mystery.id))
    assert result.exit_code == 1
    assert "Error:" in result.output

    result = _invoke(cli_runner, temp_db, "review", "reject", str(mystery.id))
    assert f"Rejected transaction {mystery.id}" in result.output

    assert temp_db.get_imported_transaction(staples.id).status == TransactionStatus.POSTED
    assert temp_db.get_imported_transaction(deposit.id).is_linked

    result = _invoke(cli_runner, temp_db, "account", "balances")
    assert "450.00" in result.output


def test_post_command(cli_runner, temp_db, review_service, chart, make_txn):
    """Test posting by id, re-posting, and the argument check."""
    txn = make_txn("-50.00")
    review_service.approve(txn.id, account_id=chart["6100"])

    result = _invoke(cli_runner, temp_db, "post", str(txn.id))
    assert result.exit_code == 0, result.output
    assert f"Posted transaction {txn.id} as journal entry" in result.output

    result = _invoke(cli_runner, temp_db, "post", str(txn.id))
    assert result.exit_code == 1
    assert "already posted" in result.output

    result = _invoke(cli_runner, temp_db, "post")
    assert result.exit_code == 1
    assert "Provide transaction IDs or --all" in result.output


def test_journal_add_show_reverse(cli_runner, temp_db, posting_engine, chart):
    """Test manual entries from the command line."""
    result = _invoke(cli_runner, temp_db, "journal", "add", "ADJ-1", "--date", "2024-03-31",
                     "--debit", "6200=1000.00", "--credit", "1000=1000.00")
    assert result.exit_code == 0, result.output
    entry_id = posting_engine.list_entries()[0].id

    result = _invoke(cli_runner, temp_db, "journal", "show", str(entry_id))
    assert "ADJ-1 [Posted]" in result.output
    assert "1,000.00" in result.output or "1000.00" in result.output

    result = _invoke(cli_runner, temp_db, "journal", "reverse", str(entry_id), "--date", "2024-04-01")
    assert result.exit_code == 0, result.output
    assert f"Reversed journal entry {entry_id}" in result.output

    result = _invoke(cli_runner, temp_db, "journal", "reverse", str(entry_id))
    assert result.exit_code == 1


def test_journal_unbalanced_and_draft(cli_runner, temp_db, posting_engine, chart):
    """Test that an unbalanced entry is refused and drafts can be posted later."""
    result = _invoke(cli_runner, temp_db, "journal", "add", "ADJ-2", "--date", "2024-03-31",
                     "--debit", "6200=100.00", "--credit", "1000=99.99")
    assert result.exit_code == 1
    assert "not balanced" in result.output
    assert posting_engine.list_entries() == []

    result = _invoke(cli_runner, temp_db, "journal", "add", "ADJ-3", "--date", "2024-03-31",
                     "--debit", "6200=100.00", "--credit", "1000=100.00", "--draft")
    assert "Saved draft journal entry" in result.output
    entry_id = posting_engine.list_entries(JournalEntryStatus.DRAFT)[0].id

    result = _invoke(cli_runner, temp_db, "journal", "post-draft", str(entry_id))
    assert result.exit_code == 0, result.output
    assert posting_engine.require_entry(entry_id).status == JournalEntryStatus.POSTED


def test_journal_bad_line_spec(cli_runner, temp_db, chart):
    """Test the ACCOUNT=AMOUNT format check."""
    result = _invoke(cli_runner, temp_db, "journal", "add", "ADJ-4", "--debit", "6200", "--credit", "1000=5")
    assert result.exit_code == 1
    assert "ACCOUNT=AMOUNT" in result.output


def test_payment_refuses_bad_amount(cli_runner, temp_db, chart):
    """Test payment validation from the command line."""
    result = _invoke(cli_runner, temp_db, "payment", "record", "--kind", "bill", "--date", "2024-03-01",
                     "--amount", "0", "--account", "1000", "--against", "2000")
    assert result.exit_code == 1
    assert "Error:" in result.output
