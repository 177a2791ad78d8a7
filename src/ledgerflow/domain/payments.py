"""Customer receipts and bill payments entered outside the bank import.

Recorded payments are the counterparts the matching engine looks for, so a
bank row for the same money is linked instead of posted a second time.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import Payment, PaymentKind
from ledgerflow.domain.errors import NotFoundError, ValidationError
from ledgerflow.domain.journal import LineSpec
from ledgerflow.domain.money import ZERO, to_money
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)


class PaymentService:
    """Service for recording payments."""

    def __init__(self, db: Database, posting: Optional[PostingEngine] = None):
        self.db = db
        self.posting = posting or PostingEngine(db)

    def _record(
        self,
        kind: PaymentKind,
        payment_date: date,
        amount: Decimal,
        ledger_account_id: int,
        lines: list[LineSpec],
        counterparty: Optional[str],
        reference_number: Optional[str],
        document_number: Optional[str],
        created_by: Optional[str],
    ) -> Payment:
        label = "Customer payment" if kind == PaymentKind.CUSTOMER else "Bill payment"
        entry_reference = f"{label} {document_number or reference_number or payment_date.isoformat()}"
        prepared = self.posting.prepare_lines(lines, entry_reference)
        payment_id = self.db.create_payment(
            kind=kind,
            payment_date=payment_date,
            amount=amount,
            ledger_account_id=ledger_account_id,
            entry_reference=entry_reference,
            entry_description=f"{label} {counterparty}" if counterparty else label,
            lines=prepared,
            counterparty=counterparty,
            reference_number=reference_number,
            document_number=document_number,
            created_by=created_by,
        )
        logger.info(
            "payment_recorded",
            payment_id=payment_id,
            kind=kind.value,
            amount=str(amount),
            ledger_account_id=ledger_account_id,
        )
        return self.db.get_payment(payment_id)

    @staticmethod
    def _positive(amount: Decimal | str | int) -> Decimal:
        value = to_money(amount)
        if value <= ZERO:
            raise ValidationError(f"Payment amount must be positive, got {value}", code="invalid_amount")
        return value

    def record_customer_payment(
        self,
        payment_date: date,
        amount: Decimal | str | int,
        deposit_account_id: int,
        receivable_account_id: int,
        counterparty: Optional[str] = None,
        reference_number: Optional[str] = None,
        invoice_number: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Payment:
        """Record money received from a customer.

        Posts Debit deposit account / Credit receivable.

        Args:
            payment_date: Date the payment was received
            amount: Positive amount received
            deposit_account_id: Bank account the money went into
            receivable_account_id: Receivable account being cleared
            counterparty: Customer name
            reference_number: Check or remittance number
            invoice_number: Invoice being paid

        Returns:
            The recorded payment
        """
        value = self._positive(amount)
        lines = [
            LineSpec.debit_line(deposit_account_id, value),
            LineSpec.credit_line(receivable_account_id, value),
        ]
        return self._record(
            PaymentKind.CUSTOMER,
            payment_date,
            value,
            deposit_account_id,
            lines,
            counterparty,
            reference_number,
            invoice_number,
            created_by,
        )

    def record_bill_payment(
        self,
        payment_date: date,
        amount: Decimal | str | int,
        payment_account_id: int,
        payable_account_id: int,
        counterparty: Optional[str] = None,
        reference_number: Optional[str] = None,
        bill_number: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Payment:
        """Record a payment made to a vendor.

        Posts Debit payable / Credit payment account.
        """
        value = self._positive(amount)
        lines = [
            LineSpec.debit_line(payable_account_id, value),
            LineSpec.credit_line(payment_account_id, value),
        ]
        return self._record(
            PaymentKind.BILL,
            payment_date,
            value,
            payment_account_id,
            lines,
            counterparty,
            reference_number,
            bill_number,
            created_by,
        )

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def list_payments(self, unreconciled_only: bool = False) -> list[Payment]:
        return self.db.list_payments(unreconciled_only=unreconciled_only)
