# WORKFLOW: Invoice and payment ledgers with reconciled read views.
# Used by: /invoices, /payments, /clients routers and parcel intake
# Classes:
# 1. InvoiceLedger - Invoice queries, creation, administrative updates
# 2. PaymentLedger - Payment submission, queries, filters, summaries
# 3. ClientBilling - Client payments view (summary + invoices + payments)
#
# Read flow: Query rows -> Reconciler (fresh on every call) -> Presenters -> ServiceResult
# Write flow: Validate -> Insert/Update -> Commit (rollback + internal error on failure)
# Payment receipt never touches the invoice row; balances are always derived.

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import Client, Invoice, Parcel, Payment, utcnow
from services import presenters
from services.money import ZERO, d, has_cents_precision, parse_amount, present
from services.reconciler import is_successful_payment, partition_payments
from services.results import ServiceResult, conflict, internal_error, not_found, ok, validation_error

logger = logging.getLogger(__name__)

PERIODS = {
    "today": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def _missing_fields(data: Mapping[str, Any], required: Sequence[str]) -> List[str]:
    return [field for field in required if data.get(field) is None or data.get(field) == ""]


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def period_bounds(
    period: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[Tuple[Optional[datetime], Optional[datetime]]], Optional[ServiceResult]]:
    """
    Translate payment filters into a [start, end) created_at window.

    A period takes precedence over explicit dates; explicit dates need both ends.

    Returns:
        ((start, end), None) or (None, validation error)
    """
    now = now or utcnow()
    if period:
        if period not in PERIODS:
            return None, validation_error(f"Invalid period: {period}. Expected one of: {', '.join(PERIODS)}")
        if PERIODS[period] is None:
            return (datetime.combine(now.date(), time.min), None), None
        return (now - PERIODS[period], None), None

    if start_date and end_date:
        try:
            start = date.fromisoformat(start_date)
            end = date.fromisoformat(end_date)
        except ValueError:
            return None, validation_error("Dates must use the YYYY-MM-DD format")
        if end < start:
            return None, validation_error("end_date must not be before start_date")
        return (datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)), None

    return (None, None), None


class InvoiceLedger:
    """Invoice records; amounts are fixed at creation, status is advisory."""

    UPDATABLE_FIELDS = ("amount", "status")

    def __init__(self, db: Session):
        self.db = db
        self.payments = PaymentLedger(db)

    def get_invoices_by_parcel_or_client(
        self, parcel_id: Optional[int] = None, client_id: Optional[int] = None
    ) -> List[Invoice]:
        query = self.db.query(Invoice)
        if parcel_id is not None:
            query = query.filter(Invoice.parcel_id == parcel_id)
        if client_id is not None:
            query = query.filter(Invoice.client_id == client_id)
        return query.order_by(Invoice.invoice_id.desc()).all()

    def list_invoices(self) -> ServiceResult:
        return self._reconciled_list(lambda: self.get_invoices_by_parcel_or_client(), "No invoices found")

    def invoices_for_parcel(self, parcel_id: int) -> ServiceResult:
        if not parcel_id:
            return validation_error("Invalid parcel ID")
        return self._reconciled_list(
            lambda: self.get_invoices_by_parcel_or_client(parcel_id=parcel_id),
            "No invoices found for this parcel",
        )

    def invoices_for_client(self, client_id: int) -> ServiceResult:
        if not client_id:
            return validation_error("Invalid client ID")
        return self._reconciled_list(
            lambda: self.get_invoices_by_parcel_or_client(client_id=client_id),
            "No invoices found for this client",
        )

    def get_invoice(self, invoice_id: int) -> ServiceResult:
        """Invoice detail view with paymentHistory, totalPaid, balance and derived status."""
        if not invoice_id:
            return validation_error("Invalid invoice ID")
        try:
            invoice = self.db.get(Invoice, invoice_id)
            if invoice is None:
                return not_found("Invoice not found")
            detail = self._detail(invoice)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get invoice {invoice_id}: {e}")
            return internal_error("Failed to fetch invoice")
        return ok(detail)

    def create_invoice(self, data: Mapping[str, Any]) -> ServiceResult:
        """
        Create an invoice.

        Args:
            data: parcel_id, client_id, amount, optional status (default unpaid)
        """
        missing = _missing_fields(data, ("parcel_id", "client_id", "amount"))
        if missing:
            return validation_error(f"Missing required fields: {', '.join(missing)}")

        parcel_id = _positive_int(data["parcel_id"])
        client_id = _positive_int(data["client_id"])
        amount = parse_amount(data["amount"])
        if parcel_id is None:
            return validation_error("Valid parcel_id is required")
        if client_id is None:
            return validation_error("Valid client_id is required")
        if amount is None or amount < ZERO:
            return validation_error("Valid amount is required")
        if not has_cents_precision(amount):
            return validation_error("Amounts are limited to two decimal places")

        try:
            if self.db.get(Parcel, parcel_id) is None:
                return not_found("Parcel not found")
            invoice = self.open_invoice(parcel_id, client_id, amount, data.get("status") or "unpaid")
            self.db.commit()
            detail = self._detail(invoice)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create invoice for parcel {parcel_id}: {e}")
            return internal_error("Failed to create invoice")

        logger.info(f"Invoice {invoice.invoice_id} created for parcel {parcel_id}")
        return ok(detail, message="Invoice created successfully", code=201)

    def open_invoice(self, parcel_id: int, client_id: int, amount, status: str = "unpaid") -> Invoice:
        """Add an invoice to the session and flush it; the caller commits."""
        invoice = Invoice(parcel_id=parcel_id, client_id=client_id, amount=d(amount), status=status)
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def update_invoice(self, invoice_id: int, data: Mapping[str, Any]) -> ServiceResult:
        changes = {k: v for k, v in data.items() if k in self.UPDATABLE_FIELDS and v is not None}
        if not changes:
            return validation_error("No valid fields provided for update.")
        if "amount" in changes:
            amount = parse_amount(changes["amount"])
            if amount is None or amount < ZERO:
                return validation_error("Valid amount is required")
            if not has_cents_precision(amount):
                return validation_error("Amounts are limited to two decimal places")
            changes["amount"] = amount
        if "status" in changes and not str(changes["status"]).strip():
            return validation_error("Status is required")
        return self._apply_update(invoice_id, changes, "Invoice updated successfully")

    def update_invoice_status(self, invoice_id: int, status: Optional[str]) -> ServiceResult:
        """Administrative override of the stored status; the displayed status stays derived."""
        if not status or not status.strip():
            return validation_error("Status is required")
        return self._apply_update(invoice_id, {"status": status.strip()}, "Invoice status updated successfully")

    def delete_invoice(self, invoice_id: int) -> ServiceResult:
        """Delete an invoice that no payment references."""
        try:
            invoice = self.db.get(Invoice, invoice_id)
            if invoice is None:
                return not_found("Invoice not found")
            referenced = (
                self.db.query(Payment.payment_id).filter(Payment.invoice_id == invoice_id).first()
            )
            if referenced is not None:
                return conflict("Invoice has payments and cannot be deleted")
            self.db.delete(invoice)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete invoice {invoice_id}: {e}")
            return internal_error("Failed to delete invoice")
        return ok(message="Invoice deleted successfully")

    def _apply_update(self, invoice_id: int, changes: Dict[str, Any], message: str) -> ServiceResult:
        try:
            invoice = self.db.get(Invoice, invoice_id)
            if invoice is None:
                return not_found("Invoice not found")
            for field, value in changes.items():
                setattr(invoice, field, value)
            self.db.commit()
            detail = self._detail(invoice)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update invoice {invoice_id}: {e}")
            return internal_error("Failed to update invoice")
        return ok(detail, message=message)

    def _detail(self, invoice: Invoice) -> Dict[str, Any]:
        siblings = self.get_invoices_by_parcel_or_client(parcel_id=invoice.parcel_id)
        payments = self.payments.get_payments_by_invoice_or_parcel([invoice.invoice_id], [invoice.parcel_id])
        return presenters.invoice_detail(invoice, payments, siblings)

    def _reconciled_list(self, fetch, empty_message: str) -> ServiceResult:
        try:
            invoices = fetch()
            payments = self.payments.payments_for_invoices(invoices)
            rows = presenters.invoice_rows(invoices, payments)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list invoices: {e}")
            return internal_error("Failed to fetch invoices")
        return ok(rows, message=None if invoices else empty_message)


class PaymentLedger:
    """Payment records; overpayment is accepted and clamped at the balance."""

    UPDATABLE_FIELDS = ("amount", "payment_method", "status")

    def __init__(self, db: Session):
        self.db = db

    def get_payments_by_invoice_or_parcel(
        self, invoice_ids: Iterable[int] = (), parcel_ids: Iterable[int] = ()
    ) -> List[Payment]:
        invoice_ids = [i for i in invoice_ids if i is not None]
        parcel_ids = [p for p in parcel_ids if p is not None]
        conditions = []
        if invoice_ids:
            conditions.append(Payment.invoice_id.in_(invoice_ids))
        if parcel_ids:
            conditions.append(Payment.parcel_id.in_(parcel_ids))
        if not conditions:
            return []
        return self.db.query(Payment).filter(or_(*conditions)).order_by(Payment.payment_id.desc()).all()

    def payments_for_invoices(self, invoices: Sequence[Invoice]) -> List[Payment]:
        return self.get_payments_by_invoice_or_parcel(
            [invoice.invoice_id for invoice in invoices],
            {invoice.parcel_id for invoice in invoices},
        )

    def list_payments(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, period: Optional[str] = None
    ) -> ServiceResult:
        window, error = period_bounds(period, start_date, end_date)
        if error is not None:
            return error
        try:
            payments = self._windowed_query(*window).order_by(Payment.payment_id.desc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get payments: {e}")
            return internal_error("Failed to fetch payments")
        return ok(
            [presenters.payment_row(p) for p in payments],
            message=None if payments else "No payments found",
        )

    def summary(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, period: Optional[str] = None
    ) -> ServiceResult:
        """Transaction count, collected (successful) and pending amounts for a window."""
        window, error = period_bounds(period, start_date, end_date)
        if error is not None:
            return error
        try:
            payments = self._windowed_query(*window).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get payment summary: {e}")
            return internal_error("Failed to fetch payment summary")

        collected = ZERO
        pending = ZERO
        for payment in payments:
            if is_successful_payment(payment.status):
                collected += d(payment.amount)
            elif (payment.status or "").lower() == "pending":
                pending += d(payment.amount)

        return ok({
            "total_transactions": len(payments),
            "total_collected": present(collected),
            "pending_payment": present(pending),
        })

    def get_payment(self, payment_id: int) -> ServiceResult:
        if not payment_id:
            return validation_error("Invalid payment ID")
        try:
            payment = self.db.get(Payment, payment_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get payment {payment_id}: {e}")
            return internal_error("Failed to fetch payment")
        if payment is None:
            return not_found("Payment not found")
        return ok(presenters.payment_row(payment))

    def payments_for_invoice(self, invoice_id: int) -> ServiceResult:
        """Payments settling an invoice, including parcel-level payments routed to it."""
        if not invoice_id:
            return validation_error("Invalid invoice ID")
        try:
            invoice = self.db.get(Invoice, invoice_id)
            if invoice is None:
                return not_found("Invoice not found")
            siblings = self.db.query(Invoice).filter(Invoice.parcel_id == invoice.parcel_id).all()
            payments = self.payments_for_invoices(siblings)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get payments for invoice {invoice_id}: {e}")
            return internal_error("Failed to fetch payments")

        own = partition_payments(siblings, payments)[invoice_id]
        return ok(
            [presenters.payment_row(p, invoice_id) for p in own],
            message=None if own else "No payments found for this invoice",
        )

    def pending_payments(self) -> ServiceResult:
        try:
            payments = (
                self.db.query(Payment)
                .filter(Payment.status == "pending")
                .order_by(Payment.payment_id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to get pending payments: {e}")
            return internal_error("Failed to fetch pending payments")
        return ok([presenters.payment_row(p) for p in payments])

    def create_payment(self, data: Mapping[str, Any]) -> ServiceResult:
        """
        Record a payment against an invoice or, in the parcel flow, a parcel.

        Args:
            data: amount, payment_method, invoice_id and/or parcel_id,
                optional client_id and status (default pending)
        """
        missing = _missing_fields(data, ("amount", "payment_method"))
        if data.get("invoice_id") in (None, "") and data.get("parcel_id") in (None, ""):
            missing.append("invoice_id or parcel_id")
        if missing:
            return validation_error(f"Missing required fields: {', '.join(missing)}")

        amount = parse_amount(data["amount"])
        if amount is None or amount <= ZERO:
            return validation_error("Valid amount greater than 0 is required")
        if not has_cents_precision(amount):
            return validation_error("Amounts are limited to two decimal places")
        method = str(data["payment_method"]).strip()
        if not method:
            return validation_error("Payment method is required")

        invoice_id = data.get("invoice_id")
        parcel_id = data.get("parcel_id")
        if invoice_id not in (None, "") and _positive_int(invoice_id) is None:
            return validation_error("Valid invoice_id is required")
        if parcel_id not in (None, "") and _positive_int(parcel_id) is None:
            return validation_error("Valid parcel_id is required")
        invoice_id = _positive_int(invoice_id)
        parcel_id = _positive_int(parcel_id)

        try:
            client_id = _positive_int(data.get("client_id"))
            if invoice_id is not None:
                invoice = self.db.get(Invoice, invoice_id)
                if invoice is None:
                    return not_found("Invoice not found")
                if parcel_id is not None and parcel_id != invoice.parcel_id:
                    return validation_error("parcel_id does not match the invoice")
                parcel_id = invoice.parcel_id
                client_id = client_id or invoice.client_id
            else:
                parcel = self.db.get(Parcel, parcel_id)
                if parcel is None:
                    return not_found("Parcel not found")
                client_id = client_id or parcel.client_id

            payment = Payment(
                invoice_id=invoice_id,
                parcel_id=parcel_id,
                client_id=client_id,
                amount=amount,
                payment_method=method,
                status=(data.get("status") or "pending").strip(),
            )
            self.db.add(payment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create payment: {e}")
            return internal_error("Failed to create payment")

        logger.info(f"Payment {payment.payment_id} recorded for parcel {parcel_id} (invoice {invoice_id})")
        return ok(presenters.payment_row(payment), message="Payment created successfully", code=201)

    def update_payment(self, payment_id: int, data: Mapping[str, Any]) -> ServiceResult:
        changes = {k: v for k, v in data.items() if k in self.UPDATABLE_FIELDS and v is not None}
        if not changes:
            return validation_error("No valid fields provided for update.")
        if "amount" in changes:
            amount = parse_amount(changes["amount"])
            if amount is None or amount <= ZERO:
                return validation_error("Valid amount greater than 0 is required")
            if not has_cents_precision(amount):
                return validation_error("Amounts are limited to two decimal places")
            changes["amount"] = amount
        for field in ("payment_method", "status"):
            if field in changes:
                changes[field] = str(changes[field]).strip()
                if not changes[field]:
                    return validation_error(f"Valid {field} is required")
        return self._apply_update(payment_id, changes, "Payment updated successfully")

    def update_payment_status(self, payment_id: int, status: Optional[str]) -> ServiceResult:
        if not status or not status.strip():
            return validation_error("Status is required")
        return self._apply_update(payment_id, {"status": status.strip()}, "Payment status updated successfully")

    def delete_payment(self, payment_id: int) -> ServiceResult:
        try:
            payment = self.db.get(Payment, payment_id)
            if payment is None:
                return not_found("Payment not found")
            self.db.delete(payment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete payment {payment_id}: {e}")
            return internal_error("Failed to delete payment")
        return ok(message="Payment deleted successfully")

    def _apply_update(self, payment_id: int, changes: Dict[str, Any], message: str) -> ServiceResult:
        try:
            payment = self.db.get(Payment, payment_id)
            if payment is None:
                return not_found("Payment not found")
            for field, value in changes.items():
                setattr(payment, field, value)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update payment {payment_id}: {e}")
            return internal_error("Failed to update payment")
        return ok(presenters.payment_row(payment), message=message)

    def _windowed_query(self, start: Optional[datetime], end: Optional[datetime]):
        query = self.db.query(Payment)
        if start is not None:
            query = query.filter(Payment.created_at >= start)
        if end is not None:
            query = query.filter(Payment.created_at < end)
        return query


class ClientBilling:
    """Per-client billing overview."""

    def __init__(self, db: Session):
        self.db = db
        self.invoices = InvoiceLedger(db)
        self.payments = PaymentLedger(db)

    def payments_view(self, client_id: int) -> ServiceResult:
        if not client_id:
            return validation_error("Invalid client ID")
        try:
            if self.db.get(Client, client_id) is None:
                return not_found("Client not found")
            invoices = self.invoices.get_invoices_by_parcel_or_client(client_id=client_id)
            parcel_ids = [row.parcel_id for row in self.db.query(Parcel.parcel_id).filter(Parcel.client_id == client_id)]
            payments = self.payments.get_payments_by_invoice_or_parcel(
                [invoice.invoice_id for invoice in invoices], parcel_ids
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to build payments view for client {client_id}: {e}")
            return internal_error("Failed to fetch client payments")
        return ok(presenters.client_payments_view(invoices, payments))


def create_invoice_ledger(db: Session) -> InvoiceLedger:
    return InvoiceLedger(db)


def create_payment_ledger(db: Session) -> PaymentLedger:
    return PaymentLedger(db)


def create_client_billing(db: Session) -> ClientBilling:
    return ClientBilling(db)
