# WORKFLOW: Balance reconciliation between invoices and payments.
# Used by: Invoice/payment routers, client payments view, presenters
# Functions:
# 1. is_successful_payment() - Status test against the successful set
# 2. canonical_status() - Upper-cased stored status, UNPAID shown as PENDING
# 3. partition_payments() - Assign each payment to exactly one invoice
# 4. reconcile_payments_for_invoices() - paid-to-date, balance, derived status
# 5. summarize() - totalPaid / pendingPayment / overdue over a set
#
# Reconcile flow: Invoices + payments -> Partition -> Sum successful -> Clamp -> Derive status
# Pure functions of their inputs: nothing here reads or writes the database,
# and the derived status never replaces the stored one.

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from services.money import ZERO, d, is_zero

SUCCESSFUL_PAYMENT_STATUSES = frozenset({"completed", "paid", "success", "successful"})

PAID = "PAID"
PENDING = "PENDING"


@dataclass(frozen=True)
class InvoiceBalance:
    invoice_id: int
    amount: Decimal
    paid_to_date: Decimal
    balance: Decimal
    stored_status: Optional[str]
    derived_status: str

    @property
    def is_paid(self) -> bool:
        return self.derived_status == PAID


@dataclass(frozen=True)
class BalanceSummary:
    total_paid: Decimal = ZERO
    pending_payment: Decimal = ZERO
    overdue: Decimal = ZERO  # no due dates in the ledger yet


def is_successful_payment(status: Optional[str]) -> bool:
    """Exact, case-insensitive match; payment writes already trim surrounding whitespace."""
    if not status:
        return False
    return status.lower() in SUCCESSFUL_PAYMENT_STATUSES


def canonical_status(status: Optional[str]) -> str:
    canonical = (status or "").strip().upper()
    if not canonical or canonical == "UNPAID":
        return PENDING
    return canonical


def derive_status(balance: Decimal, stored_status: Optional[str]) -> str:
    """PAID exactly when nothing is owed; a stored PAID with money outstanding shows as PENDING."""
    if is_zero(balance):
        return PAID
    status = canonical_status(stored_status)
    return PENDING if status == PAID else status


def partition_payments(invoices: Sequence[Any], payments: Iterable[Any]) -> Dict[int, List[Any]]:
    """
    Group payments by the invoice they settle.

    A payment carrying invoice_id belongs to that invoice. A payment without one
    falls back to the oldest invoice of its parcel. Payments matching neither
    are left out.

    Returns:
        Mapping invoice_id -> payments, one entry per invoice in input order
    """
    groups: Dict[int, List[Any]] = {invoice.invoice_id: [] for invoice in invoices}

    parcel_owner: Dict[int, int] = {}
    for invoice in sorted(invoices, key=lambda inv: inv.invoice_id):
        if invoice.parcel_id is not None:
            parcel_owner.setdefault(invoice.parcel_id, invoice.invoice_id)

    for payment in payments:
        invoice_id = getattr(payment, "invoice_id", None)
        if invoice_id is not None:
            if invoice_id in groups:
                groups[invoice_id].append(payment)
            continue

        owner = parcel_owner.get(getattr(payment, "parcel_id", None))
        if owner is not None:
            groups[owner].append(payment)

    return groups


def reconcile_invoice(invoice: Any, payments: Iterable[Any]) -> InvoiceBalance:
    amount = d(invoice.amount)
    paid_to_date = sum(
        (d(payment.amount) for payment in payments if is_successful_payment(payment.status)),
        ZERO,
    )
    balance = max(ZERO, amount - paid_to_date)

    return InvoiceBalance(
        invoice_id=invoice.invoice_id,
        amount=amount,
        paid_to_date=paid_to_date,
        balance=balance,
        stored_status=invoice.status,
        derived_status=derive_status(balance, invoice.status),
    )


def reconcile_payments_for_invoices(invoices: Sequence[Any], payments: Iterable[Any]) -> List[InvoiceBalance]:
    """
    Compute the balance view of every invoice.

    Args:
        invoices: Invoice rows (invoice_id, parcel_id, amount, status)
        payments: Payment rows (invoice_id, parcel_id, amount, status)

    Returns:
        One InvoiceBalance per invoice, in input order
    """
    groups = partition_payments(invoices, payments)
    return [reconcile_invoice(invoice, groups[invoice.invoice_id]) for invoice in invoices]


def summarize(invoices: Sequence[Any], payments: Iterable[Any]) -> BalanceSummary:
    balances = reconcile_payments_for_invoices(invoices, payments)
    return summarize_balances(balances)


def summarize_balances(balances: Iterable[InvoiceBalance]) -> BalanceSummary:
    total_paid = ZERO
    pending_payment = ZERO
    for balance in balances:
        total_paid += balance.paid_to_date
        pending_payment += balance.balance
    return BalanceSummary(total_paid=total_paid, pending_payment=pending_payment, overdue=ZERO)
