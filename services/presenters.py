# WORKFLOW: JSON projections of ledger rows for API responses.
# Used by: Invoice, payment, parcel and client routers via the ledgers
# Functions:
# 1. invoice_row() - Invoice with reconciled totals, stored and derived status
# 2. invoice_detail() - invoice_row() plus paymentHistory
# 3. payment_row() - Payment in the client-facing shape
# 4. client_payments_view() - summary + invoices + payments for one client
#
# Presentation flow: ORM rows -> Reconciler balances -> Rounded JSON numbers
# Rounding to cents happens here and nowhere earlier.

from types import MappingProxyType
from typing import Any, Dict, List, Optional, Sequence

from services.money import present
from services.reconciler import (
    BalanceSummary,
    InvoiceBalance,
    partition_payments,
    reconcile_invoice,
    summarize_balances,
)

STATUS_COLORS = MappingProxyType({
    "PAID": "green",
    "PENDING": "orange",
    "OVERDUE": "red",
    "FAILED": "red",
    "REFUNDED": "gray",
    "CANCELLED": "gray",
})

PARCEL_STATUS_LABELS = MappingProxyType({
    "pending": "Awaiting drop-off",
    "received": "At origin warehouse",
    "in_transit": "In transit",
    "arrived": "At destination warehouse",
    "delivered": "Delivered",
})

DEFAULT_STATUS_COLOR = "gray"


def invoice_reference(invoice_id: Optional[int]) -> Optional[str]:
    if invoice_id is None:
        return None
    return f"INV-{invoice_id:06d}"


def payment_reference(payment_id: int) -> str:
    return f"PAY-{payment_id:06d}"


def shipment_reference(invoice: Any) -> Optional[str]:
    parcel = getattr(invoice, "parcel", None)
    if parcel is not None and parcel.tracking_number:
        return parcel.tracking_number
    if invoice.parcel_id is None:
        return None
    return f"PCL-{invoice.parcel_id:06d}"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def summary_payload(summary: BalanceSummary) -> Dict[str, float]:
    return {
        "totalPaid": present(summary.total_paid),
        "pendingPayment": present(summary.pending_payment),
        "overdue": present(summary.overdue),
    }


def invoice_row(invoice: Any, balance: InvoiceBalance) -> Dict[str, Any]:
    return {
        "invoiceId": invoice_reference(invoice.invoice_id),
        "id": invoice.invoice_id,
        "parcelId": invoice.parcel_id,
        "clientId": invoice.client_id,
        "shipmentRef": shipment_reference(invoice),
        "amount": present(balance.amount),
        "status": balance.derived_status,
        "storedStatus": invoice.status,
        "statusColor": STATUS_COLORS.get(balance.derived_status, DEFAULT_STATUS_COLOR),
        "issueDate": _iso(invoice.created_at),
        "dueDate": None,
        "totalPaid": present(balance.paid_to_date),
        "balance": present(balance.balance),
    }


def payment_row(payment: Any, invoice_id: Optional[int] = None) -> Dict[str, Any]:
    """Client-facing payment; invoice_id overrides the stored one when resolved by parcel."""
    if invoice_id is None:
        invoice_id = payment.invoice_id
    return {
        "paymentId": payment.payment_id,
        "invoiceId": invoice_reference(invoice_id),
        "parcelId": payment.parcel_id,
        "amount": present(payment.amount),
        "method": payment.payment_method,
        "date": _iso(payment.created_at),
        "status": canonical_payment_status(payment.status),
        "reference": payment_reference(payment.payment_id),
    }


def canonical_payment_status(status: Optional[str]) -> str:
    return (status or "").strip().upper() or "PENDING"


def invoice_rows(invoices: Sequence[Any], payments: Sequence[Any]) -> List[Dict[str, Any]]:
    groups = partition_payments(invoices, payments)
    return [invoice_row(invoice, reconcile_invoice(invoice, groups[invoice.invoice_id])) for invoice in invoices]


def invoice_detail(invoice: Any, payments: Sequence[Any], siblings: Sequence[Any] = ()) -> Dict[str, Any]:
    """
    Invoice with its payment history and reconciled balance.

    Args:
        invoice: Invoice row
        payments: Candidate payments (by invoice_id or the invoice's parcel)
        siblings: Other invoices of the same parcel, so parcel-only payments
            land on the same invoice as in list views
    """
    invoices = [invoice] + [s for s in siblings if s.invoice_id != invoice.invoice_id]
    own_payments = partition_payments(invoices, payments)[invoice.invoice_id]
    balance = reconcile_invoice(invoice, own_payments)

    detail = invoice_row(invoice, balance)
    detail["paymentHistory"] = [payment_row(p, invoice.invoice_id) for p in own_payments]
    return detail


def client_payments_view(invoices: Sequence[Any], payments: Sequence[Any]) -> Dict[str, Any]:
    """
    Build the client payments view.

    Returns:
        {summary: {totalPaid, pendingPayment, overdue}, invoices: [...], payments: [...]}
    """
    groups = partition_payments(invoices, payments)
    balances = [reconcile_invoice(invoice, groups[invoice.invoice_id]) for invoice in invoices]

    settled_by: Dict[int, int] = {}
    for invoice_id, group in groups.items():
        for payment in group:
            settled_by[payment.payment_id] = invoice_id

    return {
        "summary": summary_payload(summarize_balances(balances)),
        "invoices": [invoice_row(invoice, balance) for invoice, balance in zip(invoices, balances)],
        "payments": [payment_row(p, settled_by.get(p.payment_id)) for p in payments],
    }


def parcel_status_label(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    return PARCEL_STATUS_LABELS.get(status.lower(), status)
