"""Tests for the balance reconciler and its presenters.

Invoices and payments are plain ``SimpleNamespace`` rows: the reconciler only
reads attributes, so no database is needed here.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services import presenters
from services.reconciler import (
    PAID,
    PENDING,
    canonical_status,
    derive_status,
    is_successful_payment,
    partition_payments,
    reconcile_payments_for_invoices,
    summarize,
)


def make_invoice(invoice_id, amount, status="unpaid", parcel_id=None, client_id=1):
    return SimpleNamespace(
        invoice_id=invoice_id,
        parcel_id=parcel_id if parcel_id is not None else invoice_id,
        client_id=client_id,
        amount=Decimal(str(amount)),
        status=status,
        created_at=datetime(2024, 1, 1),
        parcel=None,
    )


def make_payment(payment_id, amount, status="completed", invoice_id=None, parcel_id=None):
    return SimpleNamespace(
        payment_id=payment_id,
        invoice_id=invoice_id,
        parcel_id=parcel_id,
        amount=Decimal(str(amount)),
        payment_method="card",
        status=status,
        created_at=datetime(2024, 1, 2),
    )


@pytest.mark.parametrize("status", ["completed", "PAID", "Success", "SUCCESSFUL"])
def test_successful_statuses_are_case_insensitive(status: str) -> None:
    assert is_successful_payment(status)


@pytest.mark.parametrize("status", ["pending", "failed", "refunded", "", None])
def test_other_statuses_do_not_count(status) -> None:
    assert not is_successful_payment(status)


@pytest.mark.parametrize(
    "status",
    ["complete", "Completed.", "compleeted", "succes", "payed", " completed ", "completed\n"],
)
def test_misspelled_or_padded_statuses_do_not_count(status: str) -> None:
    assert not is_successful_payment(status)


def test_misspelled_statuses_never_reduce_balance() -> None:
    invoice = make_invoice(1, "100")
    payments = [
        make_payment(1, "50", status="complete", invoice_id=1),
        make_payment(2, "50", status="succes", invoice_id=1),
    ]

    [balance] = reconcile_payments_for_invoices([invoice], payments)

    assert balance.paid_to_date == Decimal("0")
    assert balance.balance == Decimal("100")
    assert balance.derived_status == PENDING


def test_no_successful_payments_keeps_full_balance() -> None:
    invoice = make_invoice(1, "100.00", status="unpaid")
    payments = [
        make_payment(1, "40", status="pending", invoice_id=1),
        make_payment(2, "60", status="failed", invoice_id=1),
    ]

    [balance] = reconcile_payments_for_invoices([invoice], payments)

    assert balance.paid_to_date == Decimal("0")
    assert balance.balance == Decimal("100.00")
    assert balance.derived_status == PENDING


def test_stored_status_is_canonicalized_when_not_settled() -> None:
    invoice = make_invoice(1, "100", status="overdue")

    [balance] = reconcile_payments_for_invoices([invoice], [])

    assert balance.derived_status == "OVERDUE"
    assert balance.stored_status == "overdue"


def test_stored_paid_with_outstanding_balance_is_not_shown_paid() -> None:
    invoice = make_invoice(1, "100", status="paid")

    [balance] = reconcile_payments_for_invoices([invoice], [make_payment(1, "10", invoice_id=1)])

    assert balance.balance == Decimal("90")
    assert balance.derived_status == PENDING


def test_overpayment_clamps_balance_at_zero() -> None:
    invoice = make_invoice(1, "100", status="unpaid")
    payments = [
        make_payment(1, "80", invoice_id=1),
        make_payment(2, "50", status="Paid", invoice_id=1),
    ]

    [balance] = reconcile_payments_for_invoices([invoice], payments)

    assert balance.paid_to_date == Decimal("130")
    assert balance.balance == Decimal("0")
    assert balance.derived_status == PAID


def test_partial_payments_accumulate() -> None:
    invoice = make_invoice(1, "100")
    payments = [make_payment(i, "25", invoice_id=1) for i in range(1, 4)]

    [balance] = reconcile_payments_for_invoices([invoice], payments)

    assert balance.paid_to_date == Decimal("75")
    assert balance.balance == Decimal("25")
    assert balance.derived_status == PENDING


def test_balance_within_tolerance_is_paid() -> None:
    invoice = make_invoice(1, "10.000001")

    [balance] = reconcile_payments_for_invoices([invoice], [make_payment(1, "10", invoice_id=1)])

    assert balance.derived_status == PAID


def test_reconciliation_is_idempotent() -> None:
    invoices = [make_invoice(1, "100"), make_invoice(2, "50", status="overdue")]
    payments = [make_payment(1, "30", invoice_id=1), make_payment(2, "50", parcel_id=2)]

    first = reconcile_payments_for_invoices(invoices, payments)
    second = reconcile_payments_for_invoices(invoices, payments)

    assert first == second


def test_parcel_payment_goes_to_oldest_invoice_only() -> None:
    older = make_invoice(3, "100", parcel_id=7)
    newer = make_invoice(5, "40", parcel_id=7)
    payment = make_payment(1, "100", parcel_id=7)

    groups = partition_payments([newer, older], [payment])

    assert groups[3] == [payment]
    assert groups[5] == []

    by_id = {b.invoice_id: b for b in reconcile_payments_for_invoices([newer, older], [payment])}
    assert by_id[3].derived_status == PAID
    assert by_id[5].balance == Decimal("40")


def test_invoice_id_takes_precedence_over_parcel() -> None:
    first = make_invoice(1, "100", parcel_id=7)
    second = make_invoice(2, "40", parcel_id=7)
    payment = make_payment(1, "40", invoice_id=2, parcel_id=7)

    groups = partition_payments([first, second], [payment])

    assert groups[1] == []
    assert groups[2] == [payment]


def test_unmatched_payments_are_ignored() -> None:
    invoice = make_invoice(1, "100", parcel_id=1)
    payments = [make_payment(1, "100", invoice_id=99), make_payment(2, "100", parcel_id=42)]

    [balance] = reconcile_payments_for_invoices([invoice], payments)

    assert balance.paid_to_date == Decimal("0")


def test_summarize_empty_set() -> None:
    summary = summarize([], [])

    assert presenters.summary_payload(summary) == {"totalPaid": 0.0, "pendingPayment": 0.0, "overdue": 0.0}


def test_summarize_totals() -> None:
    invoices = [make_invoice(1, "100"), make_invoice(2, "50")]
    payments = [
        make_payment(1, "120", invoice_id=1),
        make_payment(2, "20", invoice_id=2),
        make_payment(3, "30", status="pending", invoice_id=2),
    ]

    summary = summarize(invoices, payments)

    assert summary.total_paid == Decimal("140")
    assert summary.pending_payment == Decimal("30")
    assert summary.overdue == Decimal("0")


@pytest.mark.parametrize(
    "stored, expected",
    [("unpaid", PENDING), ("", PENDING), (None, PENDING), ("overdue", "OVERDUE"), ("Cancelled", "CANCELLED")],
)
def test_canonical_status(stored, expected) -> None:
    assert canonical_status(stored) == expected


def test_zero_amount_invoice_is_paid() -> None:
    assert derive_status(Decimal("0"), "unpaid") == PAID


def test_client_payments_view_shape() -> None:
    invoices = [make_invoice(2, "50", parcel_id=8), make_invoice(1, "100", parcel_id=7)]
    payments = [
        make_payment(2, "50", status="completed", parcel_id=8),
        make_payment(1, "25.555", status="pending", invoice_id=1),
    ]

    view = presenters.client_payments_view(invoices, payments)

    assert view["summary"] == {"totalPaid": 50.0, "pendingPayment": 100.0, "overdue": 0.0}
    assert [row["invoiceId"] for row in view["invoices"]] == ["INV-000002", "INV-000001"]
    assert view["invoices"][0]["status"] == PAID
    assert view["invoices"][0]["statusColor"] == "green"
    assert view["invoices"][1]["status"] == PENDING
    assert view["invoices"][1]["dueDate"] is None
    assert view["payments"][0]["invoiceId"] == "INV-000002"
    assert view["payments"][1]["amount"] == 25.56
    assert view["payments"][1]["status"] == "PENDING"
    assert view["payments"][1]["reference"] == "PAY-000001"


def test_invoice_detail_uses_sibling_partition() -> None:
    older = make_invoice(1, "100", parcel_id=7)
    newer = make_invoice(2, "60", parcel_id=7)
    payment = make_payment(1, "100", parcel_id=7)

    detail = presenters.invoice_detail(newer, [payment], siblings=[older, newer])

    assert detail["paymentHistory"] == []
    assert detail["totalPaid"] == 0.0
    assert detail["balance"] == 60.0
