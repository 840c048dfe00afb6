# WORKFLOW: Payment endpoints.
# Used by: Checkout flows, finance dashboards, administrative tooling
# Endpoints:
# 1. GET /payments - List with period (today/week/month/year) or date range filters
# 2. GET /payments/summary - Transactions, collected and pending totals
# 3. GET /payments/status/pending - Pending payments
# 4. GET /payments/invoice/{id} - Payments settling an invoice
# 5. GET /payments/{id} - One payment
# 6. POST /payments - Submit a payment against an invoice or a parcel
# 7. PATCH /payments/{id}, /payments/{id}/status, DELETE /payments/{id} - Administration
#
# Payment submission never edits the invoice; balances are derived on read.

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from db.session import get_db
from api.schemas.request import PaymentCreateRequest, PaymentUpdateRequest, StatusUpdateRequest
from api.schemas.response import ApiResponse, to_response
from services.ledger import create_payment_ledger

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=ApiResponse)
def list_payments(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, used with end_date"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    period: Optional[str] = Query(None, description="today, week, month or year"),
    db: Session = Depends(get_db),
):
    return to_response(create_payment_ledger(db).list_payments(start_date, end_date, period))


@router.get("/summary", response_model=ApiResponse)
def payment_summary(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    period: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return to_response(create_payment_ledger(db).summary(start_date, end_date, period))


@router.get("/status/pending", response_model=ApiResponse)
def pending_payments(db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).pending_payments())


@router.get("/invoice/{invoice_id}", response_model=ApiResponse)
def get_payments_by_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).payments_for_invoice(invoice_id))


@router.get("/{payment_id}", response_model=ApiResponse)
def get_payment(payment_id: int, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).get_payment(payment_id))


@router.post("", response_model=ApiResponse, status_code=201)
def create_payment(request: PaymentCreateRequest, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).create_payment(request.model_dump()))


@router.patch("/{payment_id}", response_model=ApiResponse)
def update_payment(payment_id: int, request: PaymentUpdateRequest, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).update_payment(payment_id, request.model_dump(exclude_unset=True)))


@router.patch("/{payment_id}/status", response_model=ApiResponse)
def update_payment_status(payment_id: int, request: StatusUpdateRequest, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).update_payment_status(payment_id, request.status))


@router.delete("/{payment_id}", response_model=ApiResponse)
def delete_payment(payment_id: int, db: Session = Depends(get_db)):
    return to_response(create_payment_ledger(db).delete_payment(payment_id))
