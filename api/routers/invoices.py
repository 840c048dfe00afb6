# WORKFLOW: Invoice endpoints with reconciled balances.
# Used by: Billing dashboards, client portals, administrative tooling
# Endpoints:
# 1. GET /invoices, /invoices/parcel/{id}, /invoices/client/{id} - Reconciled lists
# 2. GET /invoices/{id} - Detail with paymentHistory, totalPaid, balance
# 3. POST /invoices - Create invoice
# 4. PATCH /invoices/{id}, /invoices/{id}/status - Administrative updates
# 5. DELETE /invoices/{id} - Delete invoice
#
# Every read recomputes balances from payments; the displayed status is derived,
# the stored status is returned alongside it as storedStatus.

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db.session import get_db
from api.schemas.request import InvoiceCreateRequest, InvoiceUpdateRequest, StatusUpdateRequest
from api.schemas.response import ApiResponse, to_response
from services.ledger import create_invoice_ledger

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=ApiResponse)
def list_invoices(db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).list_invoices())


@router.get("/parcel/{parcel_id}", response_model=ApiResponse)
def get_invoices_by_parcel(parcel_id: int, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).invoices_for_parcel(parcel_id))


@router.get("/client/{client_id}", response_model=ApiResponse)
def get_invoices_by_client(client_id: int, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).invoices_for_client(client_id))


@router.get("/{invoice_id}", response_model=ApiResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).get_invoice(invoice_id))


@router.post("", response_model=ApiResponse, status_code=201)
def create_invoice(request: InvoiceCreateRequest, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).create_invoice(request.model_dump()))


@router.patch("/{invoice_id}", response_model=ApiResponse)
def update_invoice(invoice_id: int, request: InvoiceUpdateRequest, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).update_invoice(invoice_id, request.model_dump(exclude_unset=True)))


@router.patch("/{invoice_id}/status", response_model=ApiResponse)
def update_invoice_status(invoice_id: int, request: StatusUpdateRequest, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).update_invoice_status(invoice_id, request.status))


@router.delete("/{invoice_id}", response_model=ApiResponse)
def delete_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return to_response(create_invoice_ledger(db).delete_invoice(invoice_id))
