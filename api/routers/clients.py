# WORKFLOW: Client billing overview endpoint.
# Used by: Client portal payments page
# Endpoints:
# 1. GET /clients/{client_id}/payments - summary + invoices + payments
#
# Request flow: Client ID -> Ledgers -> Reconciler -> Presenters -> JSON Schema gate -> Response

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import jsonschema

from db.session import get_db
from api.schemas.response import ApiResponse, to_response
from api.schemas.validation import CLIENT_PAYMENTS, validate_contract
from services.ledger import create_client_billing
from services.results import internal_error

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/{client_id}/payments", response_model=ApiResponse)
def get_client_payments(client_id: int, db: Session = Depends(get_db)):
    """
    Payments view for one client.

    Balances and statuses are recomputed from payments on every call.
    """
    result = create_client_billing(db).payments_view(client_id)
    if result.is_success:
        try:
            validate_contract(CLIENT_PAYMENTS, result.data)
        except jsonschema.ValidationError:
            result = internal_error("Failed to fetch client payments")
    return to_response(result)
