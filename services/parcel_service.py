# WORKFLOW: Parcel intake with automatic invoicing.
# Used by: /parcels router
# Functions:
# 1. create_parcel() - Insert parcel, then open its invoice (amount = shipping cost, unpaid)
# 2. get_parcel() - Parcel with its reconciled invoices
#
# Intake flow: Validate -> Insert parcel -> Commit -> Open invoice -> Commit
# A failed invoice insert is logged and does not undo the parcel.

import logging
import uuid
from typing import Any, Dict, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import Client, Parcel
from services import presenters
from services.ledger import InvoiceLedger
from services.money import ZERO, has_cents_precision, parse_amount, present
from services.results import ServiceResult, internal_error, not_found, ok, validation_error

logger = logging.getLogger(__name__)


def generate_tracking_number() -> str:
    return f"TRK{uuid.uuid4().hex[:12].upper()}"


class ParcelService:
    """Creates parcels and opens their invoices."""

    def __init__(self, db: Session):
        self.db = db
        self.invoices = InvoiceLedger(db)

    def create_parcel(self, data: Mapping[str, Any]) -> ServiceResult:
        """
        Create a parcel and its invoice.

        Args:
            data: client_id, optional description, weight, shipping_cost (default 0)
        """
        if data.get("client_id") in (None, ""):
            return validation_error("Missing required fields: client_id")

        shipping_cost = parse_amount(data.get("shipping_cost") if data.get("shipping_cost") is not None else 0)
        if shipping_cost is None or shipping_cost < ZERO:
            return validation_error("Valid shipping_cost is required")
        if not has_cents_precision(shipping_cost):
            return validation_error("Amounts are limited to two decimal places")
        weight = None
        if data.get("weight") is not None:
            weight = parse_amount(data["weight"])
            if weight is None or weight < ZERO:
                return validation_error("Valid weight is required")

        try:
            client = self.db.get(Client, data["client_id"])
            if client is None:
                return not_found("Client not found")

            parcel = Parcel(
                client_id=client.client_id,
                tracking_number=generate_tracking_number(),
                description=data.get("description"),
                weight=weight,
                shipping_cost=shipping_cost,
            )
            self.db.add(parcel)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create parcel: {e}")
            return internal_error("Failed to create parcel")

        message = "Parcel created successfully"
        try:
            invoice = self.invoices.open_invoice(parcel.parcel_id, parcel.client_id, shipping_cost, "unpaid")
            self.db.commit()
            logger.info(f"Invoice {invoice.invoice_id} opened for parcel {parcel.parcel_id}")
            message += " (Invoice created automatically)"
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create invoice for parcel {parcel.parcel_id}: {e}")

        return self.get_parcel(parcel.parcel_id, message=message, code=201)

    def get_parcel(self, parcel_id: int, message: str = None, code: int = 200) -> ServiceResult:
        try:
            parcel = self.db.get(Parcel, parcel_id)
            if parcel is None:
                return not_found("Parcel not found")
            invoices = self.invoices.get_invoices_by_parcel_or_client(parcel_id=parcel_id)
            payments = self.invoices.payments.payments_for_invoices(invoices)
            data = self._parcel_payload(parcel)
            data["invoices"] = presenters.invoice_rows(invoices, payments)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get parcel {parcel_id}: {e}")
            return internal_error("Failed to fetch parcel")
        return ok(data, message=message, code=code)

    def _parcel_payload(self, parcel: Parcel) -> Dict[str, Any]:
        return {
            "parcel_id": parcel.parcel_id,
            "client_id": parcel.client_id,
            "tracking_number": parcel.tracking_number,
            "description": parcel.description,
            "weight": float(parcel.weight) if parcel.weight is not None else None,
            "shipping_cost": present(parcel.shipping_cost),
            "status": parcel.status,
            "status_label": presenters.parcel_status_label(parcel.status),
            "created_at": parcel.created_at.isoformat() if parcel.created_at else None,
        }


def create_parcel_service(db: Session) -> ParcelService:
    return ParcelService(db)
