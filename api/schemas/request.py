# WORKFLOW: Pydantic request schemas for API input parsing.
# Used by: FastAPI endpoints for request parsing and documentation
# Schemas include:
# 1. RateCalculationRequest - For /rates/calculate
# 2. InvoiceCreateRequest / InvoiceUpdateRequest - For /invoices
# 3. PaymentCreateRequest / PaymentUpdateRequest - For /payments
# 4. StatusUpdateRequest - For the /status sub-resources
# 5. ParcelCreateRequest - For /parcels
#
# Validation flow: HTTP request -> Pydantic parsing -> Service validation -> Processing
# Required-field checks live in the services so the error messages name the
# missing field the same way whichever caller reaches them.

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RateCalculationRequest(BaseModel):
    """Request schema for the rate calculation endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    origin_country_id: Optional[Union[int, str]] = Field(None, alias="originCountryId", description="Origin country ID")
    destination_country_id: Optional[Union[int, str]] = Field(
        None, alias="destinationCountryId", description="Destination country ID"
    )
    shipment_type_id: Optional[Union[int, str]] = Field(None, alias="shipmentTypeId", description="Shipment type ID")
    cargo_category_id: Optional[Union[int, str]] = Field(None, alias="cargoCategoryId", description="Cargo category ID")
    weight: Optional[float] = Field(None, ge=0, description="Weight, echoed back only")
    volume: Optional[float] = Field(None, ge=0, description="Volume, echoed back only")


class InvoiceCreateRequest(BaseModel):
    parcel_id: Optional[int] = Field(None, description="Parcel the invoice bills")
    client_id: Optional[int] = Field(None, description="Billed client")
    amount: Optional[Decimal] = Field(None, description="Invoice amount")
    status: Optional[str] = Field(None, description="Stored status, defaults to unpaid")


class InvoiceUpdateRequest(BaseModel):
    amount: Optional[Decimal] = None
    status: Optional[str] = None


class PaymentCreateRequest(BaseModel):
    invoice_id: Optional[int] = Field(None, description="Invoice being settled")
    parcel_id: Optional[int] = Field(None, description="Parcel being paid for when no invoice is given")
    client_id: Optional[int] = Field(None, description="Paying client, inferred when omitted")
    amount: Optional[Decimal] = Field(None, description="Amount received")
    payment_method: Optional[str] = Field(None, description="card, bank_transfer, cash, ...")
    status: Optional[str] = Field(None, description="Defaults to pending")


class PaymentUpdateRequest(BaseModel):
    amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = Field(None, description="New stored status")


class ParcelCreateRequest(BaseModel):
    client_id: Optional[int] = Field(None, description="Owning client")
    description: Optional[str] = None
    weight: Optional[Decimal] = None
    shipping_cost: Optional[Decimal] = Field(None, description="Invoice amount for the parcel")
