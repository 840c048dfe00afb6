# WORKFLOW: Parcel intake endpoints.
# Used by: Booking flows, warehouse intake
# Endpoints:
# 1. POST /parcels - Create a parcel and open its invoice automatically
# 2. GET /parcels/{id} - Parcel with its reconciled invoices

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db.session import get_db
from api.schemas.request import ParcelCreateRequest
from api.schemas.response import ApiResponse, to_response
from services.parcel_service import create_parcel_service

router = APIRouter(prefix="/parcels", tags=["parcels"])


@router.post("", response_model=ApiResponse, status_code=201)
def create_parcel(request: ParcelCreateRequest, db: Session = Depends(get_db)):
    return to_response(create_parcel_service(db).create_parcel(request.model_dump()))


@router.get("/{parcel_id}", response_model=ApiResponse)
def get_parcel(parcel_id: int, db: Session = Depends(get_db)):
    return to_response(create_parcel_service(db).get_parcel(parcel_id))
