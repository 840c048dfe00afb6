# WORKFLOW: Rate lookup and calculation endpoints.
# Used by: Quote forms, shipment booking flows
# Endpoints:
# 1. /rates/countries - Countries for origin/destination dropdowns
# 2. /rates/countries/{country_id}/cities - Cities of a country
# 3. /rates/shipment-types - Shipment types with estimated days
# 4. /rates/cargo-categories - Cargo categories with units
# 5. /rates/calculate - Resolve the active rate and price the request
#
# Request flow: HTTP POST -> Rate resolver -> JSON Schema gate -> Response
# Validation failures answer 400, missing rates 404, store failures 500.

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import jsonschema
import logging

from db.session import get_db
from api.schemas.request import RateCalculationRequest
from api.schemas.response import ApiResponse, to_response
from api.schemas.validation import RATE_CALCULATION, validate_contract
from services.rate_resolver import create_rate_resolver
from services.results import internal_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("/countries", response_model=ApiResponse)
def get_countries(db: Session = Depends(get_db)):
    return to_response(create_rate_resolver(db).countries())


@router.get("/countries/{country_id}/cities", response_model=ApiResponse)
def get_cities(country_id: int, db: Session = Depends(get_db)):
    return to_response(create_rate_resolver(db).cities(country_id))


@router.get("/shipment-types", response_model=ApiResponse)
def get_shipment_types(db: Session = Depends(get_db)):
    return to_response(create_rate_resolver(db).shipment_types())


@router.get("/cargo-categories", response_model=ApiResponse)
def get_cargo_categories(db: Session = Depends(get_db)):
    return to_response(create_rate_resolver(db).cargo_categories())


@router.post("/calculate", response_model=ApiResponse)
def calculate_rate(request: RateCalculationRequest, db: Session = Depends(get_db)):
    """
    Calculate the shipping cost for a route and cargo category.

    The total is the catalog base rate plus additional charges; weight and
    volume are returned as submitted.
    """
    params = request.model_dump(by_alias=True)
    logger.info(
        f"Rate calculation request: origin={params['originCountryId']}, "
        f"destination={params['destinationCountryId']}, type={params['shipmentTypeId']}, "
        f"category={params['cargoCategoryId']}"
    )

    result = create_rate_resolver(db).calculate(params)
    if result.is_success:
        try:
            validate_contract(RATE_CALCULATION, result.data)
        except jsonschema.ValidationError:
            result = internal_error("Failed to calculate rate. Please try again later.")
    return to_response(result)
