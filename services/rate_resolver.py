# WORKFLOW: Rate resolution and cost calculation for shipment quotes.
# Used by: /rates/calculate and the /rates reference endpoints
# Functions:
# 1. validate_request() - Required identifiers present and positive
# 2. resolve() - Single active rate for the request tuple or NotFound
# 3. compute_cost() - Additive cost breakdown (base + additional charges)
# 4. calculate() - Full flow returning the rate calculation contract
# 5. countries() / cities() / shipment_types() / cargo_categories() - Dropdown data
#
# Calculate flow: Request -> Validate -> Catalog lookup -> Cost breakdown -> Enrich names/days -> Result
# Weight and volume are echoed back untouched: pricing is flat per route and cargo class.

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from db.models import Rate
from services.money import d, present, quantize2
from services.rate_catalog import RateCatalog
from services.results import ServiceResult, internal_error, not_found, ok, validation_error

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("originCountryId", "destinationCountryId", "shipmentTypeId", "cargoCategoryId")


@dataclass(frozen=True)
class RateQuery:
    shipment_type_id: int
    cargo_category_id: int
    origin_country_id: int
    destination_country_id: int


@dataclass(frozen=True)
class CostBreakdown:
    base_rate: Decimal
    additional_charges: Decimal
    total_cost: Decimal
    currency: str


def _coerce_id(value: Any) -> Tuple[Optional[int], bool]:
    """Return (identifier, missing). A None identifier with missing=False is malformed."""
    if value is None or value == "" or value == 0 or value == "0":
        return None, True
    if isinstance(value, bool):
        return None, False
    if isinstance(value, float):
        if not value.is_integer():
            return None, False
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
        if not value.lstrip("-").isdigit():
            return None, False
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None, False
    return value, False


def validate_request(params: Mapping[str, Any]) -> Tuple[Optional[RateQuery], Optional[ServiceResult]]:
    """
    Check the four identifiers of a rate request.

    Returns:
        (RateQuery, None) when valid, (None, validation error result) otherwise
    """
    values: Dict[str, int] = {}
    for field in REQUIRED_FIELDS:
        value, missing = _coerce_id(params.get(field))
        if missing:
            return None, validation_error(f"Missing required field: {field}")
        if value is None:
            return None, validation_error(f"Invalid value for field: {field}")
        values[field] = value

    return RateQuery(
        shipment_type_id=values["shipmentTypeId"],
        cargo_category_id=values["cargoCategoryId"],
        origin_country_id=values["originCountryId"],
        destination_country_id=values["destinationCountryId"],
    ), None


def compute_cost(rate: Rate, params: Optional[Mapping[str, Any]] = None) -> CostBreakdown:
    """Total is base rate plus additional charges, rounded to cents."""
    base_rate = d(rate.base_rate)
    additional_charges = d(rate.additional_charges)
    currency = (rate.currency or "").strip() or settings.default_currency

    return CostBreakdown(
        base_rate=base_rate,
        additional_charges=additional_charges,
        total_cost=quantize2(base_rate + additional_charges),
        currency=currency,
    )


def no_rate_message() -> str:
    return (
        "No rate found for the selected route and cargo type. "
        f"Please contact support at {settings.support_contact} for a custom quote."
    )


class RateResolver:
    """Resolves catalog rates and prices shipment requests."""

    def __init__(self, db: Session):
        self.catalog = RateCatalog(db)

    def resolve(self, query: RateQuery) -> Optional[Rate]:
        return self.catalog.find_active_rate(
            query.shipment_type_id,
            query.cargo_category_id,
            query.origin_country_id,
            query.destination_country_id,
        )

    def calculate(self, params: Mapping[str, Any]) -> ServiceResult:
        """
        Calculate the cost of a shipment request.

        Args:
            params: originCountryId, destinationCountryId, shipmentTypeId,
                cargoCategoryId, and optional weight / volume

        Returns:
            ServiceResult with the rate calculation contract, or a
            validation / not found / internal error
        """
        query, error = validate_request(params)
        if error is not None:
            return error

        try:
            rate = self.resolve(query)
            if rate is None:
                logger.info(f"No active rate for {query}")
                return not_found(no_rate_message())

            breakdown = compute_cost(rate, params)
            shipment_type = self.catalog.get_shipment_type_by_id(query.shipment_type_id)
            cargo_category = self.catalog.get_cargo_category_by_id(query.cargo_category_id)
            origin = self.catalog.get_country_by_id(query.origin_country_id)
            destination = self.catalog.get_country_by_id(query.destination_country_id)
        except SQLAlchemyError as e:
            logger.error(f"Rate lookup failed for {query}: {e}")
            return internal_error("Failed to calculate rate. Please try again later.")

        data = {
            "origin_country": origin.name if origin else None,
            "destination_country": destination.name if destination else None,
            "shipment_type": shipment_type.name if shipment_type else None,
            "cargo_category": cargo_category.name if cargo_category else None,
            "estimated_days": shipment_type.estimated_days if shipment_type else None,
            "base_rate": present(breakdown.base_rate),
            "additional_charges": present(breakdown.additional_charges),
            "total_cost": present(breakdown.total_cost),
            "currency": breakdown.currency,
            "weight": params.get("weight"),
            "volume": params.get("volume"),
            "unit": cargo_category.unit if cargo_category else None,
        }
        return ok(data)

    def countries(self) -> ServiceResult:
        return self._listing("countries", lambda: [
            {"country_id": c.country_id, "name": c.name, "code": c.code}
            for c in self.catalog.list_countries()
        ])

    def cities(self, country_id: int) -> ServiceResult:
        return self._listing("cities", lambda: [
            {"city_id": c.city_id, "name": c.name}
            for c in self.catalog.list_cities(country_id)
        ])

    def shipment_types(self) -> ServiceResult:
        return self._listing("shipment types", lambda: [
            {
                "type_id": t.type_id,
                "name": t.name,
                "description": t.description,
                "estimated_days": t.estimated_days,
            }
            for t in self.catalog.list_shipment_types()
        ])

    def cargo_categories(self) -> ServiceResult:
        return self._listing("cargo categories", lambda: [
            {
                "category_id": c.category_id,
                "name": c.name,
                "description": c.description,
                "unit": c.unit,
                "min_quantity": float(c.min_quantity) if c.min_quantity is not None else None,
                "shipment_type_id": c.shipment_type_id,
            }
            for c in self.catalog.list_cargo_categories()
        ])

    def _listing(self, label: str, fetch) -> ServiceResult:
        try:
            return ok(fetch())
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch {label}: {e}")
            return internal_error(f"Failed to fetch {label}")


def create_rate_resolver(db: Session) -> RateResolver:
    """Create rate resolver instance."""
    return RateResolver(db)
